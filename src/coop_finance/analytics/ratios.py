"""Financial ratios and their trailing history.

Four ratios are derived from one period's balance sheet and cash flow:

- Current Ratio: current assets / current liabilities
- Debt to Assets: total liabilities / total assets
- Return on Equity: net operating cash flow / total equity
- Operating Margin: net operating cash flow / operating inflows

Each ratio is bucketed into an ``up``/``stable``/``down`` trend. For Debt to
Assets a *lower* value is the healthy one, so its thresholds run the other way.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

import structlog

from coop_finance.fanout import gather_bounded
from coop_finance.analytics.reports import total_for
from coop_finance.config import get_settings
from coop_finance.ledger.aggregation import LedgerAggregator
from coop_finance.ledger.classification import (
    BalanceSheetCategory,
    CashFlowCategory,
    is_current_asset,
    is_current_liability,
)
from coop_finance.ledger.models import BalanceSheetEntry, CashFlowEntry
from coop_finance.ledger.money import ZERO, round_half_up, safe_divide
from coop_finance.ledger.periods import PeriodKey

logger = structlog.get_logger(__name__)


class Trend(str, Enum):
    """Health direction of a ratio."""

    UP = "up"
    STABLE = "stable"
    DOWN = "down"


@dataclass(frozen=True)
class RatioDefinition:
    """Name, rounding and trend thresholds of one ratio."""

    name: str
    slug: str
    description: str
    places: int
    up_threshold: Decimal
    stable_threshold: Decimal
    lower_is_better: bool = False

    def trend_for(self, value: Decimal) -> Trend:
        if self.lower_is_better:
            if value < self.up_threshold:
                return Trend.UP
            if value < self.stable_threshold:
                return Trend.STABLE
            return Trend.DOWN
        if value >= self.up_threshold:
            return Trend.UP
        if value >= self.stable_threshold:
            return Trend.STABLE
        return Trend.DOWN


CURRENT_RATIO = RatioDefinition(
    name="Current Ratio",
    slug="current-ratio",
    description="Capacidad de pago a corto plazo",
    places=2,
    up_threshold=Decimal("1.5"),
    stable_threshold=Decimal("1.0"),
)
DEBT_TO_ASSETS = RatioDefinition(
    name="Debt to Assets",
    slug="debt-to-assets",
    description="Nivel de endeudamiento",
    places=3,
    up_threshold=Decimal("0.5"),
    stable_threshold=Decimal("0.7"),
    lower_is_better=True,
)
RETURN_ON_EQUITY = RatioDefinition(
    name="Return on Equity",
    slug="roe",
    description="Rentabilidad para los socios",
    places=3,
    up_threshold=Decimal("0.15"),
    stable_threshold=Decimal("0.08"),
)
OPERATING_MARGIN = RatioDefinition(
    name="Operating Margin",
    slug="operating-margin",
    description="Eficiencia operativa",
    places=3,
    up_threshold=Decimal("0.2"),
    stable_threshold=Decimal("0.1"),
)

RATIO_DEFINITIONS = (CURRENT_RATIO, DEBT_TO_ASSETS, RETURN_ON_EQUITY, OPERATING_MARGIN)
RATIO_NAMES = tuple(definition.name for definition in RATIO_DEFINITIONS)


@dataclass(frozen=True)
class Ratio:
    id: str
    name: str
    value: Decimal
    trend: Trend
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "value": float(self.value),
            "trend": self.trend.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class RatioInputs:
    """Aggregates a period's ratios are computed from."""

    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    current_assets: Decimal
    current_liabilities: Decimal
    operating_revenue: Decimal
    net_operating_income: Decimal

    @property
    def effective_current_assets(self) -> Decimal:
        # Without current-asset subcategories, all assets stand in.
        if self.current_assets > 0:
            return self.current_assets
        return self.total_assets

    @property
    def effective_current_liabilities(self) -> Decimal:
        if self.current_liabilities > 0:
            return self.current_liabilities
        return self.total_liabilities


@dataclass(frozen=True)
class RatioHistoryPoint:
    """Every ratio's value for one period; 0 where the period had no data."""

    period: PeriodKey
    values: dict[str, Decimal]

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.period.year,
            "month": self.period.month,
            "period": self.period.label,
            "ratios": [
                {"name": name, "value": float(value)} for name, value in self.values.items()
            ],
        }


@dataclass(frozen=True)
class RatioWithHistory:
    ratio: Ratio
    history: list[tuple[PeriodKey, Decimal]]

    def to_dict(self) -> dict[str, Any]:
        data = self.ratio.to_dict()
        data["history"] = [
            {"period": period.label, "value": float(value)} for period, value in self.history
        ]
        return data


def ratio_inputs(
    balance_entries: Sequence[BalanceSheetEntry],
    cash_flow_entries: Sequence[CashFlowEntry],
) -> RatioInputs:
    current_assets = sum(
        (
            e.debit_balance
            for e in balance_entries
            if e.category is BalanceSheetCategory.ASSETS and is_current_asset(e.subcategory)
        ),
        ZERO,
    )
    current_liabilities = sum(
        (
            e.credit_balance
            for e in balance_entries
            if e.category is BalanceSheetCategory.LIABILITIES
            and is_current_liability(e.subcategory)
        ),
        ZERO,
    )
    operating = [e.amount for e in cash_flow_entries if e.category is CashFlowCategory.OPERATING]
    return RatioInputs(
        total_assets=total_for(balance_entries, BalanceSheetCategory.ASSETS),
        total_liabilities=total_for(balance_entries, BalanceSheetCategory.LIABILITIES),
        total_equity=total_for(balance_entries, BalanceSheetCategory.EQUITY),
        current_assets=current_assets,
        current_liabilities=current_liabilities,
        operating_revenue=sum((amount for amount in operating if amount > 0), ZERO),
        net_operating_income=sum(operating, ZERO),
    )


def compute_ratios(
    tenant_id: str,
    period: PeriodKey,
    balance_entries: Sequence[BalanceSheetEntry],
    cash_flow_entries: Sequence[CashFlowEntry],
) -> list[Ratio]:
    """The four ratios for one period; empty when there is no balance sheet."""
    if not balance_entries:
        return []

    inputs = ratio_inputs(balance_entries, cash_flow_entries)
    raw_values = {
        CURRENT_RATIO: safe_divide(
            inputs.effective_current_assets, inputs.effective_current_liabilities
        ),
        DEBT_TO_ASSETS: safe_divide(inputs.total_liabilities, inputs.total_assets),
        RETURN_ON_EQUITY: safe_divide(inputs.net_operating_income, inputs.total_equity),
        OPERATING_MARGIN: safe_divide(inputs.net_operating_income, inputs.operating_revenue),
    }
    return [
        Ratio(
            id=f"{tenant_id}-{period.year}-{period.month}-{definition.slug}",
            name=definition.name,
            value=round_half_up(value, definition.places),
            trend=definition.trend_for(value),
            description=definition.description,
        )
        for definition, value in raw_values.items()
    ]


def history_point(period: PeriodKey, ratios: Sequence[Ratio]) -> RatioHistoryPoint:
    values = {name: ZERO for name in RATIO_NAMES}
    for ratio in ratios:
        values[ratio.name] = ratio.value
    return RatioHistoryPoint(period=period, values=values)


class RatioEngine:
    """Recomputes ratios from fresh aggregations on every request."""

    def __init__(
        self,
        aggregator: LedgerAggregator,
        history_months: int | None = None,
        concurrency: int | None = None,
    ):
        settings = get_settings()
        self._aggregator = aggregator
        self._history_months = history_months or settings.ratio_history_months
        self._concurrency = concurrency or settings.ratio_history_concurrency
        self._logger = logger.bind(component="ratio_engine")

    async def ratios_for_period(self, tenant_id: str, year: int, month: int) -> list[Ratio]:
        period = PeriodKey(year, month)
        balance = await self._aggregator.fetch_balance_sheet(tenant_id, year, month)
        if not balance.records:
            return []

        cash_flow = await self._aggregator.fetch_cash_flow(tenant_id, year, month)
        if not cash_flow.success:
            self._logger.warning(
                "ratios_without_cash_flow",
                tenant_id=tenant_id,
                period=period.label,
                error=cash_flow.error,
            )
        return compute_ratios(tenant_id, period, balance.records, cash_flow.records)

    async def _ratios_by_period(
        self, tenant_id: str, periods: Sequence[PeriodKey]
    ) -> list[list[Ratio]]:
        return await gather_bounded(
            periods,
            lambda p: self.ratios_for_period(tenant_id, p.year, p.month),
            self._concurrency,
        )

    async def history(
        self, tenant_id: str, year: int, month: int, months: int | None = None
    ) -> list[RatioHistoryPoint]:
        """Ratio values for the trailing periods ending at (year, month), oldest first."""
        periods = PeriodKey(year, month).trailing(months or self._history_months)
        results = await self._ratios_by_period(tenant_id, periods)
        self._logger.debug(
            "ratio_history_computed",
            tenant_id=tenant_id,
            periods=len(periods),
            empty=sum(1 for ratios in results if not ratios),
        )
        return [history_point(period, ratios) for period, ratios in zip(periods, results)]

    async def ratios_with_history(
        self, tenant_id: str, year: int, month: int
    ) -> list[RatioWithHistory]:
        """The period's ratios, each carrying its trailing series."""
        periods = PeriodKey(year, month).trailing(self._history_months)
        results = await self._ratios_by_period(tenant_id, periods)
        points = [history_point(period, ratios) for period, ratios in zip(periods, results)]
        return [
            RatioWithHistory(
                ratio=ratio,
                history=[(point.period, point.values[ratio.name]) for point in points],
            )
            for ratio in results[-1]
        ]
