"""Summaries, dashboard KPIs and period listings built on aggregated entries."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

import structlog

from coop_finance.fanout import gather_bounded
from coop_finance.ledger.aggregation import LedgerAggregator
from coop_finance.ledger.classification import BalanceSheetCategory, CashFlowCategory
from coop_finance.ledger.models import (
    BalanceSheetEntry,
    CashFlowEntry,
    MembershipFee,
    MembershipStatus,
)
from coop_finance.ledger.money import ZERO, safe_divide
from coop_finance.ledger.periods import PeriodKey

logger = structlog.get_logger(__name__)

BALANCE_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class BalanceSheetSummary:
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    is_balanced: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalAssets": float(self.total_assets),
            "totalLiabilities": float(self.total_liabilities),
            "totalEquity": float(self.total_equity),
            "isBalanced": self.is_balanced,
        }


@dataclass(frozen=True)
class CashFlowSummary:
    operating: Decimal
    investing: Decimal
    financing: Decimal
    net_cash_flow: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "operating": float(self.operating),
            "investing": float(self.investing),
            "financing": float(self.financing),
            "netCashFlow": float(self.net_cash_flow),
        }


@dataclass(frozen=True)
class MembershipFeeSummary:
    total_expected: Decimal
    total_paid: Decimal
    total_debt: Decimal
    members_with_debt: int
    total_members: int
    collection_rate: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalExpected": float(self.total_expected),
            "totalPaid": float(self.total_paid),
            "totalDebt": float(self.total_debt),
            "membersWithDebt": self.members_with_debt,
            "totalMembers": self.total_members,
            "collectionRate": float(self.collection_rate),
        }


@dataclass(frozen=True)
class KPI:
    """One dashboard figure compared against the previous period."""

    id: str
    label: str
    value: Decimal
    trend: str
    format: str
    previous_value: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "value": float(self.value),
            "trend": self.trend,
            "format": self.format,
        }
        if self.previous_value is not None:
            data["previousValue"] = float(self.previous_value)
        return data


@dataclass(frozen=True)
class CashFlowHistoryPoint:
    period: PeriodKey
    summary: CashFlowSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.period.year,
            "month": self.period.month,
            "period": self.period.label,
            "operating": float(self.summary.operating),
            "investing": float(self.summary.investing),
            "financing": float(self.summary.financing),
            "net": float(self.summary.net_cash_flow),
        }


# === Pure summaries ===


def total_for(entries: Iterable[BalanceSheetEntry], category: BalanceSheetCategory) -> Decimal:
    """Natural-sign total of one balance sheet section.

    Assets are debit balances; liabilities and equity are credit balances.
    """
    if category is BalanceSheetCategory.ASSETS:
        return sum((e.debit_balance for e in entries if e.category is category), ZERO)
    return sum((e.credit_balance for e in entries if e.category is category), ZERO)


def is_balanced(assets: Decimal, liabilities: Decimal, equity: Decimal) -> bool:
    return abs(assets - (liabilities + equity)) < BALANCE_TOLERANCE


def summarize_balance_sheet(entries: Sequence[BalanceSheetEntry]) -> BalanceSheetSummary:
    assets = total_for(entries, BalanceSheetCategory.ASSETS)
    liabilities = total_for(entries, BalanceSheetCategory.LIABILITIES)
    equity = total_for(entries, BalanceSheetCategory.EQUITY)
    return BalanceSheetSummary(
        total_assets=assets,
        total_liabilities=liabilities,
        total_equity=equity,
        is_balanced=is_balanced(assets, liabilities, equity),
    )


def summarize_cash_flow(entries: Sequence[CashFlowEntry]) -> CashFlowSummary:
    def activity(category: CashFlowCategory) -> Decimal:
        return sum((e.amount for e in entries if e.category is category), ZERO)

    return CashFlowSummary(
        operating=activity(CashFlowCategory.OPERATING),
        investing=activity(CashFlowCategory.INVESTING),
        financing=activity(CashFlowCategory.FINANCING),
        net_cash_flow=sum((e.amount for e in entries), ZERO),
    )


def summarize_membership_fees(fees: Sequence[MembershipFee]) -> MembershipFeeSummary:
    total_expected = sum((f.expected_contribution for f in fees), ZERO)
    total_paid = sum((f.payment_made for f in fees), ZERO)
    return MembershipFeeSummary(
        total_expected=total_expected,
        total_paid=total_paid,
        total_debt=sum((f.debt for f in fees), ZERO),
        members_with_debt=sum(1 for f in fees if f.status is MembershipStatus.WITH_DEBT),
        total_members=len(fees),
        collection_rate=safe_divide(total_paid, total_expected) * 100,
    )


_STATUS_FILTERS = {
    "up-to-date": MembershipStatus.UP_TO_DATE,
    "with-debt": MembershipStatus.WITH_DEBT,
}


def filter_membership_fees(
    fees: Iterable[MembershipFee],
    search: str | None = None,
    status: str | None = None,
    member_id: str | None = None,
) -> list[MembershipFee]:
    """Filter fees the way the membership screen does, sorted by member name.

    ``member_id`` restricts a member to their own row; ``status`` accepts
    ``up-to-date``, ``with-debt`` or ``all``.
    """
    wanted_status = None
    if status and status != "all":
        try:
            wanted_status = _STATUS_FILTERS[status]
        except KeyError:
            raise ValueError(f"Unknown membership status filter: {status!r}") from None
    needle = search.lower() if search else None

    result = []
    for fee in fees:
        if member_id is not None and fee.member_id != member_id:
            continue
        if wanted_status is not None and fee.status is not wanted_status:
            continue
        if needle and needle not in fee.member_name.lower() and needle not in fee.member_id.lower():
            continue
        result.append(fee)
    return sorted(result, key=lambda fee: fee.member_name)


def available_periods(today: date, count: int = 24) -> list[PeriodKey]:
    """The last ``count`` periods up to ``today``, newest first."""
    current = PeriodKey.from_date(today)
    return [current.shift(-offset) for offset in range(count)]


def _compare(current: Decimal, previous: Decimal) -> str:
    if current > previous:
        return "up"
    if current < previous:
        return "down"
    return "stable"


def dashboard_kpis(
    balance: Sequence[BalanceSheetEntry],
    cash_flow: Sequence[CashFlowEntry],
    previous_balance: Sequence[BalanceSheetEntry],
    previous_cash_flow: Sequence[CashFlowEntry],
) -> list[KPI]:
    """Headline figures for a period against the one before it."""
    current = summarize_balance_sheet(balance)
    previous = summarize_balance_sheet(previous_balance)
    net_cash = summarize_cash_flow(cash_flow).net_cash_flow
    previous_net_cash = summarize_cash_flow(previous_cash_flow).net_cash_flow
    net_worth = current.total_assets - current.total_liabilities
    previous_net_worth = previous.total_assets - previous.total_liabilities
    debt_ratio = safe_divide(current.total_liabilities, current.total_assets)

    return [
        KPI(
            id="1",
            label="Activos Totales",
            value=current.total_assets,
            previous_value=previous.total_assets,
            trend=_compare(current.total_assets, previous.total_assets),
            format="currency",
        ),
        KPI(
            id="2",
            label="Ingreso Neto",
            value=net_worth,
            previous_value=previous_net_worth,
            trend="up",
            format="currency",
        ),
        KPI(
            id="3",
            label="Flujo de Caja",
            value=net_cash,
            previous_value=previous_net_cash,
            trend=_compare(net_cash, previous_net_cash),
            format="currency",
        ),
        KPI(
            id="4",
            label="Ratio de Deuda",
            value=debt_ratio,
            trend="up" if debt_ratio < Decimal("0.5") else "down",
            format="percentage",
        ),
    ]


# === ERP-backed reports ===


class ReportingService:
    """Period reports that need more than one aggregation."""

    def __init__(self, aggregator: LedgerAggregator, concurrency: int = 3):
        self._aggregator = aggregator
        self._concurrency = concurrency

    async def dashboard_kpis(self, tenant_id: str, year: int, month: int) -> list[KPI]:
        period = PeriodKey(year, month)
        previous = period.previous()
        balance, cash_flow, previous_balance, previous_cash_flow = await asyncio.gather(
            self._aggregator.fetch_balance_sheet(tenant_id, period.year, period.month),
            self._aggregator.fetch_cash_flow(tenant_id, period.year, period.month),
            self._aggregator.fetch_balance_sheet(tenant_id, previous.year, previous.month),
            self._aggregator.fetch_cash_flow(tenant_id, previous.year, previous.month),
        )
        return dashboard_kpis(
            balance.records,
            cash_flow.records,
            previous_balance.records,
            previous_cash_flow.records,
        )

    async def cash_flow_history(
        self, tenant_id: str, year: int, month: int, months: int = 6
    ) -> list[CashFlowHistoryPoint]:
        """Per-period cash flow summaries, oldest first, ending at the given period."""
        periods = PeriodKey(year, month).trailing(months)
        results = await gather_bounded(
            periods,
            lambda p: self._aggregator.fetch_cash_flow(tenant_id, p.year, p.month),
            self._concurrency,
        )
        for period, result in zip(periods, results):
            if not result.success:
                logger.warning(
                    "cash_flow_history_gap",
                    tenant_id=tenant_id,
                    period=period.label,
                    error=result.error,
                )
        return [
            CashFlowHistoryPoint(period=period, summary=summarize_cash_flow(result.records))
            for period, result in zip(periods, results)
        ]
