"""Mapping of Odoo account types onto the cooperative's reporting taxonomy.

Both mappings are fixed lookup tables with an explicit default arm, so every
account type lands in exactly one category. A lookup miss is a classification
gap: it is resolved by the default, logged, and counted for data-quality
monitoring.

Known approximation: income and expense accounts have no balance-sheet bucket
of their own and fall into ``assets`` by default, which keeps the balance
equation computable but is not strict accounting treatment.
"""

from collections import Counter
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class BalanceSheetCategory(str, Enum):
    """Balance sheet sections."""

    ASSETS = "assets"
    LIABILITIES = "liabilities"
    EQUITY = "equity"


class CashFlowCategory(str, Enum):
    """Cash flow statement activities."""

    OPERATING = "operating"
    INVESTING = "investing"
    FINANCING = "financing"


BALANCE_SHEET_TYPES: dict[str, BalanceSheetCategory] = {
    "asset_receivable": BalanceSheetCategory.ASSETS,
    "asset_cash": BalanceSheetCategory.ASSETS,
    "asset_current": BalanceSheetCategory.ASSETS,
    "asset_non_current": BalanceSheetCategory.ASSETS,
    "asset_prepayments": BalanceSheetCategory.ASSETS,
    "asset_fixed": BalanceSheetCategory.ASSETS,
    "liability_payable": BalanceSheetCategory.LIABILITIES,
    "liability_credit_card": BalanceSheetCategory.LIABILITIES,
    "liability_current": BalanceSheetCategory.LIABILITIES,
    "liability_non_current": BalanceSheetCategory.LIABILITIES,
    "equity": BalanceSheetCategory.EQUITY,
    "equity_unaffected": BalanceSheetCategory.EQUITY,
}
BALANCE_SHEET_DEFAULT = BalanceSheetCategory.ASSETS

CASH_FLOW_TYPES: dict[str, CashFlowCategory] = {
    "asset_receivable": CashFlowCategory.OPERATING,
    "asset_cash": CashFlowCategory.OPERATING,
    "asset_current": CashFlowCategory.OPERATING,
    "asset_prepayments": CashFlowCategory.OPERATING,
    "liability_payable": CashFlowCategory.OPERATING,
    "liability_credit_card": CashFlowCategory.OPERATING,
    "liability_current": CashFlowCategory.OPERATING,
    "income": CashFlowCategory.OPERATING,
    "income_other": CashFlowCategory.OPERATING,
    "expense": CashFlowCategory.OPERATING,
    "expense_other": CashFlowCategory.OPERATING,
    "expense_depreciation": CashFlowCategory.OPERATING,
    "expense_direct_cost": CashFlowCategory.OPERATING,
    "asset_non_current": CashFlowCategory.INVESTING,
    "asset_fixed": CashFlowCategory.INVESTING,
    "equity": CashFlowCategory.FINANCING,
    "equity_unaffected": CashFlowCategory.FINANCING,
    "liability_non_current": CashFlowCategory.FINANCING,
}
CASH_FLOW_DEFAULT = CashFlowCategory.OPERATING

# Subcategories counted as "current" by the current ratio. Covers Odoo codes,
# codes used by manual imports, and the Spanish labels of imported statements.
CURRENT_ASSET_SUBCATEGORIES = frozenset({
    "asset_receivable",
    "asset_cash",
    "asset_current",
    "asset_prepayments",
    "current_assets",
    "cash",
    "receivable",
    "current",
    "prepayments",
    "activo corriente",
})

CURRENT_LIABILITY_SUBCATEGORIES = frozenset({
    "liability_payable",
    "liability_credit_card",
    "liability_current",
    "current_liabilities",
    "payable",
    "pasivo corriente",
})


class ClassificationGaps:
    """Counts account types that only the default arm could classify."""

    def __init__(self) -> None:
        self._counts: Counter[tuple[str, str]] = Counter()

    def record(self, taxonomy: str, account_type: str) -> None:
        self._counts[(taxonomy, account_type)] += 1

    def count(self, taxonomy: str, account_type: str) -> int:
        return self._counts[(taxonomy, account_type)]

    def snapshot(self) -> dict[str, dict[str, int]]:
        result: dict[str, dict[str, int]] = {}
        for (taxonomy, account_type), count in sorted(self._counts.items()):
            result.setdefault(taxonomy, {})[account_type] = count
        return result

    def reset(self) -> None:
        self._counts.clear()


classification_gaps = ClassificationGaps()


def _defaulted(taxonomy: str, account_type: str, category: Enum) -> None:
    classification_gaps.record(taxonomy, account_type)
    logger.debug(
        "account_type_defaulted",
        taxonomy=taxonomy,
        account_type=account_type,
        category=category.value,
    )


def classify_balance_sheet(account_type: str) -> BalanceSheetCategory:
    """Balance sheet category for an Odoo account type."""
    category = BALANCE_SHEET_TYPES.get(account_type)
    if category is None:
        _defaulted("balance_sheet", account_type, BALANCE_SHEET_DEFAULT)
        return BALANCE_SHEET_DEFAULT
    return category


def classify_cash_flow(account_type: str) -> CashFlowCategory:
    """Cash flow activity for an Odoo account type."""
    category = CASH_FLOW_TYPES.get(account_type)
    if category is None:
        _defaulted("cash_flow", account_type, CASH_FLOW_DEFAULT)
        return CASH_FLOW_DEFAULT
    return category


def _normalize(subcategory: str | None) -> str:
    return (subcategory or "").strip().lower()


def is_current_asset(subcategory: str | None) -> bool:
    return _normalize(subcategory) in CURRENT_ASSET_SUBCATEGORIES


def is_current_liability(subcategory: str | None) -> bool:
    return _normalize(subcategory) in CURRENT_LIABILITY_SUBCATEGORIES
