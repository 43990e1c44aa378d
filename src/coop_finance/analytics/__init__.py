"""Ratios, summaries and dashboard reports."""

from coop_finance.analytics.ratios import (
    RATIO_NAMES,
    Ratio,
    RatioEngine,
    RatioHistoryPoint,
    RatioWithHistory,
    Trend,
    compute_ratios,
)
from coop_finance.analytics.reports import (
    KPI,
    BalanceSheetSummary,
    CashFlowHistoryPoint,
    CashFlowSummary,
    MembershipFeeSummary,
    ReportingService,
    available_periods,
    filter_membership_fees,
    summarize_balance_sheet,
    summarize_cash_flow,
    summarize_membership_fees,
)

__all__ = [
    # Ratios
    "RATIO_NAMES",
    "Ratio",
    "RatioEngine",
    "RatioHistoryPoint",
    "RatioWithHistory",
    "Trend",
    "compute_ratios",
    # Reports
    "KPI",
    "BalanceSheetSummary",
    "CashFlowSummary",
    "CashFlowHistoryPoint",
    "MembershipFeeSummary",
    "ReportingService",
    "available_periods",
    "filter_membership_fees",
    "summarize_balance_sheet",
    "summarize_cash_flow",
    "summarize_membership_fees",
]
