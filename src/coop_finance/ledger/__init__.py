"""Ledger classification, domain records and aggregation."""

from coop_finance.ledger.aggregation import (
    EXPECTED_CONTRIBUTION,
    LedgerAggregator,
    group_cash_flow,
    membership_fees_from_partners,
    net_balance_sheet,
    payments_to_cash_flow,
)
from coop_finance.ledger.classification import (
    BalanceSheetCategory,
    CashFlowCategory,
    classification_gaps,
    classify_balance_sheet,
    classify_cash_flow,
)
from coop_finance.ledger.models import (
    AccountDescriptor,
    BalanceSheetEntry,
    CashFlowEntry,
    FetchResult,
    MembershipFee,
    MembershipStatus,
    PartnerRecord,
    PaymentRecord,
    RawLedgerLine,
)
from coop_finance.ledger.periods import PeriodKey

__all__ = [
    # Classification
    "BalanceSheetCategory",
    "CashFlowCategory",
    "classify_balance_sheet",
    "classify_cash_flow",
    "classification_gaps",
    # Records
    "RawLedgerLine",
    "AccountDescriptor",
    "PaymentRecord",
    "PartnerRecord",
    "BalanceSheetEntry",
    "CashFlowEntry",
    "MembershipFee",
    "MembershipStatus",
    "FetchResult",
    "PeriodKey",
    # Aggregation
    "LedgerAggregator",
    "EXPECTED_CONTRIBUTION",
    "net_balance_sheet",
    "group_cash_flow",
    "payments_to_cash_flow",
    "membership_fees_from_partners",
]
