"""Coop Finance - Odoo ledger reconciliation and ratio engine for cooperatives."""

__version__ = "0.1.0"

from coop_finance.analytics import (
    RATIO_NAMES,
    Ratio,
    RatioEngine,
    ReportingService,
    Trend,
)
from coop_finance.config import configure_logging, get_settings
from coop_finance.engine import FinancialEngine, SyncReport
from coop_finance.erp import (
    AuthError,
    ConnectionConfig,
    ERPError,
    InMemorySettingsStore,
    NotConfiguredError,
    OdooTransport,
    RpcError,
    SessionManager,
    SettingsStore,
)
from coop_finance.ledger import (
    BalanceSheetCategory,
    CashFlowCategory,
    FetchResult,
    LedgerAggregator,
    PeriodKey,
    classify_balance_sheet,
    classify_cash_flow,
)

__all__ = [
    # Version
    "__version__",
    # Engine
    "FinancialEngine",
    "SyncReport",
    # ERP
    "ConnectionConfig",
    "SessionManager",
    "SettingsStore",
    "InMemorySettingsStore",
    "OdooTransport",
    "ERPError",
    "AuthError",
    "RpcError",
    "NotConfiguredError",
    # Ledger
    "BalanceSheetCategory",
    "CashFlowCategory",
    "classify_balance_sheet",
    "classify_cash_flow",
    "FetchResult",
    "LedgerAggregator",
    "PeriodKey",
    # Analytics
    "RATIO_NAMES",
    "Ratio",
    "RatioEngine",
    "ReportingService",
    "Trend",
    # Config
    "get_settings",
    "configure_logging",
]
