"""ERP integration: connections, session cache and XML-RPC transport."""

from coop_finance.erp.connection import (
    ConnectionConfig,
    ConnectionStatus,
    StoredConfig,
    TenantConnection,
)
from coop_finance.erp.sessions import NotConfiguredError, SessionManager
from coop_finance.erp.store import InMemorySettingsStore, SettingsStore
from coop_finance.erp.transport import (
    AuthError,
    Company,
    ConnectionTest,
    ERPError,
    OdooTransport,
    RpcError,
)

__all__ = [
    # Connections
    "ConnectionConfig",
    "ConnectionStatus",
    "StoredConfig",
    "TenantConnection",
    # Sessions
    "SessionManager",
    "SettingsStore",
    "InMemorySettingsStore",
    # Transport
    "OdooTransport",
    "ConnectionTest",
    "Company",
    # Errors
    "ERPError",
    "AuthError",
    "RpcError",
    "NotConfiguredError",
]
