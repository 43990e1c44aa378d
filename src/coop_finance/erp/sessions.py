"""Per-tenant ERP connection cache."""

import asyncio
import weakref
from datetime import UTC, datetime

import structlog

from coop_finance.erp.connection import ConnectionConfig, ConnectionStatus, TenantConnection
from coop_finance.erp.store import SettingsStore
from coop_finance.erp.transport import ERPError

logger = structlog.get_logger(__name__)


class NotConfiguredError(ERPError):
    """The tenant has no ERP integration configured."""

    def __init__(self, tenant_id: str):
        super().__init__("ERP integration not configured", details={"tenant_id": tenant_id})
        self.tenant_id = tenant_id


class SessionManager:
    """Owns the live ``TenantConnection`` for each tenant.

    Connections are handed out unauthenticated; the transport logs in on first
    use and caches the session id on the connection object itself. Replacing a
    tenant's configuration drops the cached connection so the next resolution
    starts from the new credentials.
    """

    def __init__(self, store: SettingsStore):
        self._store = store
        self._connections: dict[str, TenantConnection] = {}
        # An entry lives only while some coroutine holds or awaits its lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._logger = logger.bind(component="session_manager")

    async def resolve(self, tenant_id: str) -> TenantConnection:
        """Return the tenant's connection, loading it from the store on a miss.

        Raises:
            NotConfiguredError: No stored configuration for the tenant.
        """
        connection = self._connections.get(tenant_id)
        if connection is not None:
            return connection

        async with self._lock_for(tenant_id):
            connection = self._connections.get(tenant_id)
            if connection is not None:
                return connection

            stored = await self._store.load_config(tenant_id)
            if stored is None:
                raise NotConfiguredError(tenant_id)

            connection = TenantConnection.from_config(tenant_id, stored.config)
            self._connections[tenant_id] = connection
            self._logger.debug("connection_cached", tenant_id=tenant_id)
            return connection

    def _lock_for(self, tenant_id: str) -> asyncio.Lock:
        lock = self._locks.get(tenant_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[tenant_id] = lock
        return lock

    def invalidate(self, tenant_id: str) -> None:
        """Forget the cached connection for a tenant."""
        if self._connections.pop(tenant_id, None) is not None:
            self._logger.info("connection_invalidated", tenant_id=tenant_id)

    def is_cached(self, tenant_id: str) -> bool:
        return tenant_id in self._connections

    async def save(self, tenant_id: str, config: ConnectionConfig) -> None:
        """Persist new credentials and force re-authentication on next use.

        Runs under the tenant lock so a resolution already loading the old
        configuration finishes before the cache entry is dropped.
        """
        async with self._lock_for(tenant_id):
            await self._store.upsert_config(tenant_id, config)
            self.invalidate(tenant_id)
        self._logger.info("config_saved", tenant_id=tenant_id, url=config.url)

    async def status(self, tenant_id: str) -> ConnectionStatus:
        stored = await self._store.load_config(tenant_id)
        if stored is None:
            return ConnectionStatus(is_connected=False, last_sync=None)
        return ConnectionStatus(is_connected=stored.is_connected, last_sync=stored.last_sync)

    async def mark_last_sync(self, tenant_id: str, timestamp: datetime | None = None) -> None:
        await self._store.mark_last_sync(tenant_id, timestamp or datetime.now(UTC))
