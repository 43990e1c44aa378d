"""Settings store interface consumed by the session manager."""

from dataclasses import replace
from datetime import datetime
from typing import Protocol

from coop_finance.erp.connection import ConnectionConfig, StoredConfig


class SettingsStore(Protocol):
    """Source of truth for tenant ERP credentials.

    The engine never persists credentials itself; the host application
    provides an implementation backed by its own database.
    """

    async def load_config(self, tenant_id: str) -> StoredConfig | None: ...

    async def upsert_config(self, tenant_id: str, config: ConnectionConfig) -> None: ...

    async def mark_last_sync(self, tenant_id: str, timestamp: datetime) -> None: ...


class InMemorySettingsStore:
    """Dictionary-backed store for embedding and tests."""

    def __init__(self, configs: dict[str, ConnectionConfig] | None = None):
        self._configs: dict[str, StoredConfig] = {
            tenant_id: StoredConfig(config=config)
            for tenant_id, config in (configs or {}).items()
        }

    async def load_config(self, tenant_id: str) -> StoredConfig | None:
        return self._configs.get(tenant_id)

    async def upsert_config(self, tenant_id: str, config: ConnectionConfig) -> None:
        existing = self._configs.get(tenant_id)
        last_sync = existing.last_sync if existing else None
        self._configs[tenant_id] = StoredConfig(
            config=config, is_connected=True, last_sync=last_sync
        )

    async def mark_last_sync(self, tenant_id: str, timestamp: datetime) -> None:
        existing = self._configs.get(tenant_id)
        if existing is None:
            raise KeyError(tenant_id)
        self._configs[tenant_id] = replace(existing, last_sync=timestamp)
