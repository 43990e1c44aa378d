"""Connection parameters for a tenant's Odoo instance."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, Field, SecretStr, field_validator


class ConnectionConfig(BaseModel):
    """Credentials an administrator supplies for a tenant's ERP."""

    url: str = Field(..., min_length=1, description="ERP base URL")
    database: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    secret_key: SecretStr = Field(..., description="Password or API key")
    company_id: int | None = Field(default=None, description="Restrict reads to one company")

    @field_validator("url")
    @classmethod
    def _normalize_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return value

    @field_validator("company_id")
    @classmethod
    def _drop_empty_company(cls, value: int | None) -> int | None:
        # 0 comes through from forms that mean "no filter"
        return value or None


@dataclass(frozen=True)
class StoredConfig:
    """What the settings store keeps for a tenant."""

    config: ConnectionConfig
    is_connected: bool = True
    last_sync: datetime | None = None


@dataclass
class TenantConnection:
    """Live connection state for one tenant.

    ``session_id`` is the uid returned by the ERP's ``authenticate``; it is
    filled lazily by the transport and cleared after a failed call.
    """

    tenant_id: str
    url: str
    database: str
    username: str
    secret_key: SecretStr
    company_id: int | None = None
    session_id: int | None = None
    auth_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @classmethod
    def from_config(cls, tenant_id: str, config: ConnectionConfig) -> "TenantConnection":
        """Build an unauthenticated connection from stored credentials."""
        return cls(
            tenant_id=tenant_id,
            url=config.url,
            database=config.database,
            username=config.username,
            secret_key=config.secret_key,
            company_id=config.company_id,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.session_id is not None

    def company_domain(self) -> list[list]:
        """Domain clause restricting reads to the configured company, if any."""
        if self.company_id:
            return [["company_id", "=", self.company_id]]
        return []


@dataclass(frozen=True)
class ConnectionStatus:
    """Integration status reported to the settings screen."""

    is_connected: bool
    last_sync: datetime | None

    def to_dict(self) -> dict:
        return {
            "isConnected": self.is_connected,
            "lastSync": self.last_sync.isoformat() if self.last_sync else None,
        }
