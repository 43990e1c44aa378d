"""XML-RPC transport for Odoo with lazy authentication.

Requests are XML-RPC documents (``xmlrpc.client`` marshalling) posted over an
``httpx.AsyncClient``. The URL scheme picks plain HTTP or TLS. Certificate
validation is off unless ``ERP_VERIFY_TLS`` is set: cooperatives commonly run
Odoo behind self-signed certificates, so the engine trusts whatever endpoint
the tenant administrator configured.
"""

import xmlrpc.client
from dataclasses import dataclass
from typing import Any
from xml.parsers.expat import ExpatError

import httpx
import structlog

from coop_finance.config import get_settings
from coop_finance.erp.connection import ConnectionConfig, TenantConnection

logger = structlog.get_logger(__name__)

COMMON_PATH = "/xmlrpc/2/common"
OBJECT_PATH = "/xmlrpc/2/object"


class ERPError(Exception):
    """Base exception for ERP integration errors."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class AuthError(ERPError):
    """Authentication failed or returned no user id."""

    pass


class RpcError(ERPError):
    """A remote execute call failed."""

    def __init__(self, model: str, method: str, cause: str):
        super().__init__(f"ERP execute failed on {model}.{method}: {cause}")
        self.model = model
        self.method = method
        self.cause = cause


class _RemoteFault(Exception):
    """Transport or protocol failure, normalised to a single message."""


@dataclass(frozen=True)
class ConnectionTest:
    """Outcome of checking a set of credentials."""

    success: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message}


@dataclass(frozen=True)
class Company:
    """A company available in the ERP database."""

    id: int
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


class OdooTransport:
    """Async XML-RPC client for the Odoo ``common`` and ``object`` services."""

    def __init__(self, timeout: float | None = None, verify_tls: bool | None = None):
        settings = get_settings()
        self._timeout = timeout if timeout is not None else settings.erp_timeout
        self._verify_tls = verify_tls if verify_tls is not None else settings.erp_verify_tls
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                verify=self._verify_tls,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OdooTransport":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # === Wire ===

    async def _invoke(self, url: str, method: str, params: tuple) -> Any:
        """Post one XML-RPC call and return the unmarshalled result."""
        client = await self._get_client()
        body = xmlrpc.client.dumps(params, methodname=method, allow_none=True)
        try:
            response = await client.post(
                url,
                content=body.encode("utf-8"),
                headers={"Content-Type": "text/xml"},
            )
            response.raise_for_status()
            result, _ = xmlrpc.client.loads(response.content)
        except xmlrpc.client.Fault as e:
            raise _RemoteFault(e.faultString) from e
        except httpx.HTTPStatusError as e:
            raise _RemoteFault(f"HTTP {e.response.status_code} from {url}") from e
        except httpx.HTTPError as e:
            raise _RemoteFault(str(e) or type(e).__name__) from e
        except (ExpatError, xmlrpc.client.ResponseError, ValueError, TypeError) as e:
            # ValueError covers bad <int>/<double> text and base64 payloads
            raise _RemoteFault(f"Malformed XML-RPC response: {e}") from e
        return result[0] if result else None

    # === Authentication ===

    async def authenticate(self, connection: TenantConnection) -> int:
        """Authenticate against the ERP and return the session (user) id."""
        try:
            uid = await self._invoke(
                f"{connection.url}{COMMON_PATH}",
                "authenticate",
                (
                    connection.database,
                    connection.username,
                    connection.secret_key.get_secret_value(),
                    {},
                ),
            )
        except _RemoteFault as e:
            raise AuthError(f"ERP authentication failed: {e}") from e

        if not uid:
            raise AuthError("Invalid ERP credentials")

        logger.info(
            "erp_authenticated",
            tenant_id=connection.tenant_id,
            database=connection.database,
            uid=uid,
        )
        return uid

    async def _ensure_authenticated(self, connection: TenantConnection) -> int:
        """Authenticate once per connection; concurrent callers wait for the first."""
        async with connection.auth_lock:
            if connection.session_id is None:
                connection.session_id = await self.authenticate(connection)
            return connection.session_id

    # === Execute ===

    async def call(
        self,
        connection: TenantConnection,
        model: str,
        method: str,
        args: list[Any],
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        """Run ``execute_kw`` for ``model.method`` on behalf of the tenant."""
        session_id = await self._ensure_authenticated(connection)
        try:
            return await self._invoke(
                f"{connection.url}{OBJECT_PATH}",
                "execute_kw",
                (
                    connection.database,
                    session_id,
                    connection.secret_key.get_secret_value(),
                    model,
                    method,
                    args,
                    kwargs or {},
                ),
            )
        except _RemoteFault as e:
            # The session may have expired; the next call re-authenticates.
            if connection.session_id == session_id:
                connection.session_id = None
            logger.warning(
                "erp_call_failed",
                tenant_id=connection.tenant_id,
                model=model,
                method=method,
                error=str(e),
            )
            raise RpcError(model, method, str(e)) from e

    async def search_read(
        self,
        connection: TenantConnection,
        model: str,
        domain: list[Any],
        fields: list[str] | None = None,
        limit: int | None = None,
        offset: int | None = None,
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        """Search and read records; unset options fall back to the ERP's defaults."""
        kwargs: dict[str, Any] = {}
        if fields:
            kwargs["fields"] = fields
        if limit is not None:
            kwargs["limit"] = limit
        if offset is not None:
            kwargs["offset"] = offset
        if order:
            kwargs["order"] = order

        result = await self.call(connection, model, "search_read", [domain], kwargs)
        return result if isinstance(result, list) else []

    # === Configuration helpers ===

    async def test_connection(self, config: ConnectionConfig) -> ConnectionTest:
        """Check credentials without touching any cached session."""
        connection = TenantConnection.from_config("connection-test", config)
        try:
            uid = await self.authenticate(connection)
        except AuthError as e:
            return ConnectionTest(success=False, message=str(e))
        return ConnectionTest(success=True, message=f"Connected successfully. User ID: {uid}")

    async def fetch_companies(self, config: ConnectionConfig) -> list[Company]:
        """List the companies visible to the given credentials."""
        connection = TenantConnection.from_config("company-lookup", config)
        records = await self.search_read(connection, "res.company", [], ["name"])
        return [Company(id=record["id"], name=record.get("name") or "") for record in records]
