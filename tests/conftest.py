"""Pytest configuration and fixtures."""

import asyncio
import xmlrpc.client
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from coop_finance.erp.connection import ConnectionConfig, TenantConnection
from coop_finance.erp.sessions import SessionManager
from coop_finance.erp.store import InMemorySettingsStore
from coop_finance.erp.transport import OdooTransport
from coop_finance.ledger.classification import (
    BalanceSheetCategory,
    CashFlowCategory,
    classification_gaps,
)
from coop_finance.ledger.models import BalanceSheetEntry, CashFlowEntry, FetchResult


def xmlrpc_response(value: Any, url: str = "https://erp.example.coop/xmlrpc/2/object") -> httpx.Response:
    """Build an HTTP response carrying an XML-RPC method response."""
    body = xmlrpc.client.dumps((value,), methodresponse=True, allow_none=True)
    return httpx.Response(200, content=body.encode(), request=httpx.Request("POST", url))


def xmlrpc_fault(message: str, url: str = "https://erp.example.coop/xmlrpc/2/object") -> httpx.Response:
    """Build an HTTP response carrying an XML-RPC fault."""
    body = xmlrpc.client.dumps(xmlrpc.client.Fault(1, message), methodresponse=True)
    return httpx.Response(200, content=body.encode(), request=httpx.Request("POST", url))


def decode_request(call: Any) -> tuple[str, tuple]:
    """Return (method name, params) from a recorded ``client.post`` call."""
    params, method = xmlrpc.client.loads(call.kwargs["content"])
    return method, params


def balance_entry(
    category: BalanceSheetCategory,
    debit: str = "0",
    credit: str = "0",
    subcategory: str = "",
    code: str = "100",
) -> BalanceSheetEntry:
    return BalanceSheetEntry(
        account_code=code,
        account_name=f"Account {code}",
        category=category,
        subcategory=subcategory,
        period_debit=Decimal(debit),
        period_credit=Decimal(credit),
        final_debit=Decimal(debit),
        final_credit=Decimal(credit),
    )


@pytest.fixture(autouse=True)
def reset_classification_gaps():
    classification_gaps.reset()
    yield
    classification_gaps.reset()


@pytest.fixture
def connection_config():
    """Credentials for a test tenant."""
    return ConnectionConfig(
        url="https://erp.example.coop/",
        database="coop_db",
        username="admin@example.coop",
        secret_key="api-key-123",
    )


@pytest.fixture
def connection(connection_config):
    """An unauthenticated tenant connection."""
    return TenantConnection.from_config("coop-1", connection_config)


@pytest.fixture
def store(connection_config):
    return InMemorySettingsStore({"coop-1": connection_config})


@pytest.fixture
def sessions(store):
    return SessionManager(store)


@pytest.fixture
def transport():
    return OdooTransport(timeout=5.0, verify_tls=False)


@pytest.fixture
def mock_http():
    """Mock httpx AsyncClient."""
    client = AsyncMock()
    client.post = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def odoo_records():
    """Records as Odoo's search_read returns them, keyed by model."""
    return {
        "account.account": [
            {"id": 1, "code": "101", "name": "Caja", "account_type": "asset_cash"},
            {"id": 2, "code": "120", "name": "Cuentas por cobrar", "account_type": "asset_receivable"},
            {"id": 3, "code": "150", "name": "Maquinaria", "account_type": "asset_fixed"},
            {"id": 4, "code": "201", "name": "Proveedores", "account_type": "liability_payable"},
            {"id": 5, "code": "301", "name": "Capital social", "account_type": "equity"},
            {"id": 6, "code": "401", "name": "Ventas", "account_type": "income"},
        ],
        "account.move.line": [
            {"id": 10, "account_id": [1, "101 Caja"], "date": "2024-03-05", "debit": 1000.0, "credit": 0.0, "name": "Aporte", "ref": False},
            {"id": 11, "account_id": [5, "301 Capital social"], "date": "2024-03-05", "debit": 0.0, "credit": 1000.0, "name": "Aporte", "ref": False},
            {"id": 12, "account_id": [1, "101 Caja"], "date": "2024-03-10", "debit": 0.0, "credit": 300.0, "name": "Compra", "ref": "F-1"},
            {"id": 13, "account_id": [3, "150 Maquinaria"], "date": "2024-03-10", "debit": 300.0, "credit": 0.0, "name": "Compra", "ref": "F-1"},
            {"id": 14, "account_id": [2, "120 Cuentas por cobrar"], "date": "2024-03-20", "debit": 250.5, "credit": 0.0, "name": "Venta", "ref": False},
            {"id": 15, "account_id": [6, "401 Ventas"], "date": "2024-03-20", "debit": 0.0, "credit": 250.5, "name": "Venta", "ref": False},
            {"id": 16, "account_id": False, "date": "2024-03-21", "debit": 5.0, "credit": 0.0, "name": "Sin cuenta", "ref": False},
        ],
        "account.payment": [
            {"id": 31, "name": "PAY/001", "amount": 120.0, "payment_type": "inbound", "date": "2024-03-02", "payment_reference": False},
            {"id": 32, "name": False, "amount": 45.5, "payment_type": "outbound", "date": "2024-03-03", "payment_reference": "REF-9"},
        ],
        "res.partner": [
            {"id": 7, "name": "Ana Pérez", "ref": "S-001", "credit": 0.0, "debit": 500.0},
            {"id": 8, "name": "Luis Gómez", "ref": False, "credit": 0.0, "debit": 300.0},
        ],
    }


@pytest.fixture
def fake_transport(odoo_records):
    """Transport double whose search_read serves ``odoo_records`` by model."""
    transport = MagicMock(spec=OdooTransport)

    async def search_read(connection, model, domain, fields=None, **kwargs):
        return list(odoo_records.get(model, []))

    transport.search_read = AsyncMock(side_effect=search_read)
    return transport


class StubAggregator:
    """Aggregator double serving canned entries per (year, month).

    ``delays`` maps a period to seconds slept before answering, to shuffle
    completion order in concurrency tests. ``failing`` holds
    (kind, year, month) triples answered with a failed result.
    """

    def __init__(self, balance=None, cash_flow=None, delays=None, failing=()):
        self.balance = balance or {}
        self.cash_flow = cash_flow or {}
        self.delays = delays or {}
        self.failing = set(failing)
        self.calls: list[tuple[str, int, int]] = []

    async def _answer(self, kind, table, year, month):
        self.calls.append((kind, year, month))
        await asyncio.sleep(self.delays.get((year, month), 0))
        if (kind, year, month) in self.failing:
            return FetchResult.failed("ERP execute failed on account.move.line.search_read: boom")
        return FetchResult.ok(list(table.get((year, month), [])))

    async def fetch_balance_sheet(self, tenant_id, year, month):
        return await self._answer("balance_sheet", self.balance, year, month)

    async def fetch_cash_flow(self, tenant_id, year, month):
        return await self._answer("cash_flow", self.cash_flow, year, month)


def cash_entry(category: CashFlowCategory, amount: str, description: str = "x") -> CashFlowEntry:
    return CashFlowEntry(
        description=description,
        amount=Decimal(amount),
        category=category,
        source_id="cf-0",
    )
