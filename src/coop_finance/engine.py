"""Wiring of the ERP integration, aggregation and analytics components."""

import asyncio
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

import structlog

from coop_finance.analytics.ratios import RatioEngine
from coop_finance.analytics.reports import ReportingService
from coop_finance.config import Settings, get_settings, tenant_context
from coop_finance.erp.connection import ConnectionConfig, ConnectionStatus
from coop_finance.erp.sessions import SessionManager
from coop_finance.erp.store import SettingsStore
from coop_finance.erp.transport import Company, ConnectionTest, OdooTransport
from coop_finance.ledger.aggregation import LedgerAggregator
from coop_finance.ledger.models import (
    BalanceSheetEntry,
    CashFlowEntry,
    FetchResult,
    MembershipFee,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SyncReport:
    """Result of pulling one period's data for a tenant."""

    tenant_id: str
    year: int
    month: int
    balance_sheet: FetchResult[BalanceSheetEntry]
    cash_flow: FetchResult[CashFlowEntry]
    membership_fees: FetchResult[MembershipFee]
    synced_at: datetime | None = None

    @property
    def success(self) -> bool:
        return any(
            result.success
            for result in (self.balance_sheet, self.cash_flow, self.membership_fees)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenantId": self.tenant_id,
            "year": self.year,
            "month": self.month,
            "success": self.success,
            "balanceSheet": self.balance_sheet.to_dict(),
            "cashFlow": self.cash_flow.to_dict(),
            "membershipFees": self.membership_fees.to_dict(),
            "syncedAt": self.synced_at.isoformat() if self.synced_at else None,
        }


class FinancialEngine:
    """Single entry point used by the reporting API.

    Usage:
        async with FinancialEngine.from_settings(store) as engine:
            ratios = await engine.ratios.ratios_with_history("coop-1", 2024, 3)
    """

    def __init__(
        self,
        sessions: SessionManager,
        transport: OdooTransport,
        aggregator: LedgerAggregator,
        ratios: RatioEngine,
        reports: ReportingService,
    ):
        self.sessions = sessions
        self.transport = transport
        self.aggregator = aggregator
        self.ratios = ratios
        self.reports = reports

    @classmethod
    def from_settings(
        cls, store: SettingsStore, settings: Settings | None = None
    ) -> "FinancialEngine":
        settings = settings or get_settings()
        sessions = SessionManager(store)
        transport = OdooTransport(
            timeout=settings.erp_timeout, verify_tls=settings.erp_verify_tls
        )
        aggregator = LedgerAggregator(sessions, transport)
        return cls(
            sessions=sessions,
            transport=transport,
            aggregator=aggregator,
            ratios=RatioEngine(
                aggregator,
                history_months=settings.ratio_history_months,
                concurrency=settings.ratio_history_concurrency,
            ),
            reports=ReportingService(
                aggregator, concurrency=settings.ratio_history_concurrency
            ),
        )

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> "FinancialEngine":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # === Configuration ===

    async def save_config(self, tenant_id: str, config: ConnectionConfig) -> None:
        await self.sessions.save(tenant_id, config)

    async def status(self, tenant_id: str) -> ConnectionStatus:
        return await self.sessions.status(tenant_id)

    async def test_connection(self, config: ConnectionConfig) -> ConnectionTest:
        return await self.transport.test_connection(config)

    async def fetch_companies(self, config: ConnectionConfig) -> list[Company]:
        return await self.transport.fetch_companies(config)

    # === Sync ===

    async def sync(self, tenant_id: str, year: int, month: int) -> SyncReport:
        """Pull balance sheet, cash flow and membership fees for one period."""
        with tenant_context(tenant_id, operation="sync"):
            balance, cash_flow, fees = await asyncio.gather(
                self.aggregator.fetch_balance_sheet(tenant_id, year, month),
                self.aggregator.fetch_cash_flow(tenant_id, year, month),
                self.aggregator.fetch_membership_fees(tenant_id, year, month),
            )
        report = SyncReport(
            tenant_id=tenant_id,
            year=year,
            month=month,
            balance_sheet=balance,
            cash_flow=cash_flow,
            membership_fees=fees,
        )
        if not report.success:
            logger.warning("sync_failed", tenant_id=tenant_id, year=year, month=month)
            return report

        synced_at = datetime.now(UTC)
        await self.sessions.mark_last_sync(tenant_id, synced_at)
        logger.info(
            "sync_completed",
            tenant_id=tenant_id,
            year=year,
            month=month,
            balance_entries=len(balance.records),
            cash_flow_entries=len(cash_flow.records),
            members=len(fees.records),
        )
        return replace(report, synced_at=synced_at)
