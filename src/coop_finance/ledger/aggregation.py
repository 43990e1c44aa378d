"""Aggregation of Odoo ledger data into balance sheet, cash flow and dues entries.

The balance sheet is a point-in-time snapshot: every posted line up to the
last day of the month is summed per account. The cash flow is a period delta:
only lines inside the month count, grouped by account and activity. Both
return a ``FetchResult`` instead of raising, so one failing fetch does not
take down its siblings in the same request.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

import structlog

from coop_finance.erp.connection import TenantConnection
from coop_finance.erp.sessions import SessionManager
from coop_finance.erp.transport import ERPError, OdooTransport
from coop_finance.fanout import gather_or_cancel
from coop_finance.ledger.classification import (
    CashFlowCategory,
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
from coop_finance.ledger.money import ZERO, round_half_up
from coop_finance.ledger.periods import PeriodKey

logger = structlog.get_logger(__name__)

# Stand-in for a per-cooperative fee; Odoo carries no such setting and the
# product owner has not defined where it should come from.
EXPECTED_CONTRIBUTION = Decimal("500")

# Cash flow groups smaller than this are rounding residue.
NOISE_FLOOR = Decimal("0.01")

BALANCE_LINE_FIELDS = ["account_id", "date", "debit", "credit", "name", "ref"]
CASH_FLOW_LINE_FIELDS = BALANCE_LINE_FIELDS + ["journal_id"]
ACCOUNT_FIELDS = ["code", "name", "account_type"]
PAYMENT_FIELDS = ["name", "amount", "payment_type", "date", "payment_reference"]
PARTNER_FIELDS = ["name", "ref", "credit", "debit"]


# === Pure transforms ===


def index_accounts(accounts: Iterable[AccountDescriptor]) -> dict[int, AccountDescriptor]:
    return {account.account_ref: account for account in accounts}


def net_balance_sheet(
    lines: Iterable[RawLedgerLine],
    accounts: Mapping[int, AccountDescriptor],
) -> list[BalanceSheetEntry]:
    """Sum lines per account and classify each account once.

    Accounts keep the order in which their first line appears. Lines whose
    account is not in the chart are skipped.
    """
    totals: dict[int, list[Decimal]] = {}
    for line in lines:
        if line.account_ref is None or line.account_ref not in accounts:
            continue
        debit_credit = totals.setdefault(line.account_ref, [ZERO, ZERO])
        debit_credit[0] += line.debit
        debit_credit[1] += line.credit

    entries: list[BalanceSheetEntry] = []
    for account_ref, (debit, credit) in totals.items():
        account = accounts[account_ref]
        entries.append(
            BalanceSheetEntry(
                account_code=account.code,
                account_name=account.name,
                category=classify_balance_sheet(account.account_type),
                subcategory=account.account_type,
                period_debit=debit,
                period_credit=credit,
                final_debit=debit,
                final_credit=credit,
                source_id=str(account_ref),
            )
        )
    return entries


def group_cash_flow(
    lines: Iterable[RawLedgerLine],
    accounts: Mapping[int, AccountDescriptor],
) -> list[CashFlowEntry]:
    """Net debit minus credit per (account code, activity) group.

    Groups below the noise floor are dropped; the rest are rounded to cents.
    """
    groups: dict[tuple[str, CashFlowCategory], tuple[str, Decimal]] = {}
    for line in lines:
        if line.account_ref is None:
            continue
        account = accounts.get(line.account_ref)
        if account is None:
            continue
        category = classify_cash_flow(account.account_type)
        key = (account.code, category)
        description, amount = groups.get(key, (account.name, ZERO))
        groups[key] = (description, amount + line.debit - line.credit)

    kept = [
        (description, amount, category)
        for (_, category), (description, amount) in groups.items()
        if abs(amount) >= NOISE_FLOOR
    ]
    return [
        CashFlowEntry(
            description=description,
            amount=round_half_up(amount, 2),
            category=category,
            source_id=f"cf-{index}",
        )
        for index, (description, amount, category) in enumerate(kept)
    ]


def payments_to_cash_flow(payments: Iterable[PaymentRecord]) -> list[CashFlowEntry]:
    """One operating entry per payment: inbound positive, outbound negative."""
    return [
        CashFlowEntry(
            description=payment.name or payment.payment_reference or "Pago",
            amount=payment.amount if payment.is_inbound else -payment.amount,
            category=CashFlowCategory.OPERATING,
            source_id=str(payment.payment_ref),
        )
        for payment in payments
    ]


def membership_fees_from_partners(
    partners: Iterable[PartnerRecord],
    expected: Decimal = EXPECTED_CONTRIBUTION,
) -> list[MembershipFee]:
    """Derive paid, debt and status per member against the expected contribution."""
    fees: list[MembershipFee] = []
    for partner in partners:
        paid = partner.debit
        fees.append(
            MembershipFee(
                member_id=partner.ref or f"M{partner.partner_ref:03d}",
                member_name=partner.name,
                expected_contribution=expected,
                payment_made=paid,
                debt=max(ZERO, expected - paid),
                status=(
                    MembershipStatus.UP_TO_DATE if paid >= expected
                    else MembershipStatus.WITH_DEBT
                ),
                partner_id=str(partner.partner_ref),
            )
        )
    return fees


# === ERP-backed pipeline ===


class LedgerAggregator:
    """Fetches a tenant's ledger data for a period and reshapes it."""

    def __init__(self, sessions: SessionManager, transport: OdooTransport):
        self._sessions = sessions
        self._transport = transport
        self._logger = logger.bind(component="ledger_aggregator")

    async def fetch_balance_sheet(
        self, tenant_id: str, year: int, month: int
    ) -> FetchResult[BalanceSheetEntry]:
        """Cumulative balances of every account as of the end of the month."""
        period = PeriodKey(year, month)
        try:
            connection = await self._sessions.resolve(tenant_id)
            lines, accounts = await gather_or_cancel(
                self._fetch_lines(
                    connection,
                    [["date", "<=", period.last_day.isoformat()]],
                    BALANCE_LINE_FIELDS,
                ),
                self._fetch_accounts(connection),
            )
        except ERPError as e:
            return self._failed("balance_sheet", tenant_id, period, e)

        entries = net_balance_sheet(lines, accounts)
        self._logger.info(
            "balance_sheet_aggregated",
            tenant_id=tenant_id,
            period=period.label,
            lines=len(lines),
            entries=len(entries),
        )
        return FetchResult.ok(entries)

    async def fetch_cash_flow(
        self, tenant_id: str, year: int, month: int
    ) -> FetchResult[CashFlowEntry]:
        """Net movements within the month, falling back to payment records."""
        period = PeriodKey(year, month)
        try:
            connection = await self._sessions.resolve(tenant_id)
            lines, accounts = await gather_or_cancel(
                self._fetch_lines(
                    connection,
                    [
                        ["date", ">=", period.first_day.isoformat()],
                        ["date", "<=", period.last_day.isoformat()],
                    ],
                    CASH_FLOW_LINE_FIELDS,
                ),
                self._fetch_accounts(connection),
            )
            entries = group_cash_flow(lines, accounts)
            if not entries:
                payments = await self._fetch_payments(connection, period)
                if payments:
                    self._logger.info(
                        "cash_flow_payment_fallback",
                        tenant_id=tenant_id,
                        period=period.label,
                        payments=len(payments),
                    )
                    entries = payments_to_cash_flow(payments)
        except ERPError as e:
            return self._failed("cash_flow", tenant_id, period, e)

        self._logger.info(
            "cash_flow_aggregated",
            tenant_id=tenant_id,
            period=period.label,
            lines=len(lines),
            entries=len(entries),
        )
        return FetchResult.ok(entries)

    async def fetch_membership_fees(
        self, tenant_id: str, year: int, month: int
    ) -> FetchResult[MembershipFee]:
        """Contribution standing of every customer-type member partner."""
        period = PeriodKey(year, month)
        try:
            connection = await self._sessions.resolve(tenant_id)
            records = await self._transport.search_read(
                connection,
                "res.partner",
                [["is_company", "=", False], ["customer_rank", ">", 0]]
                + connection.company_domain(),
                PARTNER_FIELDS,
            )
        except ERPError as e:
            return self._failed("membership_fees", tenant_id, period, e)

        fees = membership_fees_from_partners(PartnerRecord.from_record(r) for r in records)
        self._logger.info(
            "membership_fees_aggregated",
            tenant_id=tenant_id,
            period=period.label,
            members=len(fees),
        )
        return FetchResult.ok(fees)

    # === Fetch helpers ===

    async def _fetch_lines(
        self,
        connection: TenantConnection,
        date_domain: list[Any],
        fields: list[str],
    ) -> list[RawLedgerLine]:
        domain = date_domain + [["parent_state", "=", "posted"]] + connection.company_domain()
        records = await self._transport.search_read(
            connection, "account.move.line", domain, fields, order="account_id"
        )
        return [RawLedgerLine.from_record(record) for record in records]

    async def _fetch_accounts(self, connection: TenantConnection) -> dict[int, AccountDescriptor]:
        records = await self._transport.search_read(
            connection, "account.account", connection.company_domain(), ACCOUNT_FIELDS
        )
        return index_accounts(AccountDescriptor.from_record(record) for record in records)

    async def _fetch_payments(
        self, connection: TenantConnection, period: PeriodKey
    ) -> list[PaymentRecord]:
        domain = [
            ["date", ">=", period.first_day.isoformat()],
            ["date", "<=", period.last_day.isoformat()],
            ["state", "=", "posted"],
        ] + connection.company_domain()
        records = await self._transport.search_read(
            connection, "account.payment", domain, PAYMENT_FIELDS
        )
        return [PaymentRecord.from_record(record) for record in records]

    def _failed(
        self, report: str, tenant_id: str, period: PeriodKey, error: ERPError
    ) -> FetchResult[Any]:
        self._logger.warning(
            "aggregation_failed",
            report=report,
            tenant_id=tenant_id,
            period=period.label,
            error_type=type(error).__name__,
            error=str(error),
        )
        return FetchResult.failed(str(error))
