"""Tests for report summaries, KPIs and listings."""

from datetime import date
from decimal import Decimal

import pytest

from conftest import StubAggregator, balance_entry, cash_entry
from coop_finance.analytics.reports import (
    ReportingService,
    available_periods,
    dashboard_kpis,
    filter_membership_fees,
    is_balanced,
    summarize_balance_sheet,
    summarize_cash_flow,
    summarize_membership_fees,
)
from coop_finance.ledger.aggregation import membership_fees_from_partners
from coop_finance.ledger.classification import BalanceSheetCategory as BS
from coop_finance.ledger.classification import CashFlowCategory as CF
from coop_finance.ledger.models import PartnerRecord
from coop_finance.ledger.periods import PeriodKey


@pytest.fixture
def fees():
    return membership_fees_from_partners(
        [
            PartnerRecord(8, "Luis Gómez", debit=Decimal("300")),
            PartnerRecord(7, "Ana Pérez", ref="S-001", debit=Decimal("500")),
            PartnerRecord(9, "Beatriz Ruiz", ref="S-009", debit=Decimal("0")),
        ]
    )


class TestBalanceSheetSummary:
    """Tests for balance sheet totals."""

    def test_natural_sign_totals(self):
        summary = summarize_balance_sheet(
            [
                balance_entry(BS.ASSETS, debit="1000", credit="200"),
                balance_entry(BS.LIABILITIES, credit="500"),
                balance_entry(BS.EQUITY, credit="300"),
            ]
        )

        assert summary.total_assets == Decimal("800")
        assert summary.total_liabilities == Decimal("500")
        assert summary.total_equity == Decimal("300")
        assert summary.is_balanced is True

    def test_tolerance_is_strict(self):
        assert is_balanced(Decimal("100.009"), Decimal("50"), Decimal("50"))
        assert not is_balanced(Decimal("100.01"), Decimal("50"), Decimal("50"))

    def test_empty(self):
        assert summarize_balance_sheet([]).to_dict() == {
            "totalAssets": 0.0,
            "totalLiabilities": 0.0,
            "totalEquity": 0.0,
            "isBalanced": True,
        }


class TestCashFlowSummary:
    """Tests for cash flow totals."""

    def test_net_cash_flow(self):
        summary = summarize_cash_flow(
            [
                cash_entry(CF.OPERATING, "800"),
                cash_entry(CF.OPERATING, "-300"),
                cash_entry(CF.INVESTING, "-200"),
                cash_entry(CF.FINANCING, "-100"),
            ]
        )

        assert summary.operating == Decimal("500")
        assert summary.investing == Decimal("-200")
        assert summary.financing == Decimal("-100")
        assert summary.net_cash_flow == Decimal("200")


class TestMembershipFees:
    """Tests for membership summaries and filters."""

    def test_summary(self, fees):
        summary = summarize_membership_fees(fees)

        assert summary.total_expected == Decimal("1500")
        assert summary.total_paid == Decimal("800")
        assert summary.total_debt == Decimal("700")
        assert summary.members_with_debt == 2
        assert summary.total_members == 3
        assert round(summary.collection_rate, 2) == Decimal("53.33")

    def test_summary_without_members(self):
        summary = summarize_membership_fees([])

        assert summary.collection_rate == 0
        assert summary.total_members == 0

    def test_sorted_by_name(self, fees):
        names = [f.member_name for f in filter_membership_fees(fees)]

        assert names == ["Ana Pérez", "Beatriz Ruiz", "Luis Gómez"]

    def test_status_filter(self, fees):
        assert [f.member_id for f in filter_membership_fees(fees, status="up-to-date")] == ["S-001"]
        assert [f.member_id for f in filter_membership_fees(fees, status="with-debt")] == [
            "S-009",
            "M008",
        ]
        assert len(filter_membership_fees(fees, status="all")) == 3

    def test_unknown_status_is_rejected(self, fees):
        with pytest.raises(ValueError):
            filter_membership_fees(fees, status="late")

    def test_search_matches_name_or_member_id(self, fees):
        assert [f.member_id for f in filter_membership_fees(fees, search="gómez")] == ["M008"]
        assert [f.member_id for f in filter_membership_fees(fees, search="s-00")] == [
            "S-001",
            "S-009",
        ]

    def test_member_sees_only_own_row(self, fees):
        rows = filter_membership_fees(fees, member_id="S-009", status="all")

        assert [f.member_name for f in rows] == ["Beatriz Ruiz"]


class TestAvailablePeriods:
    """Tests for the period picker."""

    def test_newest_first(self):
        periods = available_periods(date(2024, 2, 10))

        assert len(periods) == 24
        assert periods[0] == PeriodKey(2024, 2)
        assert periods[2] == PeriodKey(2023, 12)
        assert periods[-1] == PeriodKey(2022, 3)


class TestDashboardKpis:
    """Tests for dashboard KPIs."""

    def test_kpis_against_previous_period(self):
        kpis = dashboard_kpis(
            [balance_entry(BS.ASSETS, debit="1000"), balance_entry(BS.LIABILITIES, credit="300")],
            [cash_entry(CF.OPERATING, "150")],
            [balance_entry(BS.ASSETS, debit="1200"), balance_entry(BS.LIABILITIES, credit="300")],
            [cash_entry(CF.OPERATING, "100")],
        )

        assets, net_income, cash, debt = kpis
        assert assets.label == "Activos Totales"
        assert assets.value == Decimal("1000")
        assert assets.trend == "down"
        assert net_income.value == Decimal("700")
        assert net_income.previous_value == Decimal("900")
        assert net_income.trend == "up"
        assert cash.trend == "up"
        assert debt.value == Decimal("0.3")
        assert debt.trend == "up"
        assert debt.to_dict() == {
            "id": "4",
            "label": "Ratio de Deuda",
            "value": 0.3,
            "trend": "up",
            "format": "percentage",
        }

    def test_high_debt_trends_down(self):
        kpis = dashboard_kpis(
            [balance_entry(BS.ASSETS, debit="100"), balance_entry(BS.LIABILITIES, credit="50")],
            [],
            [],
            [],
        )

        assert kpis[3].trend == "down"
        assert kpis[2].trend == "stable"


class TestReportingService:
    """Tests for ERP-backed reports."""

    @pytest.mark.asyncio
    async def test_dashboard_compares_previous_month(self):
        aggregator = StubAggregator(
            balance={
                (2024, 1): [balance_entry(BS.ASSETS, debit="900")],
                (2023, 12): [balance_entry(BS.ASSETS, debit="800")],
            }
        )
        service = ReportingService(aggregator)

        kpis = await service.dashboard_kpis("coop-1", 2024, 1)

        assert kpis[0].value == Decimal("900")
        assert kpis[0].previous_value == Decimal("800")
        assert ("balance_sheet", 2023, 12) in aggregator.calls

    @pytest.mark.asyncio
    async def test_cash_flow_history(self):
        aggregator = StubAggregator(
            cash_flow={
                (2024, 2): [cash_entry(CF.OPERATING, "500"), cash_entry(CF.INVESTING, "-200")],
                (2023, 12): [cash_entry(CF.FINANCING, "-100")],
            },
            delays={(2024, 2): 0.02},
            failing={("cash_flow", 2024, 1)},
        )
        service = ReportingService(aggregator, concurrency=2)

        history = await service.cash_flow_history("coop-1", 2024, 2, months=3)

        assert [point.to_dict() for point in history] == [
            {"year": 2023, "month": 12, "period": "12/2023", "operating": 0.0,
             "investing": 0.0, "financing": -100.0, "net": -100.0},
            {"year": 2024, "month": 1, "period": "1/2024", "operating": 0.0,
             "investing": 0.0, "financing": 0.0, "net": 0.0},
            {"year": 2024, "month": 2, "period": "2/2024", "operating": 500.0,
             "investing": -200.0, "financing": 0.0, "net": 300.0},
        ]
