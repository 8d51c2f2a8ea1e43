"""
Tests for the portfolio domain layer.

Tests pure domain services and entities in isolation.
No external dependencies or IO required.
"""

from datetime import date

import pytest

from dms.domain.portfolio.capital_gains import (
    calculate_capital_gains,
    classify_capital_gain,
    format_capital_gains_dollar,
    format_capital_gains_percentage,
)
from dms.domain.portfolio.cusip import cusip_check_digit, is_cusip
from dms.domain.portfolio.distributions import (
    estimate_distributions_per_year,
    select_distribution,
)
from dms.domain.portfolio.entities import DivDeposit, MonthRef, RiskGroup, ScreenerRow, Trade
from dms.domain.portfolio.errors import InvalidMonthError, OpenPositionsError
from dms.domain.portfolio.summary import (
    activity_months,
    activity_years,
    build_year_graph,
    parse_month,
    summarize_month,
)
from dms.domain.portfolio.universe_filters import (
    UniverseFilterCriteria,
    apply_expired_filter,
    apply_expired_with_positions_filter,
    apply_risk_group_filter,
    apply_symbol_filter,
    apply_yield_filter,
    calculate_yield_percent,
    enrich_universe_with_risk_groups,
    filter_universes,
    sort_universes,
)


def _trade(
    trade_id: str,
    universe_id: str,
    buy: float,
    quantity: float,
    sell: float = 0.0,
    sell_date=None,
) -> Trade:
    return Trade(
        id=trade_id,
        universe_id=universe_id,
        account_id="acct",
        buy=buy,
        sell=sell,
        buy_date=date(2024, 1, 5),
        quantity=quantity,
        sell_date=sell_date,
    )


def _deposit(when: date, amount: float, universe_id=None) -> DivDeposit:
    return DivDeposit(
        id=f"d-{when.isoformat()}-{amount}",
        date=when,
        amount=amount,
        account_id="acct",
        div_deposit_type_id="type",
        universe_id=universe_id,
    )


TRADES = [
    _trade("t1", "u-eq", buy=10.0, quantity=10.0),
    _trade("t2", "u-inc", buy=20.0, quantity=4.0, sell=25.0, sell_date=date(2024, 3, 10)),
    _trade("t3", "u-eq", buy=5.0, quantity=10.0, sell=4.0, sell_date=date(2024, 1, 20)),
]
DEPOSITS = [
    _deposit(date(2024, 1, 2), 1000.0),
    _deposit(date(2024, 3, 5), 15.0, universe_id="u-inc"),
    _deposit(date(2024, 3, 20), 200.0),
]
RISK_GROUPS = {"u-eq": "Equities", "u-inc": "Income"}


class TestCapitalGains:
    """Tests for capital gain calculation and formatting."""

    def test_gain_and_percentage(self) -> None:
        """A sale above cost yields a positive dollar and percentage gain."""
        assert calculate_capital_gains(10.0, 12.0, 5.0) == pytest.approx((10.0, 20.0))

    def test_zero_buy_price_has_zero_percentage(self) -> None:
        """A free position cannot express a percentage gain."""
        assert calculate_capital_gains(0.0, 3.0, 2.0) == (6.0, 0.0)

    def test_non_finite_input_yields_zero(self) -> None:
        """NaN inputs produce no gain rather than propagating NaN."""
        assert calculate_capital_gains(float("nan"), 3.0, 2.0) == (0.0, 0.0)

    def test_classification(self) -> None:
        """Gains, losses and break-even trades get distinct classes."""
        assert classify_capital_gain(1.0) == "gain"
        assert classify_capital_gain(-0.01) == "loss"
        assert classify_capital_gain(0.0) == "neutral"

    def test_percentage_format(self) -> None:
        """Percentages have two decimals, N/A when the cost is zero."""
        assert format_capital_gains_percentage(10.0, 20.0) == "20.00%"
        assert format_capital_gains_percentage(0.0, 20.0) == "N/A"

    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (1234.5678, "$1,234.5678"),
            (-500.25, "-$500.25"),
            (12.5, "$12.50"),
            (1.23456, "$1.2346"),
            (float("inf"), "$0.00"),
        ],
    )
    def test_dollar_format(self, amount: float, expected: str) -> None:
        """Dollar amounts keep between two and four decimals."""
        assert format_capital_gains_dollar(amount) == expected


class TestCusip:
    """Tests for CUSIP recognition."""

    def test_check_digit(self) -> None:
        """The modulus-10 check digit of a well-known CUSIP is computed."""
        assert cusip_check_digit("03783310") == 0

    def test_valid_cusip(self) -> None:
        """A CUSIP with a correct check digit is recognised."""
        assert is_cusip("037833100")
        assert is_cusip(" 037833100 ")

    def test_wrong_check_digit(self) -> None:
        """A single wrong check digit disqualifies the value."""
        assert not is_cusip("037833101")

    def test_tickers_are_not_cusips(self) -> None:
        """Tickers, even nine character ones, are never CUSIPs."""
        assert not is_cusip("PDI")
        assert not is_cusip("ABCDEFGH1")
        assert not is_cusip("")


class TestDistributions:
    """Tests for distribution selection and frequency estimation."""

    MONTHLY = [
        (date(2024, 1, 15), 0.2),
        (date(2024, 2, 15), 0.2),
        (date(2024, 3, 15), 0.2),
        (date(2024, 4, 15), 0.21),
        (date(2024, 5, 15), 0.22),
    ]

    def test_upcoming_distribution_is_selected(self) -> None:
        """The first ex-date on or after today wins."""
        selected = select_distribution(self.MONTHLY, date(2024, 4, 20))
        assert selected is not None
        assert selected.ex_date == date(2024, 5, 15)
        assert selected.distribution == 0.22
        assert selected.distributions_per_year == 12

    def test_latest_past_distribution_when_none_upcoming(self) -> None:
        """Without a future ex-date the most recent one is used."""
        quarterly = [
            (date(2023, 10, 10), 0.5),
            (date(2023, 1, 10), 0.5),
            (date(2023, 7, 10), 0.55),
            (date(2023, 4, 10), 0.5),
        ]
        selected = select_distribution(quarterly, date(2024, 1, 1))
        assert selected is not None
        assert selected.ex_date == date(2023, 10, 10)
        assert selected.distributions_per_year == 4

    def test_empty_history(self) -> None:
        """No history means no distribution."""
        assert select_distribution([], date(2024, 1, 1)) is None

    def test_single_payment_is_annual(self) -> None:
        """One data point cannot reveal a schedule."""
        assert estimate_distributions_per_year([(date(2023, 6, 1), 1.0)], date(2024, 1, 1)) == 1


class TestSummary:
    """Tests for the monthly summary and yearly graph."""

    def test_parse_month(self) -> None:
        """A month maps to a half-open date range."""
        assert parse_month("2024-12") == (date(2024, 12, 1), date(2025, 1, 1))

    @pytest.mark.parametrize("month", ["2024-13", "2024-1", "", "March"])
    def test_invalid_month(self, month: str) -> None:
        """Anything but YYYY-MM with a real month is rejected."""
        with pytest.raises(InvalidMonthError):
            parse_month(month)

    def test_month_figures(self) -> None:
        """Deposits carry over earlier cash and gains; the rest is this month."""
        start, end = parse_month("2024-03")
        summary = summarize_month(TRADES, DEPOSITS, RISK_GROUPS, start, end)

        assert summary.deposits == pytest.approx(1190.0)
        assert summary.dividends == pytest.approx(15.0)
        assert summary.capital_gains == pytest.approx(20.0)
        assert summary.equities == pytest.approx(100.0)
        assert summary.income == pytest.approx(80.0)
        assert summary.tax_free_income == 0.0

    def test_year_graph_running_total(self) -> None:
        """Dividends and gains join the running total the following month."""
        points = build_year_graph(TRADES, DEPOSITS, 2024)

        assert len(points) == 12
        assert points[0].month == "01-2024"
        assert [p.deposits for p in points[:4]] == pytest.approx(
            [1000.0, 990.0, 1190.0, 1225.0]
        )
        assert points[2].dividends == pytest.approx(15.0)
        assert points[2].capital_gains == pytest.approx(20.0)

    def test_activity_calendar(self) -> None:
        """Months with sales or deposits are listed most recent first."""
        months = activity_months(TRADES, DEPOSITS)
        assert months == [MonthRef(2024, 3), MonthRef(2024, 1)]
        assert months[0].key == "2024-03"
        assert months[0].label == "03/2024"
        assert activity_years(TRADES, DEPOSITS) == [2024]


class TestUniverseFilters:
    """Tests for universe listing filters and ordering."""

    ROWS = [
        {"symbol": "PDI", "risk_group_id": "g1", "last_price": 20.0, "distribution": 0.2,
         "distributions_per_year": 12, "expired": False, "position": 0},
        {"symbol": "ECC", "risk_group_id": "g2", "last_price": None, "distribution": 0.14,
         "distributions_per_year": 12, "expired": True, "position": 500.0},
        {"symbol": "OXLC", "risk_group_id": "g1", "last_price": 5.0, "distribution": 0.09,
         "distributions_per_year": 12, "expired": True, "position": 0},
    ]

    def test_yield_percent(self) -> None:
        """Yield is the annual payout as a percentage of price."""
        assert calculate_yield_percent(self.ROWS[0]) == pytest.approx(12.0)
        assert calculate_yield_percent(self.ROWS[1]) == 0.0

    def test_nulls_sort_last_both_ways(self) -> None:
        """Rows without a price stay at the bottom in either direction."""
        ascending = sort_universes(self.ROWS, "last_price", "asc")
        descending = sort_universes(self.ROWS, "last_price", "desc")
        assert [r["symbol"] for r in ascending] == ["OXLC", "PDI", "ECC"]
        assert [r["symbol"] for r in descending] == ["PDI", "OXLC", "ECC"]

    def test_string_sort_is_case_insensitive(self) -> None:
        rows = [{"symbol": "b"}, {"symbol": "A"}, {"symbol": "c"}]
        assert [r["symbol"] for r in sort_universes(rows, "symbol", "asc")] == ["A", "b", "c"]

    def test_empty_direction_keeps_order(self) -> None:
        """An empty direction leaves rows as given."""
        assert sort_universes(self.ROWS, "symbol", "") == self.ROWS

    def test_expired_rows_hidden_unless_held(self) -> None:
        """Expired rows stay visible while a position is open."""
        visible = apply_expired_with_positions_filter(self.ROWS, None)
        assert [r["symbol"] for r in visible] == ["PDI", "ECC"]
        assert apply_expired_with_positions_filter(self.ROWS, True) == self.ROWS

    def test_filter_universes(self) -> None:
        """Symbol, risk group, expired and yield criteria combine."""
        criteria = UniverseFilterCriteria(
            symbol_filter="p", risk_group_filter="g1", expired_filter=False, min_yield_filter=10
        )
        assert [r["symbol"] for r in filter_universes(self.ROWS, criteria)] == ["PDI"]

    def test_yield_filter_requires_value(self) -> None:
        rows = [{"yield_percent": 8.0}, {"yield_percent": None}, {"yield_percent": 3.0}]
        assert apply_yield_filter(rows, 5) == [{"yield_percent": 8.0}]
        assert apply_yield_filter(rows, 0) == rows

    def test_symbol_filter_is_case_insensitive_substring(self) -> None:
        assert [r["symbol"] for r in apply_symbol_filter(self.ROWS, "xl")] == ["OXLC"]
        assert [r["symbol"] for r in apply_symbol_filter(self.ROWS, "c")] == ["ECC", "OXLC"]
        assert apply_symbol_filter(self.ROWS, "zzz") == []

    @pytest.mark.parametrize("empty", [None, ""])
    def test_empty_symbol_filter_keeps_every_row(self, empty) -> None:
        """No filter returns every row in its original order."""
        assert apply_symbol_filter(self.ROWS, empty) == self.ROWS

    def test_yield_filter_boundary(self) -> None:
        """The minimum itself passes; anything below it does not."""
        rows = [{"yield_percent": 4.999}, {"yield_percent": 5.0}]
        assert apply_yield_filter(rows, 5.0) == [{"yield_percent": 5.0}]

    def test_negative_min_yield_disables_filter(self) -> None:
        rows = [{"yield_percent": None}, {"yield_percent": 2.0}]
        assert apply_yield_filter(rows, -1) == rows

    def test_expired_filter(self) -> None:
        assert [r["symbol"] for r in apply_expired_filter(self.ROWS, True)] == ["ECC", "OXLC"]
        assert [r["symbol"] for r in apply_expired_filter(self.ROWS, False)] == ["PDI"]
        assert apply_expired_filter(self.ROWS, None) == self.ROWS

    @pytest.mark.parametrize("direction", ["asc", "desc"])
    def test_sort_is_stable_for_equal_keys(self, direction: str) -> None:
        """Rows with the same key keep their input order in both directions."""
        rows = [
            {"symbol": "A", "distribution": 0.1},
            {"symbol": "B", "distribution": 0.2},
            {"symbol": "C", "distribution": 0.1},
            {"symbol": "D", "distribution": 0.2},
        ]
        ordered = [r["symbol"] for r in sort_universes(rows, "distribution", direction)]
        expected = ["A", "C", "B", "D"] if direction == "asc" else ["B", "D", "A", "C"]
        assert ordered == expected

    def test_enrich_with_risk_group_names(self) -> None:
        """Unknown risk group ids fall back to the id itself."""
        enriched = enrich_universe_with_risk_groups(
            self.ROWS[:2], [RiskGroup(id="g1", name="Income")]
        )
        assert enriched[0]["risk_group"] == "Income"
        assert enriched[1]["risk_group"] == "g2"
        assert "risk_group" not in self.ROWS[0]
        assert apply_risk_group_filter(enriched, "Income") == [enriched[0]]


class TestEntities:
    """Tests for entity behaviour and domain errors."""

    def test_screener_row_qualifies_only_with_every_flag(self) -> None:
        row = ScreenerRow(id="s", symbol="PDI", risk_group_id="g")
        assert not row.qualifies
        assert ScreenerRow(
            id="s",
            symbol="PDI",
            risk_group_id="g",
            has_volitility=True,
            objectives_understood=True,
            graph_higher_before_2008=True,
        ).qualifies

    def test_trade_is_open_until_sold(self) -> None:
        assert TRADES[0].is_open
        assert not TRADES[1].is_open

    def test_open_positions_error_names_symbol(self) -> None:
        """The error message tells the user what blocks the delete."""
        error = OpenPositionsError("PDI", 2)
        assert "PDI" in error.message
