import pytest
from datetime import datetime, timedelta, timezone

from profit_ladder.portfolio.calculator import PortfolioCalculator, format_time_since
from profit_ladder.portfolio.models import Position, PriceInfo
from profit_ladder.utils.validation_utilities import MAX_LADDER_LEVELS

NOW = datetime(2024, 3, 1, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
def calculator():
    return PortfolioCalculator()


def test_derived_fields_for_one_position(calculator):
    position = Position(ticker="ABC", avg_price=100, num_shares=10)
    prices = {"ABC": PriceInfo(price=110, time=NOW - timedelta(hours=3), open=104, prev_close=100)}

    valued, totals = calculator.valuate([position], prices, now=NOW)
    row = valued[0]

    assert row.cost_basis == 1000
    assert row.total_value == 1100
    assert row.profit == 100
    assert row.profit_pct == pytest.approx(10.0)
    assert row.change_today == 10
    assert row.change_pct_today == pytest.approx(10.0)
    assert row.gap_pct == pytest.approx(6.0)
    assert row.time_since_last_trade == "3 hours ago"
    assert totals.position_count == 1


def test_profit_identity_holds(calculator):
    """totalValue - costBasis == profit for every position, shorts included"""
    positions = [
        Position(ticker="ABC", avg_price=12.37, num_shares=13),
        Position(ticker="XYZ", avg_price=99.99, num_shares=-7),
        Position(ticker="ZERO", avg_price=0, num_shares=5),
    ]
    prices = {"ABC": PriceInfo(price=13.11), "XYZ": PriceInfo(price=101.01), "ZERO": PriceInfo(price=3)}

    valued, _ = calculator.valuate(positions, prices, now=NOW)

    for row in valued:
        assert row.total_value - row.cost_basis == pytest.approx(row.profit)


def test_zero_cost_basis_gives_zero_percent(calculator):
    valued, totals = calculator.valuate(
        [Position(ticker="FREE", avg_price=0, num_shares=10)],
        {"FREE": PriceInfo(price=5)},
        now=NOW,
    )
    assert valued[0].profit == 50
    assert valued[0].profit_pct == 0
    assert totals.profit_pct == 0


def test_short_position_profit_sign(calculator):
    """Negative share counts invert profit in both directions"""
    short = Position(ticker="ABC", avg_price=100, num_shares=-10)

    rising, _ = calculator.valuate([short], {"ABC": PriceInfo(price=110)}, now=NOW)
    falling, _ = calculator.valuate([short], {"ABC": PriceInfo(price=90)}, now=NOW)

    assert rising[0].profit == -100
    assert falling[0].profit == 100


def test_total_percentage_uses_aggregate_basis(calculator):
    positions = [
        Position(ticker="ABC", avg_price=100, num_shares=10),
        Position(ticker="XYZ", avg_price=50, num_shares=10),
    ]
    prices = {"ABC": PriceInfo(price=110), "XYZ": PriceInfo(price=45)}

    _, totals = calculator.valuate(positions, prices, now=NOW)

    assert totals.cost_basis == 1500
    assert totals.profit == 50
    assert totals.profit_pct == pytest.approx(3.3333, rel=1e-4)


def test_total_day_change_and_gap_weighted_by_shares(calculator):
    """Day change and gap totals use the share-weighted previous close value as base"""
    positions = [
        Position(ticker="ABC", avg_price=100, num_shares=10),
        Position(ticker="XYZ", avg_price=50, num_shares=30),
    ]
    prices = {
        "ABC": PriceInfo(price=110, open=105, prev_close=100),
        "XYZ": PriceInfo(price=45, open=50, prev_close=50),
    }

    valued, totals = calculator.valuate(positions, prices, now=NOW)

    assert [v.change_pct_today for v in valued] == pytest.approx([10.0, -10.0])
    # (10*10 - 5*30) / (100*10 + 50*30)
    assert totals.change_pct_today == pytest.approx(-2.0)
    # (5*10 - 5*30) / (100*10 + 50*30)
    assert totals.gap_pct == pytest.approx(-4.0)


def test_price_falls_back_to_cached_last_price(calculator):
    position = Position(ticker="ABC", avg_price=100, num_shares=2, last_price=95)

    valued, _ = calculator.valuate([position], {}, now=NOW)

    assert valued[0].last_price == 95
    assert valued[0].total_value == 190
    assert valued[0].change_pct_today == 0
    assert valued[0].time_since_last_trade == "N/A"


def test_format_time_since():
    assert format_time_since(None) == "N/A"
    assert format_time_since(NOW, now=NOW) == "0 seconds ago"
    assert format_time_since(NOW - timedelta(seconds=61), now=NOW) == "1 minute ago"
    assert format_time_since(NOW - timedelta(days=2, hours=5), now=NOW) == "2 days ago"
    assert format_time_since(NOW - timedelta(days=400), now=NOW) == "1 year ago"


def test_ladder_scenario(calculator):
    rows = calculator.build_ladder(avg_price=100, num_shares=10, price_step=5, levels=2, current_price=105)

    assert [r.price_level for r in rows] == [90, 95, 100, 105, 110]
    row = rows[3]
    assert row.profit_loss == 50
    assert row.percent_change == pytest.approx(5.0)
    assert [r.highlighted for r in rows] == [False, False, False, True, False]


def test_ladder_skips_negative_levels(calculator):
    rows = calculator.build_ladder(avg_price=4, num_shares=1, price_step=3, levels=2, current_price=4)
    assert [r.price_level for r in rows] == [1, 4, 7, 10]


def test_ladder_levels_are_capped(calculator):
    rows = calculator.build_ladder(avg_price=1000, num_shares=1, price_step=1, levels=1_000_000)

    assert len(rows) == 2 * MAX_LADDER_LEVELS + 1
    assert rows[0].price_level == 1000 - MAX_LADDER_LEVELS
    assert rows[-1].price_level == 1000 + MAX_LADDER_LEVELS


def test_ladder_tie_highlights_lower_level(calculator):
    rows = calculator.build_ladder(avg_price=100, num_shares=1, price_step=10, levels=1, current_price=105)
    assert [r.price_level for r in rows if r.highlighted] == [100]


def test_ladder_without_current_price_highlights_average(calculator):
    rows = calculator.build_ladder(avg_price=100, num_shares=1, price_step=10, levels=1)
    assert [r.price_level for r in rows if r.highlighted] == [100]


def test_ladder_for_short_position(calculator):
    rows = calculator.build_ladder(avg_price=100, num_shares=-10, price_step=5, levels=1, current_price=100)
    assert [r.profit_loss for r in rows] == [50, 0, -50]
