"""Tests for holding valuation, transaction bookkeeping and position sizing."""

from __future__ import annotations

import pytest

from portfolio import (
    apply_transaction,
    position_size,
    score_label,
    summarize_holdings,
    value_holding,
)

STOCK = {"id": 1, "symbol": "AAPL", "name": "Apple Inc."}


def _holding(shares=10.0, average_cost=100.0, holding_id=7):
    return {"id": holding_id, "stock_id": 1, "shares": shares, "average_cost": average_cost}


class TestValueHolding:
    def test_gain(self) -> None:
        valued = value_holding(_holding(), STOCK, 120.0)
        assert valued["stock"] == STOCK
        assert valued["current_price"] == 120.0
        assert valued["total_value"] == pytest.approx(1200.0)
        assert valued["gain_loss"] == pytest.approx(200.0)
        assert valued["gain_loss_pct"] == pytest.approx(20.0)

    def test_loss(self) -> None:
        valued = value_holding(_holding(), STOCK, 75.0)
        assert valued["gain_loss"] == pytest.approx(-250.0)
        assert valued["gain_loss_pct"] == pytest.approx(-25.0)

    def test_zero_cost_basis(self) -> None:
        valued = value_holding(_holding(average_cost=0.0), STOCK, 10.0)
        assert valued["gain_loss_pct"] == 0

    def test_missing_price(self) -> None:
        valued = value_holding(_holding(), STOCK, None)
        assert valued["current_price"] == 0
        assert valued["total_value"] == 0


class TestSummarizeHoldings:
    def test_totals(self) -> None:
        valued = [
            value_holding(_holding(10, 100, 1), STOCK, 120.0),
            value_holding(_holding(5, 200, 2), STOCK, 180.0),
        ]
        summary = summarize_holdings(valued)
        assert summary["total_value"] == pytest.approx(2100.0)
        assert summary["total_cost"] == pytest.approx(2000.0)
        assert summary["total_gain_loss"] == pytest.approx(100.0)
        assert summary["total_gain_loss_pct"] == pytest.approx(5.0)

    def test_empty(self) -> None:
        assert summarize_holdings([]) == {
            "total_value": 0,
            "total_cost": 0,
            "total_gain_loss": 0,
            "total_gain_loss_pct": 0,
        }


class TestApplyTransaction:
    def test_first_buy_creates_holding(self) -> None:
        tx = {"stock_id": 1, "type": "buy", "shares": 10, "price": 50.0}
        action, fields = apply_transaction(None, tx)
        assert action == "create"
        assert fields["shares"] == 10
        assert fields["average_cost"] == 50.0

    def test_buy_averages_cost(self) -> None:
        tx = {"stock_id": 1, "type": "buy", "shares": 10, "price": 200.0}
        action, fields = apply_transaction(_holding(10, 100), tx)
        assert action == "update"
        assert fields == {"shares": 20, "average_cost": pytest.approx(150.0)}

    def test_partial_sell(self) -> None:
        tx = {"stock_id": 1, "type": "sell", "shares": 4, "price": 130.0}
        assert apply_transaction(_holding(10, 100), tx) == ("update", {"shares": 6})

    def test_sell_out(self) -> None:
        tx = {"stock_id": 1, "type": "sell", "shares": 12, "price": 130.0}
        assert apply_transaction(_holding(10, 100), tx) == ("delete", None)

    def test_sell_without_position(self) -> None:
        tx = {"stock_id": 1, "type": "sell", "shares": 1, "price": 130.0}
        assert apply_transaction(None, tx) == (None, None)


class TestPositionSize:
    def test_two_percent_rule(self) -> None:
        result = position_size(100_000, 2, 150.0, 140.0)
        assert result["risk_amount"] == pytest.approx(2000.0)
        assert result["risk_per_share"] == pytest.approx(10.0)
        assert result["recommended_shares"] == 200
        assert result["max_investment"] == pytest.approx(30_000.0)
        assert result["pct_of_portfolio"] == pytest.approx(30.0)
        assert result["high_risk"] is True

    def test_rounds_shares_down(self) -> None:
        result = position_size(10_000, 1, 50.0, 47.0)
        assert result["recommended_shares"] == 33

    def test_small_position_is_not_high_risk(self) -> None:
        result = position_size(10_000, 1, 50.0, 40.0)
        assert result["recommended_shares"] == 10
        assert result["pct_of_portfolio"] == pytest.approx(5.0)
        assert result["high_risk"] is False

    def test_stop_above_entry(self) -> None:
        with pytest.raises(ValueError):
            position_size(10_000, 1, 50.0, 50.0)


@pytest.mark.parametrize(
    ("score", "label"),
    [
        (95, "Strong Buy Signal"),
        (70, "Strong Buy Signal"),
        (69, "Moderate Buy Signal"),
        (50, "Moderate Buy Signal"),
        (40, "Hold / Neutral"),
        (39, "Caution Advised"),
    ],
)
def test_score_label(score: int, label: str) -> None:
    assert score_label(score) == label
