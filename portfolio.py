"""
portfolio.py -- Holding valuation, cost-basis bookkeeping and position sizing.
"""
import math


def _finite(value):
    return 0 if value is None or math.isnan(value) else value


def value_holding(holding, stock, current_price):
    """Holding row enriched with its stock and market value at `current_price`."""
    current_price = current_price or 0
    total_value = holding["shares"] * current_price
    total_cost = holding["shares"] * holding["average_cost"]
    gain_loss = total_value - total_cost
    gain_loss_pct = (gain_loss / total_cost) * 100 if total_cost > 0 else 0

    return dict(
        holding,
        stock=stock,
        current_price=current_price,
        total_value=_finite(total_value),
        gain_loss=_finite(gain_loss),
        gain_loss_pct=_finite(gain_loss_pct),
    )


def summarize_holdings(valued):
    total_value = sum(h["total_value"] for h in valued)
    total_cost = sum(h["shares"] * h["average_cost"] for h in valued)
    total_gain_loss = total_value - total_cost
    total_gain_loss_pct = (total_gain_loss / total_cost) * 100 if total_cost > 0 else 0
    return {
        "total_value": _finite(total_value),
        "total_cost": _finite(total_cost),
        "total_gain_loss": _finite(total_gain_loss),
        "total_gain_loss_pct": _finite(total_gain_loss_pct),
    }


def apply_transaction(holding, tx):
    """
    Work out what a buy/sell does to the position in that stock.

    Returns one of:
      ("create", fields)   -- first buy
      ("update", fields)   -- shares / average cost changed
      ("delete", None)     -- sold out
      (None, None)         -- nothing to do (sell without a position)
    """
    if tx["type"] == "buy":
        if holding is None:
            return "create", {
                "stock_id": tx["stock_id"],
                "shares": tx["shares"],
                "average_cost": tx["price"],
                "target_price": None,
                "stop_loss": None,
                "notes": None,
            }
        new_shares = holding["shares"] + tx["shares"]
        new_cost = holding["shares"] * holding["average_cost"] + tx["shares"] * tx["price"]
        return "update", {
            "shares": new_shares,
            "average_cost": new_cost / new_shares,
        }

    if tx["type"] == "sell" and holding is not None:
        new_shares = holding["shares"] - tx["shares"]
        if new_shares <= 0:
            return "delete", None
        return "update", {"shares": new_shares}

    return None, None


def position_size(portfolio_value, risk_percent, entry_price, stop_loss):
    """Fixed-fractional sizing: risk `risk_percent` of the portfolio down to the stop."""
    if entry_price <= stop_loss:
        raise ValueError("Entry price must be above the stop loss")

    risk_amount = portfolio_value * (risk_percent / 100)
    risk_per_share = entry_price - stop_loss
    shares = math.floor(risk_amount / risk_per_share)
    max_investment = shares * entry_price
    pct_of_portfolio = (max_investment / portfolio_value) * 100 if portfolio_value else 0

    return {
        "recommended_shares": shares,
        "max_investment": max_investment,
        "risk_amount": risk_amount,
        "risk_per_share": risk_per_share,
        "pct_of_portfolio": pct_of_portfolio,
        "high_risk": pct_of_portfolio > 10,
    }


def score_label(score):
    if score >= 70:
        return "Strong Buy Signal"
    if score >= 50:
        return "Moderate Buy Signal"
    if score >= 40:
        return "Hold / Neutral"
    return "Caution Advised"
