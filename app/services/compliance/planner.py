"""Risk budget planning for a challenge.

Given a rule set and a fixed per-trade risk, how many consecutive losers do
the daily and max limits absorb, and what reward:risk does the profit target
demand. Optionally sizes the position for a stop distance.

    lot size = risk amount / (stop loss pips * pip value), rounded down to 0.01
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

from app.services.compliance.errors import InvalidInput
from app.services.compliance.models import LimitPolicy
from app.services.compliance.validation import validate_policy


@dataclass(frozen=True)
class RiskBudget:
    risk_per_trade: float
    max_daily_loss: Optional[float]  # None = no daily limit
    max_total_loss: float
    losing_trades_allowed_daily: Optional[int]
    losing_trades_allowed_total: int
    profit_target_amount: Optional[float]
    trades_needed_at_1r: Optional[int]
    reward_risk_needed: Optional[float]
    lot_size: Optional[float] = None  # None unless a stop distance was given


def _positive(value: Any, name: str) -> float:
    if (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or not math.isfinite(value)
        or value <= 0
    ):
        raise InvalidInput(f"{name} must be a positive number, got {value!r}", field=name)
    return float(value)


def position_size(risk_amount: float, stop_loss_pips: float, pip_value: float) -> float:
    """Lots that lose risk_amount at the stop, rounded down to 0.01 lots.

    Rounding down keeps the realized loss at or below risk_amount.

    Raises:
        InvalidInput
    """
    risk_amount = _positive(risk_amount, "risk_amount")
    stop_loss_pips = _positive(stop_loss_pips, "stop_loss_pips")
    pip_value = _positive(pip_value, "pip_value")
    lots = risk_amount / (stop_loss_pips * pip_value)
    # lots trade in 0.01 steps; round first so 29.9999999 floors to 30
    return math.floor(round(lots * 100, 9)) / 100


def plan_risk_budget(
    policy: LimitPolicy,
    risk_per_trade_percent: float,
    stop_loss_pips: Optional[float] = None,
    pip_value: Optional[float] = None,
) -> RiskBudget:
    """Plan a fixed-fractional risk budget from the starting balance.

    reward_risk_needed is 1.0 when the target is reachable at 1R within the
    losing trades the max limit allows; otherwise the target divided by the
    total risk those losers represent. stop_loss_pips and pip_value are given
    together or not at all.
    """
    validate_policy(policy)
    if (
        isinstance(risk_per_trade_percent, bool)
        or not isinstance(risk_per_trade_percent, (int, float))
        or not math.isfinite(risk_per_trade_percent)
        or not 0 < risk_per_trade_percent <= 100
    ):
        raise InvalidInput(
            f"risk_per_trade_percent must be in (0, 100], got {risk_per_trade_percent!r}",
            field="risk_per_trade_percent",
        )
    if (stop_loss_pips is None) != (pip_value is None):
        raise InvalidInput(
            "stop_loss_pips and pip_value must be given together",
            field="stop_loss_pips" if stop_loss_pips is None else "pip_value",
        )

    start = policy.starting_balance
    risk = start * risk_per_trade_percent / 100
    if policy.max_drawdown_amount is not None:
        max_total = float(policy.max_drawdown_amount)
    else:
        max_total = start * policy.max_drawdown_percent / 100
    losers_total = math.floor(max_total / risk)

    max_daily: Optional[float] = None
    losers_daily: Optional[int] = None
    if policy.daily_drawdown_amount is not None:
        max_daily = float(policy.daily_drawdown_amount)
    elif policy.daily_drawdown_percent is not None:
        max_daily = start * policy.daily_drawdown_percent / 100
    if max_daily is not None:
        losers_daily = math.floor(max_daily / risk)

    target: Optional[float] = None
    trades_needed: Optional[int] = None
    rr_needed: Optional[float] = None
    if policy.profit_target_percent is not None:
        target = start * policy.profit_target_percent / 100
        trades_needed = math.ceil(target / risk)
        if trades_needed > losers_total and losers_total > 0:
            rr_needed = round(target / (losers_total * risk), 1)
        elif losers_total > 0:
            rr_needed = 1.0

    lots: Optional[float] = None
    if stop_loss_pips is not None:
        lots = position_size(risk, stop_loss_pips, pip_value)

    return RiskBudget(
        risk_per_trade=risk,
        max_daily_loss=max_daily,
        max_total_loss=max_total,
        losing_trades_allowed_daily=losers_daily,
        losing_trades_allowed_total=losers_total,
        profit_target_amount=target,
        trades_needed_at_1r=trades_needed,
        reward_risk_needed=rr_needed,
        lot_size=lots,
    )
