"""Remaining daily and max-drawdown buffers in currency."""

import math
from dataclasses import dataclass

from app.services.compliance.floor import (
    floor_from_reference,
    floor_reference,
    max_allowance,
    measured_balance,
)
from app.services.compliance.models import AccountState, DrawdownBasis, LimitPolicy


@dataclass(frozen=True)
class Buffers:
    """Spendable room before each drawdown rule is breached.

    daily_buffer and daily_limit_amount are math.inf when the policy has no
    daily limit.
    """

    max_buffer: float
    daily_buffer: float
    floor: float
    daily_limit_amount: float
    daily_loss: float
    max_limit_amount: float
    basis_used: DrawdownBasis = DrawdownBasis.BALANCE

    @property
    def smallest(self) -> float:
        return min(self.max_buffer, self.daily_buffer)

    @property
    def has_daily_limit(self) -> bool:
        return math.isfinite(self.daily_limit_amount)


def daily_limit_amount(policy: LimitPolicy, today_start_balance: float) -> float:
    if policy.daily_drawdown_amount is not None:
        return float(policy.daily_drawdown_amount)
    if policy.daily_drawdown_percent is None:
        return math.inf
    return today_start_balance * policy.daily_drawdown_percent / 100


def compute_buffers(policy: LimitPolicy, state: AccountState) -> Buffers:
    """Compute both buffers for the current snapshot.

    Both buffers are floored at 0, also when the account is already breached.
    With an equity basis the floating P&L counts against both limits.
    """
    reference = floor_reference(policy, state)
    floor = floor_from_reference(policy, reference)
    value, basis = measured_balance(policy, state)
    max_buffer = max(0.0, value - floor)

    limit = daily_limit_amount(policy, state.today_start_balance)
    daily_loss = max(0.0, state.today_start_balance - value)
    daily_buffer = max(0.0, limit - daily_loss)

    return Buffers(
        max_buffer=max_buffer,
        daily_buffer=daily_buffer,
        floor=floor,
        daily_limit_amount=limit,
        daily_loss=daily_loss,
        max_limit_amount=max_allowance(policy, reference),
        basis_used=basis,
    )
