"""Max-drawdown floor for each floor regime.

    STATIC        floor = starting_balance - allowance
    TRAILING      floor = peak_balance - allowance
    EOD_TRAILING  floor = peak_eod_balance - allowance

The allowance is reference * max_dd% for a percent limit, or the fixed
max_drawdown_amount. An EOD trailing floor only moves at day close, so an
intraday gain does not protect against an intraday loss on the same day.
"""

from app.services.compliance.models import (
    AccountState,
    DrawdownBasis,
    FloorRegime,
    LimitPolicy,
)
from app.services.compliance.validation import (
    resolve_basis,
    resolve_regime,
    validate_policy,
    validate_state,
)


def _reference(policy: LimitPolicy, state: AccountState) -> float:
    regime = resolve_regime(policy.floor_regime)
    if regime == FloorRegime.TRAILING:
        return state.peak_balance
    if regime == FloorRegime.EOD_TRAILING:
        return state.peak_eod_balance
    return policy.starting_balance


def floor_reference(policy: LimitPolicy, state: AccountState) -> float:
    """Balance the max-drawdown floor is measured from."""
    validate_policy(policy)
    validate_state(state)
    return _reference(policy, state)


def max_allowance(policy: LimitPolicy, reference: float) -> float:
    """Currency size of the max-drawdown allowance below reference."""
    if policy.max_drawdown_amount is not None:
        return float(policy.max_drawdown_amount)
    return reference * policy.max_drawdown_percent / 100


def floor_from_reference(policy: LimitPolicy, reference: float) -> float:
    return reference - max_allowance(policy, reference)


def measured_balance(
    policy: LimitPolicy, state: AccountState
) -> tuple[float, DrawdownBasis]:
    """Figure drawdown is measured on, and which basis it came from.

    An equity basis falls back to the balance when no equity reading is
    available.
    """
    basis = resolve_basis(policy.drawdown_basis)
    if basis == DrawdownBasis.EQUITY and state.current_equity is not None:
        return state.current_equity, DrawdownBasis.EQUITY
    return state.current_balance, DrawdownBasis.BALANCE


def compute_floor(policy: LimitPolicy, state: AccountState) -> float:
    """Balance at or below which the max-drawdown rule is breached.

    Pure function: no state, no I/O.
    """
    validate_policy(policy)
    validate_state(state)
    return floor_from_reference(policy, _reference(policy, state))


def max_limit_amount(policy: LimitPolicy, state: AccountState) -> float:
    """Currency size of the max-drawdown allowance for the current reference."""
    validate_policy(policy)
    validate_state(state)
    return max_allowance(policy, _reference(policy, state))


def is_max_drawdown_breached(policy: LimitPolicy, state: AccountState) -> bool:
    """True when the measured balance sits at or below the floor."""
    floor = compute_floor(policy, state)
    value, _ = measured_balance(policy, state)
    return value <= floor
