"""Precondition checks run at the start of every public engine call.

Only simple range checks are done here; cross-field consistency of a
snapshot is the caller's responsibility.
"""

import math
from typing import Any, Optional

from app.services.compliance.errors import InvalidInput, InvalidPolicy, InvalidState
from app.services.compliance.models import (
    AccountState,
    DrawdownBasis,
    FloorRegime,
    LimitPolicy,
    TradingDayRecord,
)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _check_percent(
    value: Any,
    name: str,
    allow_none: bool = False,
    upper_inclusive: bool = True,
) -> None:
    if value is None and allow_none:
        return
    if not _is_number(value):
        raise InvalidPolicy(f"{name} must be a finite number, got {value!r}", field=name)
    in_range = 0 < value <= 100 if upper_inclusive else 0 < value < 100
    if not in_range:
        bounds = "(0, 100]" if upper_inclusive else "(0, 100)"
        raise InvalidPolicy(f"{name} must be in {bounds}, got {value}", field=name)


def resolve_regime(value: Any) -> FloorRegime:
    """Coerce a regime value (enum member or its string value)."""
    if isinstance(value, FloorRegime):
        return value
    try:
        return FloorRegime(str(value).lower())
    except ValueError:
        raise InvalidPolicy(
            f"unknown floor regime {value!r}, expected one of "
            f"{[r.value for r in FloorRegime]}",
            field="floor_regime",
        ) from None


def resolve_basis(value: Any) -> DrawdownBasis:
    if isinstance(value, DrawdownBasis):
        return value
    try:
        return DrawdownBasis(str(value).lower())
    except ValueError:
        raise InvalidPolicy(
            f"unknown drawdown basis {value!r}, expected one of "
            f"{[b.value for b in DrawdownBasis]}",
            field="drawdown_basis",
        ) from None


def _check_amount(value: Any, name: str, upper: Optional[float] = None) -> None:
    if not _is_number(value) or value <= 0:
        raise InvalidPolicy(f"{name} must be a positive number, got {value!r}", field=name)
    if upper is not None and value >= upper:
        raise InvalidPolicy(f"{name} must be below {upper}, got {value}", field=name)


def _check_limit(
    policy: LimitPolicy,
    percent_name: str,
    amount_name: str,
    is_max: bool,
) -> None:
    """A limit is a percent or a fixed amount, never both.

    The max limit is mandatory and must leave a positive floor.
    """
    percent = getattr(policy, percent_name)
    amount = getattr(policy, amount_name)
    if amount is None:
        _check_percent(percent, percent_name, allow_none=not is_max, upper_inclusive=not is_max)
        return
    if percent is not None:
        raise InvalidPolicy(
            f"set either {percent_name} or {amount_name}, not both", field=amount_name
        )
    _check_amount(amount, amount_name, upper=policy.starting_balance if is_max else None)


def validate_policy(policy: LimitPolicy) -> None:
    """Raise InvalidPolicy if any rule is out of range."""
    if not _is_number(policy.starting_balance) or policy.starting_balance <= 0:
        raise InvalidPolicy(
            f"starting_balance must be > 0, got {policy.starting_balance!r}",
            field="starting_balance",
        )
    _check_limit(policy, "max_drawdown_percent", "max_drawdown_amount", is_max=True)
    _check_limit(policy, "daily_drawdown_percent", "daily_drawdown_amount", is_max=False)
    _check_percent(
        policy.consistency_limit_percent, "consistency_limit_percent", allow_none=True
    )
    if policy.profit_target_percent is not None:
        if (
            not _is_number(policy.profit_target_percent)
            or policy.profit_target_percent <= 0
        ):
            raise InvalidPolicy(
                f"profit_target_percent must be > 0, got {policy.profit_target_percent!r}",
                field="profit_target_percent",
            )
    if (
        isinstance(policy.min_trading_days, bool)
        or not isinstance(policy.min_trading_days, int)
        or policy.min_trading_days < 0
    ):
        raise InvalidPolicy(
            f"min_trading_days must be a non-negative integer, got {policy.min_trading_days!r}",
            field="min_trading_days",
        )
    resolve_regime(policy.floor_regime)
    resolve_basis(policy.drawdown_basis)


def _check_balance(value: Any, name: str) -> None:
    if not _is_number(value):
        raise InvalidState(f"{name} must be a finite number, got {value!r}", field=name)
    if value < 0:
        raise InvalidState(f"{name} must not be negative, got {value}", field=name)


def validate_history(history: tuple[TradingDayRecord, ...]) -> None:
    """Raise InvalidState on malformed records or duplicate/out-of-order dates."""
    previous = None
    for record in history:
        if not _is_number(record.profit):
            raise InvalidState(
                f"profit must be a finite number on {record.date}, got {record.profit!r}",
                field="history",
            )
        if isinstance(record.trade_count, bool) or not isinstance(record.trade_count, int):
            raise InvalidState(
                f"trade_count must be an integer on {record.date}",
                field="history",
            )
        if record.trade_count < 0:
            raise InvalidState(
                f"trade_count must not be negative on {record.date}",
                field="history",
            )
        if previous is not None:
            if record.date == previous:
                raise InvalidState(
                    f"duplicate trading day {record.date}", field="history"
                )
            if record.date < previous:
                raise InvalidState(
                    f"history not in chronological order at {record.date}",
                    field="history",
                )
        previous = record.date


def validate_state(state: AccountState) -> None:
    """Raise InvalidState on negative balances or a malformed history."""
    if not _is_number(state.starting_balance) or state.starting_balance <= 0:
        raise InvalidState(
            f"starting_balance must be > 0, got {state.starting_balance!r}",
            field="starting_balance",
        )
    _check_balance(state.current_balance, "current_balance")
    _check_balance(state.peak_balance, "peak_balance")
    _check_balance(state.peak_eod_balance, "peak_eod_balance")
    _check_balance(state.today_start_balance, "today_start_balance")
    if state.current_equity is not None:
        _check_balance(state.current_equity, "current_equity")
    validate_history(state.history)


def validate_risk_amount(risk_amount: Any) -> float:
    if not _is_number(risk_amount):
        raise InvalidInput(
            f"risk_amount must be a finite number, got {risk_amount!r}",
            field="risk_amount",
        )
    if risk_amount < 0:
        raise InvalidInput(
            f"risk_amount must not be negative, got {risk_amount}",
            field="risk_amount",
        )
    return float(risk_amount)


def validate_fraction(value: Optional[float], name: str) -> None:
    if not _is_number(value) or not 0 < value <= 1:
        raise InvalidInput(f"{name} must be in (0, 1], got {value!r}", field=name)
