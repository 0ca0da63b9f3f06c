"""Immutable updates of AccountState.

Every function returns a new snapshot; the argument is never modified.
Appends for one account must be serialized by the caller.
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Optional, Sequence

import structlog

from app.services.compliance.buffers import daily_limit_amount
from app.services.compliance.errors import InvalidInput, InvalidState
from app.services.compliance.floor import compute_floor
from app.services.compliance.models import (
    AccountState,
    FloorRegime,
    LimitPolicy,
    TradingDayRecord,
)
from app.services.compliance.validation import validate_policy, validate_state

logger = structlog.get_logger(__name__)


def open_account(policy: LimitPolicy) -> AccountState:
    """Fresh account: every balance equals the starting balance."""
    validate_policy(policy)
    balance = float(policy.starting_balance)
    return AccountState(
        starting_balance=balance,
        current_balance=balance,
        peak_balance=balance,
        peak_eod_balance=balance,
        today_start_balance=balance,
        history=(),
    )


def _check_observation(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{name} must be a number, got {value!r}", field=name)
    if not math.isfinite(value) or value < 0:
        raise InvalidInput(
            f"{name} must be a finite non-negative number, got {value}",
            field=name,
        )
    return float(value)


def apply_intraday_balance(
    state: AccountState,
    balance: float,
    equity: Optional[float] = None,
) -> AccountState:
    """Record an intraday balance observation.

    Raises the intraday peak (and with it a TRAILING floor). The end-of-day
    peak and today's start balance are left alone. equity is the balance
    plus floating P&L; it is stored for an equity drawdown basis but never
    raises the peak. Omitting it clears any earlier equity reading.
    """
    validate_state(state)
    balance = _check_observation(balance, "balance")
    if equity is not None:
        equity = _check_observation(equity, "equity")
    return replace(
        state,
        current_balance=balance,
        peak_balance=max(state.peak_balance, balance),
        current_equity=equity,
    )


def _validate_record(state: AccountState, record: TradingDayRecord) -> None:
    if isinstance(record.trade_count, bool) or not isinstance(record.trade_count, int):
        raise InvalidInput("trade_count must be an integer", field="trade_count")
    if record.trade_count < 0:
        raise InvalidInput(
            f"trade_count must not be negative, got {record.trade_count}",
            field="trade_count",
        )
    if isinstance(record.profit, bool) or not isinstance(record.profit, (int, float)):
        raise InvalidInput(f"profit must be a number, got {record.profit!r}", field="profit")
    if not math.isfinite(record.profit):
        raise InvalidInput("profit must be finite", field="profit")

    last = state.last_date
    if last is not None:
        if record.date == last:
            raise InvalidState(f"duplicate trading day {record.date}", field="history")
        if record.date < last:
            raise InvalidState(
                f"trading day {record.date} is before last recorded day {last}",
                field="history",
            )


def record_trading_day(
    policy: LimitPolicy,
    state: AccountState,
    record: TradingDayRecord,
) -> AccountState:
    """Close a trading day and return the resulting snapshot.

    The closing balance is starting_balance plus every recorded profit. The
    intraday and end-of-day peaks are raised to the close, and the close
    becomes the start balance of the next day. A day whose loss reached the
    daily limit is stamped as breached; a caller-supplied breach flag is kept.

    Raises:
        InvalidPolicy, InvalidState, InvalidInput
    """
    validate_policy(policy)
    validate_state(state)
    _validate_record(state, record)

    history = state.history + (record,)
    closing = state.starting_balance + sum(day.profit for day in history)
    if closing < 0:
        raise InvalidState(
            f"closing balance would be negative ({closing:.2f})",
            field="current_balance",
        )

    breached = record.daily_limit_breached
    if not breached and record.profit < 0:
        breached = -record.profit >= daily_limit_amount(policy, state.today_start_balance)
    if breached != record.daily_limit_breached:
        history = state.history + (replace(record, daily_limit_breached=breached),)

    new_state = AccountState(
        starting_balance=state.starting_balance,
        current_balance=closing,
        peak_balance=max(state.peak_balance, closing),
        peak_eod_balance=max(state.peak_eod_balance, closing),
        today_start_balance=closing,
        history=history,
    )
    logger.debug(
        "trading_day_recorded",
        date=record.date.isoformat(),
        profit=record.profit,
        closing_balance=closing,
        daily_limit_breached=breached,
        days=len(history),
    )
    return new_state


@dataclass(frozen=True)
class ReplayStep:
    """Account after one P&L entry, measured against both floor regimes."""

    index: int
    pnl: float
    balance: float
    high_water: float
    static_used: float
    static_remaining: float
    trailing_used: float
    trailing_remaining: float
    static_drawdown_pct: float
    trailing_drawdown_pct: float


@dataclass(frozen=True)
class DrawdownReplay:
    steps: list[ReplayStep]
    failed_regime: Optional[FloorRegime]  # None while both floors hold
    failed_at: Optional[int]
    final_balance: float
    high_water: float

    @property
    def failed(self) -> bool:
        return self.failed_regime is not None


def replay_pnl_sequence(policy: LimitPolicy, pnls: Sequence[float]) -> DrawdownReplay:
    """Apply closed-trade P&Ls in order and track static vs trailing drawdown.

    Both floors use the policy's max-drawdown limit; the policy's own floor
    regime is ignored. The replay stops at the first entry that reaches a
    floor, checking the static floor first. The balance never goes below 0.

    Raises:
        InvalidPolicy, InvalidInput
    """
    validate_policy(policy)
    for pnl in pnls:
        if isinstance(pnl, bool) or not isinstance(pnl, (int, float)) or not math.isfinite(pnl):
            raise InvalidInput(f"pnls must be finite numbers, got {pnl!r}", field="pnls")

    static_policy = replace(policy, floor_regime=FloorRegime.STATIC)
    trailing_policy = replace(policy, floor_regime=FloorRegime.TRAILING)

    state = open_account(policy)
    steps: list[ReplayStep] = []
    failed: Optional[FloorRegime] = None
    for index, pnl in enumerate(pnls, start=1):
        state = apply_intraday_balance(state, max(0.0, state.current_balance + pnl))
        balance = state.current_balance
        high_water = state.peak_balance
        static_floor = compute_floor(static_policy, state)
        trailing_floor = compute_floor(trailing_policy, state)
        static_used = max(0.0, state.starting_balance - balance)
        trailing_used = high_water - balance
        steps.append(
            ReplayStep(
                index=index,
                pnl=float(pnl),
                balance=balance,
                high_water=high_water,
                static_used=static_used,
                static_remaining=max(0.0, balance - static_floor),
                trailing_used=trailing_used,
                trailing_remaining=max(0.0, balance - trailing_floor),
                static_drawdown_pct=static_used / state.starting_balance * 100,
                trailing_drawdown_pct=trailing_used / high_water * 100,
            )
        )
        if balance <= static_floor:
            failed = FloorRegime.STATIC
        elif balance <= trailing_floor:
            failed = FloorRegime.TRAILING
        if failed is not None:
            break

    logger.debug(
        "pnl_sequence_replayed",
        steps=len(steps),
        failed_regime=failed.value if failed else None,
        final_balance=state.current_balance,
    )
    return DrawdownReplay(
        steps=steps,
        failed_regime=failed,
        failed_at=steps[-1].index if failed else None,
        final_balance=state.current_balance,
        high_water=state.peak_balance,
    )
