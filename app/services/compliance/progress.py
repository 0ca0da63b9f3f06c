"""Challenge progress: fold trading-day history into pass/fail signals.

Pure-function module. The consistency rule is re-evaluated over the whole
history on every call, since a later large cumulative profit can make an
earlier day's share compliant again (and the other way round).
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

import structlog

from app.services.compliance.floor import (
    compute_floor,
    floor_from_reference,
    is_max_drawdown_breached,
)
from app.services.compliance.models import (
    AccountState,
    FloorRegime,
    LimitPolicy,
    TradingDayRecord,
)
from app.services.compliance.validation import (
    resolve_regime,
    validate_policy,
    validate_state,
)

logger = structlog.get_logger(__name__)


class ChallengeStatus(str, Enum):
    """Terminal classification of a challenge."""

    IN_PROGRESS = "in_progress"
    PASSED = "passed"
    FAILED = "failed"


class FailureReason(str, Enum):
    DAILY_LIMIT = "daily_limit_breached"
    MAX_DRAWDOWN = "max_drawdown_breached"
    CONSISTENCY = "consistency_violated"


@dataclass(frozen=True)
class ConsistencyCheck:
    """Result of the largest-day share check."""

    violated: bool
    largest_day_profit: float
    largest_day_ratio: Optional[float]  # None when cumulative profit <= 0
    offending_dates: list[date] = field(default_factory=list)


@dataclass(frozen=True)
class ProgressReport:
    status: ChallengeStatus
    cumulative_profit: float
    trading_days: int
    target_amount: Optional[float]
    profit_target_met: bool
    min_days_met: bool
    days_remaining: int
    remaining_profit: Optional[float]
    progress_percent: Optional[float]
    floor: float
    daily_limit_breached: bool
    max_drawdown_breached: bool
    consistency: ConsistencyCheck
    failure_reasons: list[FailureReason] = field(default_factory=list)

    @property
    def consistency_violated(self) -> bool:
        return self.consistency.violated


def check_consistency(
    history: tuple[TradingDayRecord, ...],
    limit_percent: Optional[float],
) -> ConsistencyCheck:
    """Check that no profitable day exceeds limit_percent of net cumulative profit.

    A None limit disables the rule. A cumulative profit <= 0 is never a
    violation.
    """
    cumulative = sum(day.profit for day in history)
    winning = [day for day in history if day.profit > 0]
    largest = max((day.profit for day in winning), default=0.0)

    if cumulative <= 0:
        return ConsistencyCheck(False, largest, None)

    ratio = largest / cumulative
    if limit_percent is None:
        return ConsistencyCheck(False, largest, ratio)

    cap = limit_percent / 100
    offending = [day.date for day in winning if day.profit / cumulative > cap]
    return ConsistencyCheck(bool(offending), largest, ratio, offending)


def _count_trading_days(history: tuple[TradingDayRecord, ...]) -> int:
    return sum(1 for day in history if day.trade_count > 0)


def _replayed_close_breach(policy: LimitPolicy, state: AccountState) -> bool:
    """True if any recorded day closed at or below the floor in force then.

    Replays closes only, so a TRAILING floor is approximated by the peak of
    closes (never above the true intraday floor).
    """
    regime = resolve_regime(policy.floor_regime)
    balance = state.starting_balance
    peak = state.starting_balance
    for day in state.history:
        balance += day.profit
        peak = max(peak, balance)
        reference = policy.starting_balance if regime == FloorRegime.STATIC else peak
        if balance <= floor_from_reference(policy, reference):
            return True
    return False


def evaluate_progress(policy: LimitPolicy, state: AccountState) -> ProgressReport:
    """Evaluate challenge progress from the full history.

    FAILED on any recorded daily-limit breach, a crossed max-drawdown floor,
    or a consistency violation; PASSED when not failed and both the profit
    target and the minimum trading days are met; IN_PROGRESS otherwise.

    Raises:
        InvalidPolicy, InvalidState
    """
    validate_policy(policy)
    validate_state(state)

    history = state.history
    cumulative = sum(day.profit for day in history)
    trading_days = _count_trading_days(history)

    target_amount: Optional[float] = None
    remaining: Optional[float] = None
    progress_pct: Optional[float] = None
    target_met = False
    if policy.profit_target_percent is not None:
        target_amount = policy.starting_balance * policy.profit_target_percent / 100
        target_met = cumulative >= target_amount
        remaining = max(0.0, target_amount - cumulative)
        progress_pct = min(100.0, max(0.0, cumulative / target_amount * 100))

    min_days_met = trading_days >= policy.min_trading_days
    days_remaining = max(0, policy.min_trading_days - trading_days)

    floor = compute_floor(policy, state)
    daily_breached = any(day.daily_limit_breached for day in history)
    max_breached = is_max_drawdown_breached(policy, state) or _replayed_close_breach(
        policy, state
    )
    consistency = check_consistency(history, policy.consistency_limit_percent)

    reasons: list[FailureReason] = []
    if daily_breached:
        reasons.append(FailureReason.DAILY_LIMIT)
    if max_breached:
        reasons.append(FailureReason.MAX_DRAWDOWN)
    if consistency.violated:
        reasons.append(FailureReason.CONSISTENCY)

    if reasons:
        status = ChallengeStatus.FAILED
    elif target_met and min_days_met:
        status = ChallengeStatus.PASSED
    else:
        status = ChallengeStatus.IN_PROGRESS

    logger.debug(
        "progress_evaluated",
        status=status.value,
        cumulative_profit=cumulative,
        trading_days=trading_days,
        failure_reasons=[r.value for r in reasons],
    )
    return ProgressReport(
        status=status,
        cumulative_profit=cumulative,
        trading_days=trading_days,
        target_amount=target_amount,
        profit_target_met=target_met,
        min_days_met=min_days_met,
        days_remaining=days_remaining,
        remaining_profit=remaining,
        progress_percent=progress_pct,
        floor=floor,
        daily_limit_breached=daily_breached,
        max_drawdown_breached=max_breached,
        consistency=consistency,
        failure_reasons=reasons,
    )
