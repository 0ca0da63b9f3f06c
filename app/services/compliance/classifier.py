"""Trade classification against the current drawdown buffers.

Answers "what if this trade is stopped out", never "what happened": the
account snapshot is not touched.

Evaluation order (first match wins):
    1. risk >= daily_buffer                     -> VIOLATION (daily)
    2. risk >= max_buffer                       -> VIOLATION (max)
    3. risk >= warning_fraction * daily_buffer  -> RISKY
    4. otherwise                                -> SAFE
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import structlog

from app.config import get_settings
from app.services.compliance.buffers import Buffers, compute_buffers
from app.services.compliance.models import AccountState, LimitPolicy
from app.services.compliance.validation import (
    validate_fraction,
    validate_policy,
    validate_risk_amount,
    validate_state,
)

logger = structlog.get_logger(__name__)


class TradeClassification(str, Enum):
    """Outcome of a simulated trade, ordered by severity."""

    SAFE = "safe"
    RISKY = "risky"
    VIOLATION = "violation"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    TradeClassification.SAFE: 0,
    TradeClassification.RISKY: 1,
    TradeClassification.VIOLATION: 2,
}


@dataclass(frozen=True)
class UsageMetrics:
    """Risk expressed against limits and remaining buffers, in percent."""

    daily_limit_usage_pct: float
    max_limit_usage_pct: float
    daily_buffer_usage_pct: float
    max_buffer_usage_pct: float


@dataclass(frozen=True)
class TradeSimulation:
    """Result of simulating one hypothetical trade."""

    classification: TradeClassification
    message: str
    risk_amount: float
    daily_buffer_after: float
    max_buffer_after: float
    buffers: Buffers
    metrics: UsageMetrics
    reasons: list[str] = field(default_factory=list)


def _usage_pct(amount: float, base: float) -> float:
    """Percent of base consumed by amount, guarding zero and unbounded bases."""
    if math.isinf(base):
        return 0.0
    if base <= 0:
        return 100.0 if amount > 0 else 0.0
    return amount / base * 100


def _usd(amount: float) -> str:
    if math.isinf(amount):
        return "unlimited"
    return f"${amount:,.0f}"


def _resolve_fraction(warning_fraction: Optional[float]) -> float:
    if warning_fraction is None:
        return get_settings().compliance_warning_fraction
    validate_fraction(warning_fraction, "warning_fraction")
    return warning_fraction


def classify_trade(
    risk_amount: float,
    buffers: Buffers,
    warning_fraction: Optional[float] = None,
) -> TradeSimulation:
    """Classify a hypothetical loss against precomputed buffers.

    When the policy has no daily limit the max buffer is used as the basis
    for the RISKY threshold.

    Raises:
        InvalidInput: negative or non-finite risk, or an invalid fraction.
    """
    risk = validate_risk_amount(risk_amount)
    fraction = _resolve_fraction(warning_fraction)

    daily = buffers.daily_buffer
    maximum = buffers.max_buffer
    metrics = UsageMetrics(
        daily_limit_usage_pct=_usage_pct(risk, buffers.daily_limit_amount),
        max_limit_usage_pct=_usage_pct(risk, buffers.max_limit_amount),
        daily_buffer_usage_pct=_usage_pct(risk, daily),
        max_buffer_usage_pct=_usage_pct(risk, maximum),
    )

    reasons: list[str] = []
    breaches_daily = risk >= daily
    breaches_max = risk >= maximum
    if breaches_daily:
        reasons.append(f"Risk ({_usd(risk)}) >= daily buffer ({_usd(daily)})")
    if breaches_max:
        reasons.append(f"Risk ({_usd(risk)}) >= max buffer ({_usd(maximum)})")

    if breaches_daily and breaches_max:
        classification = TradeClassification.VIOLATION
        message = (
            "This trade would breach both the daily and maximum drawdown limits. "
            f"Only {_usd(daily)} of daily buffer and {_usd(maximum)} above the floor remain."
        )
    elif breaches_daily:
        classification = TradeClassification.VIOLATION
        message = (
            "This trade would breach the daily drawdown limit. "
            f"Only {_usd(daily)} of daily buffer remains."
        )
    elif breaches_max:
        classification = TradeClassification.VIOLATION
        message = (
            "This trade would breach the maximum drawdown limit. "
            f"Only {_usd(maximum)} remains above the floor."
        )
    else:
        basis_name = "daily" if buffers.has_daily_limit else "max"
        basis = daily if buffers.has_daily_limit else maximum
        threshold = fraction * basis
        if risk >= threshold:
            classification = TradeClassification.RISKY
            usage = _usage_pct(risk, basis)
            message = (
                f"Warning: this trade would use {usage:.1f}% of the remaining "
                f"{basis_name} buffer ({_usd(basis)})."
            )
            reasons.append(
                f"Risk ({_usd(risk)}) >= {fraction:.0%} of {basis_name} buffer ({_usd(basis)})"
            )
        else:
            classification = TradeClassification.SAFE
            message = (
                f"If stopped out, this trade would use "
                f"{metrics.daily_limit_usage_pct:.1f}% of the daily limit and "
                f"{metrics.max_limit_usage_pct:.1f}% of the max limit."
            )
            reasons.append("Trade is within safe limits.")

    if daily == 0:
        reasons.append("Daily buffer is already depleted.")
    if maximum == 0:
        reasons.append("Max buffer is already depleted.")

    return TradeSimulation(
        classification=classification,
        message=message,
        risk_amount=risk,
        daily_buffer_after=max(0.0, daily - risk),
        max_buffer_after=max(0.0, maximum - risk),
        buffers=buffers,
        metrics=metrics,
        reasons=reasons,
    )


def simulate_trade(
    policy: LimitPolicy,
    state: AccountState,
    risk_amount: float,
    warning_fraction: Optional[float] = None,
) -> TradeSimulation:
    """Simulate a trade that loses risk_amount if stopped out.

    Raises:
        InvalidPolicy, InvalidState, InvalidInput: before any computation.
    """
    validate_policy(policy)
    validate_state(state)
    validate_risk_amount(risk_amount)

    result = classify_trade(risk_amount, compute_buffers(policy, state), warning_fraction)
    logger.debug(
        "trade_simulated",
        classification=result.classification.value,
        risk_amount=result.risk_amount,
        daily_buffer=result.buffers.daily_buffer,
        max_buffer=result.buffers.max_buffer,
    )
    return result


def max_risk_before_violation(policy: LimitPolicy, state: AccountState) -> float:
    """Exclusive upper bound of risk that does not cause a VIOLATION."""
    return compute_buffers(policy, state).smallest


def max_safe_risk(
    policy: LimitPolicy,
    state: AccountState,
    warning_fraction: Optional[float] = None,
) -> float:
    """Exclusive upper bound of risk still classified as SAFE."""
    fraction = _resolve_fraction(warning_fraction)
    buffers = compute_buffers(policy, state)
    basis = buffers.daily_buffer if buffers.has_daily_limit else buffers.max_buffer
    return min(fraction * basis, buffers.smallest)


def is_trade_safe(policy: LimitPolicy, state: AccountState, risk_amount: float) -> bool:
    result = simulate_trade(policy, state, risk_amount)
    return result.classification == TradeClassification.SAFE


def would_violate(policy: LimitPolicy, state: AccountState, risk_amount: float) -> bool:
    result = simulate_trade(policy, state, risk_amount)
    return result.classification == TradeClassification.VIOLATION
