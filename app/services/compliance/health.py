"""Account health banding from remaining buffer percentages.

    buffer_pct = remaining buffer / limit amount * 100   (clamped to 0..100)
    DANGER  if either buffer_pct < danger threshold
    WARNING if either buffer_pct < warning threshold
    SAFE    otherwise
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from app.config import get_settings
from app.services.compliance.buffers import Buffers, compute_buffers
from app.services.compliance.errors import InvalidInput
from app.services.compliance.floor import floor_from_reference
from app.services.compliance.models import (
    AccountState,
    DrawdownBasis,
    FloorRegime,
    LimitPolicy,
)
from app.services.compliance.validation import resolve_basis, resolve_regime


class HealthStatus(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


_PRIORITY = {HealthStatus.DANGER: 0, HealthStatus.WARNING: 1, HealthStatus.SAFE: 2}


@dataclass(frozen=True)
class AccountHealth:
    status: HealthStatus
    daily_status: HealthStatus
    max_status: HealthStatus
    daily_buffer_pct: float
    max_buffer_pct: float
    buffers: Buffers
    messages: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DashboardSummary:
    total_accounts: int
    total_balance: float
    safe_count: int
    warning_count: int
    danger_count: int

    @property
    def accounts_at_risk(self) -> int:
        return self.warning_count + self.danger_count


def _buffer_pct(buffer: float, limit: float) -> float:
    if math.isinf(limit):
        return 100.0
    if limit <= 0:
        return 0.0
    return max(0.0, min(100.0, buffer / limit * 100))


def worst_status(a: HealthStatus, b: HealthStatus) -> HealthStatus:
    return a if _PRIORITY[a] < _PRIORITY[b] else b


def assess_health(
    policy: LimitPolicy,
    state: AccountState,
    danger_pct: Optional[float] = None,
    warning_pct: Optional[float] = None,
) -> AccountHealth:
    """Band the account by the worse of its daily and max buffer percentages."""
    settings = get_settings()
    danger = settings.compliance_danger_buffer_pct if danger_pct is None else danger_pct
    warning = settings.compliance_warning_buffer_pct if warning_pct is None else warning_pct
    if warning < danger:
        raise InvalidInput(
            f"warning threshold ({warning}) must be >= danger threshold ({danger})",
            field="warning_pct",
        )

    buffers = compute_buffers(policy, state)

    def band(pct: float) -> HealthStatus:
        if pct < danger:
            return HealthStatus.DANGER
        if pct < warning:
            return HealthStatus.WARNING
        return HealthStatus.SAFE

    daily_pct = _buffer_pct(buffers.daily_buffer, buffers.daily_limit_amount)
    max_pct = _buffer_pct(buffers.max_buffer, buffers.max_limit_amount)
    daily_status = band(daily_pct)
    max_status = band(max_pct)
    status = worst_status(daily_status, max_status)

    messages: list[str] = []
    if daily_status == HealthStatus.DANGER:
        messages.append(
            f"DANGER: daily drawdown {100 - daily_pct:.1f}% used. "
            f"Only ${buffers.daily_buffer:,.0f} remaining. Stop trading today."
        )
    elif daily_status == HealthStatus.WARNING:
        messages.append(
            f"WARNING: daily drawdown {100 - daily_pct:.1f}% used. "
            f"${buffers.daily_buffer:,.0f} remaining."
        )
    if max_status == HealthStatus.DANGER:
        messages.append(
            f"DANGER: max drawdown {100 - max_pct:.1f}% used. "
            f"Only ${buffers.max_buffer:,.0f} above the floor."
        )
    elif max_status == HealthStatus.WARNING:
        messages.append(
            f"WARNING: max drawdown {100 - max_pct:.1f}% used. "
            f"${buffers.max_buffer:,.0f} above the floor."
        )

    regime = resolve_regime(policy.floor_regime)
    initial_floor = floor_from_reference(policy, policy.starting_balance)
    if regime != FloorRegime.STATIC and buffers.floor > initial_floor:
        messages.append(f"Trailing drawdown active. Floor has moved up to ${buffers.floor:,.0f}.")

    if (
        resolve_basis(policy.drawdown_basis) == DrawdownBasis.EQUITY
        and buffers.basis_used == DrawdownBasis.BALANCE
    ):
        messages.append("Equity basis requested but no equity reading available. Using balance.")

    if status == HealthStatus.SAFE:
        messages.append(
            f"Account is healthy. Daily buffer: {daily_pct:.1f}%, max buffer: {max_pct:.1f}%."
        )

    return AccountHealth(
        status=status,
        daily_status=daily_status,
        max_status=max_status,
        daily_buffer_pct=daily_pct,
        max_buffer_pct=max_pct,
        buffers=buffers,
        messages=messages,
    )


def summarize_accounts(
    accounts: Iterable[tuple[LimitPolicy, AccountState]],
) -> DashboardSummary:
    """Aggregate health counts over several accounts."""
    counts = {status: 0 for status in HealthStatus}
    total = 0
    balance = 0.0
    for policy, state in accounts:
        counts[assess_health(policy, state).status] += 1
        total += 1
        balance += state.current_balance
    return DashboardSummary(
        total_accounts=total,
        total_balance=balance,
        safe_count=counts[HealthStatus.SAFE],
        warning_count=counts[HealthStatus.WARNING],
        danger_count=counts[HealthStatus.DANGER],
    )
