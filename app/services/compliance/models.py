"""Value types for the compliance engine.

LimitPolicy describes one program's rule set. AccountState is an immutable
snapshot of an account; new snapshots are produced by the ledger functions,
never by mutating an existing one.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class FloorRegime(str, Enum):
    """How the max-drawdown floor follows the account balance."""

    STATIC = "static"
    TRAILING = "trailing"
    EOD_TRAILING = "eod_trailing"


class DrawdownBasis(str, Enum):
    """Which figure drawdown is measured on."""

    BALANCE = "balance"
    EQUITY = "equity"  # closed balance plus floating P&L


@dataclass(frozen=True)
class LimitPolicy:
    """Immutable prop-firm program rules.

    Percentages are expressed as numbers in (0, 100], e.g. 5.0 for 5%.
    Each drawdown limit is either a percent or a fixed currency amount
    (`*_amount`), never both. max_drawdown_percent may be None only when
    max_drawdown_amount is set.
    """

    starting_balance: float
    max_drawdown_percent: Optional[float]
    floor_regime: FloorRegime = FloorRegime.STATIC
    daily_drawdown_percent: Optional[float] = None  # None = no daily limit
    consistency_limit_percent: Optional[float] = None  # None = rule disabled
    min_trading_days: int = 0
    profit_target_percent: Optional[float] = None
    daily_drawdown_amount: Optional[float] = None
    max_drawdown_amount: Optional[float] = None
    drawdown_basis: DrawdownBasis = DrawdownBasis.BALANCE
    # Gating flags, evaluated by the calling context
    allows_news_trading: bool = True
    allows_weekend_holding: bool = True


@dataclass(frozen=True)
class TradingDayRecord:
    """One closed trading day."""

    date: date
    profit: float  # loss is negative
    trade_count: int
    daily_limit_breached: bool = False


@dataclass(frozen=True)
class AccountState:
    """Immutable account snapshot.

    peak_balance tracks every balance seen intraday; peak_eod_balance only
    day-close balances. history is ordered by date, one record per day.
    current_equity is the latest equity reading, None when not tracked.
    """

    starting_balance: float
    current_balance: float
    peak_balance: float
    peak_eod_balance: float
    today_start_balance: float
    history: tuple[TradingDayRecord, ...] = field(default_factory=tuple)
    current_equity: Optional[float] = None

    @property
    def cumulative_profit(self) -> float:
        return sum(day.profit for day in self.history)

    @property
    def last_date(self) -> Optional[date]:
        return self.history[-1].date if self.history else None
