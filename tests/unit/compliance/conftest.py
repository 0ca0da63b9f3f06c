"""Shared fixtures for compliance engine tests."""

from datetime import date

import pytest

from app.config import get_settings
from app.services.compliance.models import (
    AccountState,
    FloorRegime,
    LimitPolicy,
    TradingDayRecord,
)


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached; every test starts from the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _make_policy(**overrides) -> LimitPolicy:
    """Standard 100k program: 5% daily, 10% static max, 10% target."""
    values = dict(
        starting_balance=100_000.0,
        max_drawdown_percent=10.0,
        floor_regime=FloorRegime.STATIC,
        daily_drawdown_percent=5.0,
        consistency_limit_percent=None,
        min_trading_days=0,
        profit_target_percent=10.0,
    )
    values.update(overrides)
    return LimitPolicy(**values)


def _make_state(
    starting_balance: float = 100_000.0,
    current_balance: float = None,
    peak_balance: float = None,
    peak_eod_balance: float = None,
    today_start_balance: float = None,
    history=(),
    current_equity: float = None,
) -> AccountState:
    current = starting_balance if current_balance is None else current_balance
    peak_eod = starting_balance if peak_eod_balance is None else peak_eod_balance
    peak = max(peak_eod, current) if peak_balance is None else peak_balance
    return AccountState(
        starting_balance=starting_balance,
        current_balance=current,
        peak_balance=peak,
        peak_eod_balance=peak_eod,
        today_start_balance=(
            starting_balance if today_start_balance is None else today_start_balance
        ),
        history=tuple(history),
        current_equity=current_equity,
    )


def _day(n: int, profit: float, trades: int = 1, breached: bool = False) -> TradingDayRecord:
    """Trading day record on 2026-03-<n>."""
    return TradingDayRecord(
        date=date(2026, 3, n),
        profit=profit,
        trade_count=trades,
        daily_limit_breached=breached,
    )


@pytest.fixture
def make_policy():
    return _make_policy


@pytest.fixture
def make_state():
    return _make_state


@pytest.fixture
def day():
    return _day


@pytest.fixture
def policy() -> LimitPolicy:
    return _make_policy()


@pytest.fixture
def fresh_state() -> AccountState:
    return _make_state()
