"""Compliance schemas: JSON payloads exchanged with presentation code.

Schemas only check types. Range checks stay in the engine so callers get
the engine's InvalidPolicy / InvalidState / InvalidInput errors.
"""

import datetime
import math
from dataclasses import asdict
from typing import Optional

from pydantic import BaseModel, Field

from app.services.compliance.buffers import Buffers
from app.services.compliance.classifier import TradeClassification, TradeSimulation
from app.services.compliance.health import AccountHealth, HealthStatus
from app.services.compliance.ledger import DrawdownReplay, ReplayStep
from app.services.compliance.models import (
    AccountState,
    DrawdownBasis,
    FloorRegime,
    LimitPolicy,
    TradingDayRecord,
)
from app.services.compliance.planner import RiskBudget
from app.services.compliance.progress import ChallengeStatus, ProgressReport


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    """JSON has no infinity; an unbounded amount is sent as null."""
    if value is None or math.isinf(value):
        return None
    return value


# ===========================================
# Inputs
# ===========================================


class LimitPolicySchema(BaseModel):
    """Rule set of one prop-firm program."""

    starting_balance: float = Field(..., description="Initial account equity")
    max_drawdown_percent: Optional[float] = Field(
        default=None, description="Max drawdown, percent (or set max_drawdown_amount)"
    )
    floor_regime: FloorRegime = Field(
        default=FloorRegime.STATIC, description="static, trailing or eod_trailing"
    )
    daily_drawdown_percent: Optional[float] = Field(
        default=None, description="Daily drawdown, percent (null = no daily limit)"
    )
    consistency_limit_percent: Optional[float] = Field(
        default=None, description="Max single-day share of profit, percent"
    )
    min_trading_days: int = Field(default=0, description="Minimum trading days")
    profit_target_percent: Optional[float] = Field(
        default=None, description="Profit target, percent of starting balance"
    )
    daily_drawdown_amount: Optional[float] = Field(
        default=None, description="Fixed daily limit in currency, instead of the percent"
    )
    max_drawdown_amount: Optional[float] = Field(
        default=None, description="Fixed max limit in currency, instead of the percent"
    )
    drawdown_basis: DrawdownBasis = Field(
        default=DrawdownBasis.BALANCE, description="balance or equity"
    )
    allows_news_trading: bool = Field(default=True)
    allows_weekend_holding: bool = Field(default=True)

    def to_domain(self) -> LimitPolicy:
        return LimitPolicy(**self.model_dump())


class TradingDaySchema(BaseModel):
    """One closed trading day."""

    date: datetime.date
    profit: float = Field(..., description="Realized P&L, negative for a loss")
    trade_count: int = Field(default=1, description="Trades taken that day")
    daily_limit_breached: bool = Field(default=False)

    def to_domain(self) -> TradingDayRecord:
        return TradingDayRecord(
            date=self.date,
            profit=self.profit,
            trade_count=self.trade_count,
            daily_limit_breached=self.daily_limit_breached,
        )

    @classmethod
    def from_domain(cls, record: TradingDayRecord) -> "TradingDaySchema":
        return cls(
            date=record.date,
            profit=record.profit,
            trade_count=record.trade_count,
            daily_limit_breached=record.daily_limit_breached,
        )


class AccountStateSchema(BaseModel):
    """Account snapshot. Omitted running balances default from the others."""

    starting_balance: float
    current_balance: Optional[float] = Field(
        default=None, description="Defaults to starting balance plus history"
    )
    peak_balance: Optional[float] = Field(
        default=None, description="Defaults to max(starting, current)"
    )
    peak_eod_balance: Optional[float] = Field(
        default=None, description="Defaults to the highest day close"
    )
    today_start_balance: Optional[float] = Field(
        default=None, description="Defaults to the last day close"
    )
    history: list[TradingDaySchema] = Field(default_factory=list)
    current_equity: Optional[float] = Field(
        default=None, description="Balance plus floating P&L, when tracked"
    )

    def to_domain(self) -> AccountState:
        records = tuple(day.to_domain() for day in self.history)

        close = self.starting_balance
        highest_close = self.starting_balance
        for record in records:
            close += record.profit
            highest_close = max(highest_close, close)

        current = close if self.current_balance is None else self.current_balance
        peak_eod = highest_close if self.peak_eod_balance is None else self.peak_eod_balance
        peak = (
            max(peak_eod, current, self.starting_balance)
            if self.peak_balance is None
            else self.peak_balance
        )
        today_start = close if self.today_start_balance is None else self.today_start_balance
        return AccountState(
            starting_balance=self.starting_balance,
            current_balance=current,
            peak_balance=peak,
            peak_eod_balance=peak_eod,
            today_start_balance=today_start,
            history=records,
            current_equity=self.current_equity,
        )

    @classmethod
    def from_domain(cls, state: AccountState) -> "AccountStateSchema":
        return cls(
            starting_balance=state.starting_balance,
            current_balance=state.current_balance,
            peak_balance=state.peak_balance,
            peak_eod_balance=state.peak_eod_balance,
            today_start_balance=state.today_start_balance,
            history=[TradingDaySchema.from_domain(day) for day in state.history],
            current_equity=state.current_equity,
        )


class SimulateRequest(BaseModel):
    policy: LimitPolicySchema
    state: AccountStateSchema
    risk_amount: float = Field(..., description="Loss if the trade is stopped out")
    warning_fraction: Optional[float] = Field(
        default=None, description="Override of the RISKY threshold"
    )


class DayCloseRequest(BaseModel):
    policy: LimitPolicySchema
    state: AccountStateSchema
    record: TradingDaySchema


class AccountRequest(BaseModel):
    """Policy and state pair, for progress and health."""

    policy: LimitPolicySchema
    state: AccountStateSchema


class PlanRequest(BaseModel):
    policy: LimitPolicySchema
    risk_per_trade_percent: float = Field(..., description="Risk per trade, percent")
    stop_loss_pips: Optional[float] = Field(
        default=None, description="Stop distance in pips, for position sizing"
    )
    pip_value: Optional[float] = Field(
        default=None, description="Account currency per pip per lot"
    )


class ReplayRequest(BaseModel):
    policy: LimitPolicySchema
    pnls: list[float] = Field(..., description="Closed-trade P&Ls, in order")


# ===========================================
# Outputs
# ===========================================


class BuffersResponse(BaseModel):
    max_buffer: float
    daily_buffer: Optional[float] = Field(None, description="null = no daily limit")
    floor: float
    daily_limit_amount: Optional[float] = None
    daily_loss: float
    max_limit_amount: float
    basis_used: DrawdownBasis = DrawdownBasis.BALANCE

    @classmethod
    def from_domain(cls, buffers: Buffers) -> "BuffersResponse":
        return cls(
            max_buffer=buffers.max_buffer,
            daily_buffer=_finite_or_none(buffers.daily_buffer),
            floor=buffers.floor,
            daily_limit_amount=_finite_or_none(buffers.daily_limit_amount),
            daily_loss=buffers.daily_loss,
            max_limit_amount=buffers.max_limit_amount,
            basis_used=buffers.basis_used,
        )


class TradeSimulationResponse(BaseModel):
    classification: TradeClassification
    message: str
    risk_amount: float
    daily_buffer_after: Optional[float] = None
    max_buffer_after: float
    buffers: BuffersResponse
    metrics: dict[str, float]
    reasons: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, result: TradeSimulation) -> "TradeSimulationResponse":
        return cls(
            classification=result.classification,
            message=result.message,
            risk_amount=result.risk_amount,
            daily_buffer_after=_finite_or_none(result.daily_buffer_after),
            max_buffer_after=result.max_buffer_after,
            buffers=BuffersResponse.from_domain(result.buffers),
            metrics={
                "daily_limit_usage_pct": result.metrics.daily_limit_usage_pct,
                "max_limit_usage_pct": result.metrics.max_limit_usage_pct,
                "daily_buffer_usage_pct": result.metrics.daily_buffer_usage_pct,
                "max_buffer_usage_pct": result.metrics.max_buffer_usage_pct,
            },
            reasons=list(result.reasons),
        )


class ProgressReportResponse(BaseModel):
    status: ChallengeStatus
    cumulative_profit: float
    trading_days: int
    target_amount: Optional[float] = None
    profit_target_met: bool
    min_days_met: bool
    days_remaining: int
    remaining_profit: Optional[float] = None
    progress_percent: Optional[float] = None
    floor: float
    daily_limit_breached: bool
    max_drawdown_breached: bool
    consistency_violated: bool
    largest_day_profit: float
    largest_day_ratio: Optional[float] = None
    failure_reasons: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, report: ProgressReport) -> "ProgressReportResponse":
        return cls(
            status=report.status,
            cumulative_profit=report.cumulative_profit,
            trading_days=report.trading_days,
            target_amount=report.target_amount,
            profit_target_met=report.profit_target_met,
            min_days_met=report.min_days_met,
            days_remaining=report.days_remaining,
            remaining_profit=report.remaining_profit,
            progress_percent=report.progress_percent,
            floor=report.floor,
            daily_limit_breached=report.daily_limit_breached,
            max_drawdown_breached=report.max_drawdown_breached,
            consistency_violated=report.consistency_violated,
            largest_day_profit=report.consistency.largest_day_profit,
            largest_day_ratio=report.consistency.largest_day_ratio,
            failure_reasons=[reason.value for reason in report.failure_reasons],
        )


class DayCloseResponse(BaseModel):
    state: AccountStateSchema
    progress: ProgressReportResponse


class AccountHealthResponse(BaseModel):
    status: HealthStatus
    daily_status: HealthStatus
    max_status: HealthStatus
    daily_buffer_pct: float
    max_buffer_pct: float
    buffers: BuffersResponse
    messages: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, health: AccountHealth) -> "AccountHealthResponse":
        return cls(
            status=health.status,
            daily_status=health.daily_status,
            max_status=health.max_status,
            daily_buffer_pct=health.daily_buffer_pct,
            max_buffer_pct=health.max_buffer_pct,
            buffers=BuffersResponse.from_domain(health.buffers),
            messages=list(health.messages),
        )


class RiskBudgetResponse(BaseModel):
    risk_per_trade: float
    max_daily_loss: Optional[float] = None
    max_total_loss: float
    losing_trades_allowed_daily: Optional[int] = None
    losing_trades_allowed_total: int
    profit_target_amount: Optional[float] = None
    trades_needed_at_1r: Optional[int] = None
    reward_risk_needed: Optional[float] = None
    lot_size: Optional[float] = None

    @classmethod
    def from_domain(cls, budget: RiskBudget) -> "RiskBudgetResponse":
        return cls(**asdict(budget))


class ReplayStepResponse(BaseModel):
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

    @classmethod
    def from_domain(cls, step: ReplayStep) -> "ReplayStepResponse":
        return cls(**asdict(step))


class DrawdownReplayResponse(BaseModel):
    steps: list[ReplayStepResponse]
    failed: bool
    failed_regime: Optional[FloorRegime] = Field(
        None, description="Floor reached first, null when both held"
    )
    failed_at: Optional[int] = None
    final_balance: float
    high_water: float

    @classmethod
    def from_domain(cls, replay: DrawdownReplay) -> "DrawdownReplayResponse":
        return cls(
            steps=[ReplayStepResponse.from_domain(step) for step in replay.steps],
            failed=replay.failed,
            failed_regime=replay.failed_regime,
            failed_at=replay.failed_at,
            final_balance=replay.final_balance,
            high_water=replay.high_water,
        )
