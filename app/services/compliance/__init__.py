"""Drawdown compliance and trade-risk simulation engine."""

from app.services.compliance.buffers import Buffers, compute_buffers
from app.services.compliance.classifier import (
    TradeClassification,
    TradeSimulation,
    classify_trade,
    max_risk_before_violation,
    max_safe_risk,
    simulate_trade,
)
from app.services.compliance.errors import (
    ComplianceError,
    InvalidInput,
    InvalidPolicy,
    InvalidState,
)
from app.services.compliance.floor import compute_floor, is_max_drawdown_breached
from app.services.compliance.health import AccountHealth, HealthStatus, assess_health
from app.services.compliance.ledger import (
    DrawdownReplay,
    apply_intraday_balance,
    open_account,
    record_trading_day,
    replay_pnl_sequence,
)
from app.services.compliance.models import (
    AccountState,
    DrawdownBasis,
    FloorRegime,
    LimitPolicy,
    TradingDayRecord,
)
from app.services.compliance.planner import RiskBudget, plan_risk_budget, position_size
from app.services.compliance.progress import (
    ChallengeStatus,
    ProgressReport,
    evaluate_progress,
)

__all__ = [
    "AccountHealth",
    "AccountState",
    "Buffers",
    "ChallengeStatus",
    "ComplianceError",
    "DrawdownBasis",
    "DrawdownReplay",
    "FloorRegime",
    "HealthStatus",
    "InvalidInput",
    "InvalidPolicy",
    "InvalidState",
    "LimitPolicy",
    "ProgressReport",
    "RiskBudget",
    "TradeClassification",
    "TradeSimulation",
    "TradingDayRecord",
    "apply_intraday_balance",
    "assess_health",
    "classify_trade",
    "compute_buffers",
    "compute_floor",
    "evaluate_progress",
    "is_max_drawdown_breached",
    "max_risk_before_violation",
    "max_safe_risk",
    "open_account",
    "plan_risk_budget",
    "position_size",
    "record_trading_day",
    "replay_pnl_sequence",
    "simulate_trade",
]
