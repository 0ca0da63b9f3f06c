#!/usr/bin/env python
"""
CLI for the drawdown compliance engine.

Every command reads a JSON payload (file path or "-" for stdin) and prints a
JSON result to stdout.

Usage:
    python -m app.services.compliance.cli simulate --input <payload.json>
    python -m app.services.compliance.cli close-day --input <payload.json>
    python -m app.services.compliance.cli progress --input <payload.json>
    python -m app.services.compliance.cli health --input <payload.json>
    python -m app.services.compliance.cli plan --input <payload.json>
    python -m app.services.compliance.cli replay --input <payload.json>

Examples:
    # Would a $2,000 stop-out breach anything?
    echo '{"policy": {"starting_balance": 50000, "max_drawdown_percent": 10,
           "daily_drawdown_percent": 5},
           "state": {"starting_balance": 50000}, "risk_amount": 2000}' \\
        | python -m app.services.compliance.cli simulate --input -

    # Close a day and get the new state plus challenge progress
    python -m app.services.compliance.cli close-day --input day.json

    # Static vs trailing drawdown over a run of trades
    echo '{"policy": {"starting_balance": 100000, "max_drawdown_percent": 10},
           "pnls": [4000, -3000, -8000]}' \\
        | python -m app.services.compliance.cli replay --input -

Exit codes: 0 success, 1 unreadable input, 2 validation error.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ValidationError

from app.logging_config import configure_logging
from app.schemas.compliance import (
    AccountHealthResponse,
    AccountRequest,
    AccountStateSchema,
    DayCloseRequest,
    DayCloseResponse,
    DrawdownReplayResponse,
    PlanRequest,
    ProgressReportResponse,
    ReplayRequest,
    RiskBudgetResponse,
    SimulateRequest,
    TradeSimulationResponse,
)
from app.services.compliance.classifier import simulate_trade
from app.services.compliance.errors import ComplianceError
from app.services.compliance.health import assess_health
from app.services.compliance.ledger import record_trading_day, replay_pnl_sequence
from app.services.compliance.planner import plan_risk_budget
from app.services.compliance.progress import evaluate_progress

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_BAD_INPUT = 1
EXIT_INVALID = 2


def cmd_simulate(payload: dict[str, Any]) -> BaseModel:
    req = SimulateRequest.model_validate(payload)
    result = simulate_trade(
        req.policy.to_domain(),
        req.state.to_domain(),
        req.risk_amount,
        warning_fraction=req.warning_fraction,
    )
    return TradeSimulationResponse.from_domain(result)


def cmd_close_day(payload: dict[str, Any]) -> BaseModel:
    req = DayCloseRequest.model_validate(payload)
    policy = req.policy.to_domain()
    new_state = record_trading_day(policy, req.state.to_domain(), req.record.to_domain())
    return DayCloseResponse(
        state=AccountStateSchema.from_domain(new_state),
        progress=ProgressReportResponse.from_domain(evaluate_progress(policy, new_state)),
    )


def cmd_progress(payload: dict[str, Any]) -> BaseModel:
    req = AccountRequest.model_validate(payload)
    report = evaluate_progress(req.policy.to_domain(), req.state.to_domain())
    return ProgressReportResponse.from_domain(report)


def cmd_health(payload: dict[str, Any]) -> BaseModel:
    req = AccountRequest.model_validate(payload)
    health = assess_health(req.policy.to_domain(), req.state.to_domain())
    return AccountHealthResponse.from_domain(health)


def cmd_plan(payload: dict[str, Any]) -> BaseModel:
    req = PlanRequest.model_validate(payload)
    budget = plan_risk_budget(
        req.policy.to_domain(),
        req.risk_per_trade_percent,
        stop_loss_pips=req.stop_loss_pips,
        pip_value=req.pip_value,
    )
    return RiskBudgetResponse.from_domain(budget)


def cmd_replay(payload: dict[str, Any]) -> BaseModel:
    req = ReplayRequest.model_validate(payload)
    replay = replay_pnl_sequence(req.policy.to_domain(), req.pnls)
    return DrawdownReplayResponse.from_domain(replay)


COMMANDS = {
    "simulate": (cmd_simulate, "Classify a hypothetical trade"),
    "close-day": (cmd_close_day, "Record a trading day and evaluate progress"),
    "progress": (cmd_progress, "Evaluate challenge progress"),
    "health": (cmd_health, "Assess account health"),
    "plan": (cmd_plan, "Plan a per-trade risk budget"),
    "replay": (cmd_replay, "Replay trade P&Ls against static and trailing floors"),
}


def _read_payload(source: str) -> dict[str, Any]:
    if source == "-":
        return json.load(sys.stdin)
    return json.loads(Path(source).read_text(encoding="utf-8"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Prop-firm drawdown compliance CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, (_, help_text) in COMMANDS.items():
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--input",
            "-i",
            required=True,
            help='Path to a JSON payload, or "-" for stdin',
        )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    configure_logging()
    args = build_parser().parse_args(argv)
    handler, _ = COMMANDS[args.command]

    try:
        payload = _read_payload(args.input)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Could not read input", source=args.input, error=str(e))
        return EXIT_BAD_INPUT

    try:
        response = handler(payload)
    except ValidationError as e:
        details = e.errors(include_url=False)
        print(json.dumps({"error": "schema_error", "details": details}, default=str))
        return EXIT_INVALID
    except ComplianceError as e:
        print(json.dumps(e.to_dict()))
        return EXIT_INVALID

    print(response.model_dump_json(indent=2))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
