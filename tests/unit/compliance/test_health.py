"""Unit tests for account health banding."""

import os
from unittest.mock import patch

import pytest

from app.services.compliance.errors import InvalidInput
from app.services.compliance.health import (
    HealthStatus,
    assess_health,
    summarize_accounts,
    worst_status,
)
from app.services.compliance.models import DrawdownBasis, FloorRegime


class TestAssessHealth:
    def test_fresh_account_is_safe(self, policy, fresh_state):
        health = assess_health(policy, fresh_state)
        assert health.status == HealthStatus.SAFE
        assert health.daily_buffer_pct == pytest.approx(100.0)
        assert health.max_buffer_pct == pytest.approx(100.0)
        assert health.messages[-1].startswith("Account is healthy.")

    def test_moderate_loss_still_safe(self, policy, make_state):
        health = assess_health(policy, make_state(current_balance=98_000))
        assert health.status == HealthStatus.SAFE
        assert health.daily_buffer_pct == pytest.approx(60.0)
        assert health.max_buffer_pct == pytest.approx(80.0)

    def test_daily_warning(self, policy, make_state):
        health = assess_health(policy, make_state(current_balance=96_000))
        assert health.daily_status == HealthStatus.WARNING
        assert health.max_status == HealthStatus.SAFE
        assert health.status == HealthStatus.WARNING
        assert health.messages[0].startswith("WARNING: daily drawdown 80.0% used.")

    def test_daily_danger(self, policy, make_state):
        health = assess_health(policy, make_state(current_balance=95_500))
        assert health.daily_status == HealthStatus.DANGER
        assert health.status == HealthStatus.DANGER
        assert "Stop trading today." in health.messages[0]

    def test_max_danger(self, policy, make_state):
        state = make_state(current_balance=91_000, today_start_balance=91_000)
        health = assess_health(policy, state)
        assert health.daily_status == HealthStatus.SAFE
        assert health.max_status == HealthStatus.DANGER
        assert health.status == HealthStatus.DANGER
        assert health.max_buffer_pct == pytest.approx(10.0)

    def test_breached_account_clamped_to_zero(self, policy, make_state):
        health = assess_health(policy, make_state(current_balance=85_000))
        assert health.daily_buffer_pct == 0
        assert health.max_buffer_pct == 0
        assert health.status == HealthStatus.DANGER

    def test_no_daily_limit(self, make_policy, make_state):
        policy = make_policy(daily_drawdown_percent=None)
        health = assess_health(policy, make_state(current_balance=97_000))
        assert health.daily_buffer_pct == 100.0
        assert health.daily_status == HealthStatus.SAFE
        assert health.max_buffer_pct == pytest.approx(70.0)


class TestTrailingMessage:
    def test_trailing_floor_moved(self, make_policy, make_state):
        policy = make_policy(floor_regime=FloorRegime.TRAILING)
        state = make_state(current_balance=105_000, today_start_balance=105_000)
        health = assess_health(policy, state)
        assert any(m.startswith("Trailing drawdown active.") for m in health.messages)
        assert "$94,500" in " ".join(health.messages)

    def test_trailing_floor_at_start(self, make_policy, fresh_state):
        policy = make_policy(floor_regime=FloorRegime.TRAILING)
        health = assess_health(policy, fresh_state)
        assert not any(m.startswith("Trailing") for m in health.messages)

    def test_static_never_reports_trailing(self, policy, make_state):
        state = make_state(current_balance=105_000, today_start_balance=105_000)
        health = assess_health(policy, state)
        assert not any(m.startswith("Trailing") for m in health.messages)


class TestEquityBasisMessage:
    def test_fallback_reported(self, make_policy, fresh_state):
        policy = make_policy(drawdown_basis=DrawdownBasis.EQUITY)
        health = assess_health(policy, fresh_state)
        assert health.buffers.basis_used == DrawdownBasis.BALANCE
        assert any(m.startswith("Equity basis requested") for m in health.messages)

    def test_no_message_with_equity_reading(self, make_policy, make_state):
        policy = make_policy(drawdown_basis=DrawdownBasis.EQUITY)
        state = make_state(current_equity=96_000)
        health = assess_health(policy, state)
        assert health.buffers.basis_used == DrawdownBasis.EQUITY
        assert health.daily_status == HealthStatus.WARNING
        assert not any(m.startswith("Equity") for m in health.messages)

    def test_no_message_on_balance_basis(self, policy, fresh_state):
        health = assess_health(policy, fresh_state)
        assert not any(m.startswith("Equity") for m in health.messages)


class TestThresholds:
    def test_explicit_thresholds(self, policy, make_state):
        state = make_state(current_balance=98_000)
        health = assess_health(policy, state, danger_pct=50, warning_pct=70)
        assert health.daily_status == HealthStatus.WARNING

    def test_thresholds_from_settings(self, policy, make_state):
        state = make_state(current_balance=98_000)
        with patch.dict(
            os.environ,
            {
                "COMPLIANCE_DANGER_BUFFER_PCT": "65",
                "COMPLIANCE_WARNING_BUFFER_PCT": "90",
            },
        ):
            health = assess_health(policy, state)
        assert health.daily_status == HealthStatus.DANGER
        assert health.max_status == HealthStatus.WARNING

    def test_inverted_thresholds_rejected(self, policy, fresh_state):
        with pytest.raises(InvalidInput) as exc:
            assess_health(policy, fresh_state, danger_pct=40, warning_pct=20)
        assert exc.value.field == "warning_pct"


class TestWorstStatus:
    @pytest.mark.parametrize(
        "a,b,expected",
        [
            (HealthStatus.SAFE, HealthStatus.SAFE, HealthStatus.SAFE),
            (HealthStatus.SAFE, HealthStatus.WARNING, HealthStatus.WARNING),
            (HealthStatus.DANGER, HealthStatus.WARNING, HealthStatus.DANGER),
            (HealthStatus.SAFE, HealthStatus.DANGER, HealthStatus.DANGER),
        ],
    )
    def test_worst_status(self, a, b, expected):
        assert worst_status(a, b) == expected
        assert worst_status(b, a) == expected


class TestSummarizeAccounts:
    def test_counts(self, policy, make_state):
        accounts = [
            (policy, make_state()),
            (policy, make_state(current_balance=96_000)),
            (policy, make_state(current_balance=95_500)),
            (policy, make_state(current_balance=99_000)),
        ]
        summary = summarize_accounts(accounts)
        assert summary.total_accounts == 4
        assert summary.total_balance == 390_500
        assert summary.safe_count == 2
        assert summary.warning_count == 1
        assert summary.danger_count == 1
        assert summary.accounts_at_risk == 2

    def test_empty(self):
        summary = summarize_accounts([])
        assert summary.total_accounts == 0
        assert summary.total_balance == 0
        assert summary.accounts_at_risk == 0
