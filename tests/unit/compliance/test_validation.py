"""Unit tests for engine precondition checks."""

from datetime import date

import pytest

from app.services.compliance.errors import (
    ComplianceError,
    InvalidInput,
    InvalidPolicy,
    InvalidState,
)
from app.services.compliance.models import DrawdownBasis, FloorRegime, TradingDayRecord
from app.services.compliance.progress import evaluate_progress
from app.services.compliance.validation import (
    resolve_basis,
    resolve_regime,
    validate_fraction,
    validate_history,
    validate_policy,
    validate_risk_amount,
    validate_state,
)


class TestValidatePolicy:
    def test_valid_policy(self, policy):
        validate_policy(policy)

    def test_minimal_policy(self, make_policy):
        validate_policy(
            make_policy(
                daily_drawdown_percent=None,
                profit_target_percent=None,
                consistency_limit_percent=None,
            )
        )

    @pytest.mark.parametrize(
        "field,value",
        [
            ("starting_balance", 0),
            ("starting_balance", -10_000),
            ("starting_balance", float("inf")),
            ("max_drawdown_percent", 0),
            ("max_drawdown_percent", 100),
            ("max_drawdown_percent", None),
            ("daily_drawdown_percent", 0),
            ("daily_drawdown_percent", 100.5),
            ("consistency_limit_percent", -1),
            ("consistency_limit_percent", 101),
            ("profit_target_percent", 0),
            ("profit_target_percent", -5),
            ("min_trading_days", -1),
            ("min_trading_days", 2.5),
            ("min_trading_days", True),
            ("floor_regime", "monthly"),
        ],
    )
    def test_out_of_range(self, make_policy, field, value):
        with pytest.raises(InvalidPolicy) as exc:
            validate_policy(make_policy(**{field: value}))
        assert exc.value.field == field
        assert exc.value.kind == "invalid_policy"

    def test_upper_bounds_inclusive_for_optional_percents(self, make_policy):
        validate_policy(
            make_policy(daily_drawdown_percent=100, consistency_limit_percent=100)
        )

    def test_large_profit_target_allowed(self, make_policy):
        validate_policy(make_policy(profit_target_percent=250))


class TestFixedAmountLimits:
    def test_fixed_amounts_accepted(self, make_policy):
        validate_policy(
            make_policy(
                max_drawdown_percent=None,
                max_drawdown_amount=6_000,
                daily_drawdown_percent=None,
                daily_drawdown_amount=2_500,
            )
        )

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"max_drawdown_amount": 6_000}, "max_drawdown_amount"),
            (
                {"daily_drawdown_percent": 5.0, "daily_drawdown_amount": 2_500},
                "daily_drawdown_amount",
            ),
            ({"max_drawdown_percent": None, "max_drawdown_amount": 100_000}, "max_drawdown_amount"),
            ({"max_drawdown_percent": None, "max_drawdown_amount": 0}, "max_drawdown_amount"),
            (
                {"daily_drawdown_percent": None, "daily_drawdown_amount": float("inf")},
                "daily_drawdown_amount",
            ),
            ({"drawdown_basis": "margin"}, "drawdown_basis"),
        ],
    )
    def test_rejected(self, make_policy, overrides, field):
        with pytest.raises(InvalidPolicy) as exc:
            validate_policy(make_policy(**overrides))
        assert exc.value.field == field

    def test_daily_amount_may_exceed_start(self, make_policy):
        validate_policy(
            make_policy(daily_drawdown_percent=None, daily_drawdown_amount=150_000)
        )


class TestResolveBasis:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (DrawdownBasis.EQUITY, DrawdownBasis.EQUITY),
            ("balance", DrawdownBasis.BALANCE),
            ("Equity", DrawdownBasis.EQUITY),
        ],
    )
    def test_accepted_values(self, value, expected):
        assert resolve_basis(value) is expected

    @pytest.mark.parametrize("value", ["", "margin", None, 0])
    def test_rejected_values(self, value):
        with pytest.raises(InvalidPolicy):
            resolve_basis(value)


class TestResolveRegime:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (FloorRegime.TRAILING, FloorRegime.TRAILING),
            ("static", FloorRegime.STATIC),
            ("EOD_TRAILING", FloorRegime.EOD_TRAILING),
            ("Trailing", FloorRegime.TRAILING),
        ],
    )
    def test_accepted_values(self, value, expected):
        assert resolve_regime(value) is expected

    @pytest.mark.parametrize("value", ["", "eod", None, 1])
    def test_rejected_values(self, value):
        with pytest.raises(InvalidPolicy):
            resolve_regime(value)


class TestValidateState:
    def test_valid_state(self, fresh_state):
        validate_state(fresh_state)

    @pytest.mark.parametrize(
        "field", ["current_balance", "peak_balance", "peak_eod_balance", "today_start_balance"]
    )
    def test_negative_balance(self, make_state, field):
        with pytest.raises(InvalidState) as exc:
            validate_state(make_state(**{field: -1.0}))
        assert exc.value.field == field

    def test_zero_current_balance_allowed(self, make_state):
        validate_state(make_state(current_balance=0.0))

    def test_zero_starting_balance_rejected(self, make_state):
        with pytest.raises(InvalidState):
            validate_state(make_state(starting_balance=0.0, current_balance=0.0))

    def test_nan_balance(self, make_state):
        with pytest.raises(InvalidState):
            validate_state(make_state(current_balance=float("nan")))

    def test_equity_checked_when_present(self, make_state):
        validate_state(make_state(current_equity=98_000))
        with pytest.raises(InvalidState) as exc:
            validate_state(make_state(current_equity=-5.0))
        assert exc.value.field == "current_equity"


class TestValidateHistory:
    def test_ordered_history(self, day):
        validate_history((day(2, 100), day(3, -50), day(9, 10)))

    def test_duplicate_dates(self, day):
        with pytest.raises(InvalidState, match="duplicate"):
            validate_history((day(2, 100), day(2, 50)))

    def test_unordered_dates(self, day):
        with pytest.raises(InvalidState, match="chronological"):
            validate_history((day(3, 100), day(2, 50)))

    def test_negative_trade_count(self, day):
        with pytest.raises(InvalidState):
            validate_history((day(2, 100, trades=-2),))

    @pytest.mark.parametrize("profit", [float("nan"), float("inf"), "100", None, True])
    def test_non_finite_or_non_number_profit(self, profit):
        record = TradingDayRecord(date=date(2026, 3, 2), profit=profit, trade_count=1)
        with pytest.raises(InvalidState) as exc:
            validate_history((record,))
        assert exc.value.field == "history"

    @pytest.mark.parametrize("trades", [1.5, "3", None, True])
    def test_non_integer_trade_count(self, day, trades):
        with pytest.raises(InvalidState) as exc:
            validate_history((day(2, 100, trades=trades),))
        assert exc.value.field == "history"

    def test_nan_day_does_not_pass_progress(self, make_policy, make_state, day):
        """A NaN day hides every comparison; it must be rejected, not scored."""
        policy = make_policy(consistency_limit_percent=40.0)
        state = make_state(
            current_balance=108_000,
            history=[
                day(2, 8_000),
                TradingDayRecord(date=date(2026, 3, 3), profit=float("nan"), trade_count=1),
            ],
        )
        with pytest.raises(InvalidState):
            evaluate_progress(policy, state)


class TestScalarInputs:
    @pytest.mark.parametrize("value", [0, 0.0, 1, 2_500.5])
    def test_valid_risk(self, value):
        assert validate_risk_amount(value) == float(value)

    def test_risk_returned_as_float(self):
        assert isinstance(validate_risk_amount(100), float)

    @pytest.mark.parametrize("value", [-0.01, float("-inf"), None, False])
    def test_invalid_risk(self, value):
        with pytest.raises(InvalidInput):
            validate_risk_amount(value)

    @pytest.mark.parametrize("value", [0.01, 0.5, 1.0])
    def test_valid_fraction(self, value):
        validate_fraction(value, "warning_fraction")

    @pytest.mark.parametrize("value", [0, 1.01, None])
    def test_invalid_fraction(self, value):
        with pytest.raises(InvalidInput):
            validate_fraction(value, "warning_fraction")


class TestErrors:
    def test_to_dict(self):
        err = InvalidInput("risk_amount must not be negative", field="risk_amount")
        assert err.to_dict() == {
            "error": "invalid_input",
            "message": "risk_amount must not be negative",
            "field": "risk_amount",
        }
        assert str(err) == "risk_amount must not be negative"

    @pytest.mark.parametrize("cls", [InvalidPolicy, InvalidState, InvalidInput])
    def test_common_base(self, cls):
        assert issubclass(cls, ComplianceError)
        assert cls("boom").field is None
