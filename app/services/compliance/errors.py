"""Error kinds raised by the compliance engine.

Every error is a precondition violation detected before any output is
produced. Callers surface them as validation messages.
"""

from typing import Optional


class ComplianceError(Exception):
    """Base error for compliance engine precondition failures."""

    kind = "compliance_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, "field": self.field}


class InvalidPolicy(ComplianceError):
    """Rule set is out of range or names an unknown floor regime or basis."""

    kind = "invalid_policy"


class InvalidState(ComplianceError):
    """Account snapshot violates a balance or history constraint."""

    kind = "invalid_state"


class InvalidInput(ComplianceError):
    """Per-call argument (risk amount, balance update, record) is invalid."""

    kind = "invalid_input"
