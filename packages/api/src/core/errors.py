# This project was developed with assistance from AI tools.
"""Error taxonomy shared by services and routes.

Services raise these; routes translate them into HTTP status codes. Strict
submission failures are not errors -- see ``services.submission``.
"""

from pydantic import BaseModel, ValidationError


class FieldIssue(BaseModel):
    """One field-level validation problem."""

    path: str
    message: str


def issues_from_error(exc: ValidationError, prefix: str = "") -> list[FieldIssue]:
    """Flatten a pydantic ValidationError into path/message pairs."""
    issues = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        if prefix:
            loc = f"{prefix}.{loc}" if loc else prefix
        issues.append(FieldIssue(path=loc, message=err["msg"]))
    return issues


class ActorAuthError(Exception):
    """Invalid/expired token or a session without the required role."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


class ActorValidationError(ValueError):
    """Tab-schema, whitelist or strict-schema rejection of caller input."""

    def __init__(self, message: str, issues: list[FieldIssue] | None = None):
        super().__init__(message)
        self.issues = issues or []


class TabConfigurationError(ValueError):
    """Unknown tab for the actor type, or a tab that does not apply to its variant."""


class InfrastructureError(RuntimeError):
    """Storage or network failure outside the database."""


class SecondaryWriteFailure(Exception):
    """Reference replacement failed after the primary field save."""


class InvalidTransitionError(ValueError):
    """Raised when a policy status transition is not allowed."""


class PolicyOperationError(ValueError):
    """A policy-level operation is refused in the policy's current state."""
