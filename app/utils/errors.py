"""Custom exception hierarchy for the voting workflow API."""

from __future__ import annotations


class AppError(Exception):
    """Base application error with a stable machine-readable code."""

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        """Serialize the error in the API standard shape."""
        return {"error": self.message, "code": self.code}


class ForbiddenError(AppError):
    """Raised when the caller lacks the role required for the action."""

    def __init__(self, reason: str = "You don't have permission") -> None:
        super().__init__(message=reason, code="FORBIDDEN", status_code=403)


class ConflictError(AppError):
    """Raised on duplicate/conflicting operations."""

    def __init__(self, reason: str, code: str = "CONFLICT") -> None:
        super().__init__(message=reason, code=code, status_code=409)


class UnauthorizedError(AppError):
    """Raised when the caller is not authenticated."""

    def __init__(self, reason: str = "Unauthorized") -> None:
        super().__init__(message=reason, code="UNAUTHORIZED", status_code=401)


class InvalidInputError(AppError):
    """Raised for request payload or parameter validation issues."""

    def __init__(self, reason: str) -> None:
        super().__init__(message=reason, code="INVALID_INPUT", status_code=422)


class AlreadyRegisteredError(ConflictError):
    """Raised when a voter identity is registered twice."""

    def __init__(self, identity: str) -> None:
        super().__init__(f"Voter {identity} is already registered", code="ALREADY_REGISTERED")


class NotRegisteredError(AppError):
    """Raised when the caller is not on the voter whitelist."""

    def __init__(self, identity: str) -> None:
        super().__init__(
            message=f"Voter {identity} is not registered",
            code="NOT_REGISTERED",
            status_code=403,
        )


class PhaseNotOpenError(ConflictError):
    """Raised when an action is attempted outside its workflow phase."""

    def __init__(self, action: str, current: str) -> None:
        super().__init__(
            f"Cannot {action} while the workflow is in {current}",
            code="PHASE_NOT_OPEN",
        )


class AlreadyVotedError(ConflictError):
    """Raised on a second vote by the same voter."""

    def __init__(self) -> None:
        super().__init__("You have already voted", code="ALREADY_VOTED")


class InvalidProposalIdError(AppError):
    """Raised when a proposal id does not exist in the current collection."""

    def __init__(self, proposal_id: int) -> None:
        super().__init__(
            message=f"Proposal {proposal_id} not found",
            code="INVALID_PROPOSAL_ID",
            status_code=404,
        )


class InvalidPhaseTransitionError(ConflictError):
    """Raised when a phase transition is attempted out of order."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move from {current} to {target}",
            code="INVALID_PHASE_TRANSITION",
        )
