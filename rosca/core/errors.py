# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain errors — recoverable, caller-visible conditions.
Every error carries a stable `code` that controllers pass through to clients.
Lookup failures (unknown group / draft) use the builtin KeyError instead.
"""


class RotationError(ValueError):
    """Base class for every rotation/assignment failure."""

    code: str = "rotation-error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class IncompleteAssignment(RotationError):
    code = "incomplete-assignment"


class DuplicatePosition(RotationError):
    code = "duplicate-position"


class InvalidPositions(RotationError):
    code = "invalid-positions"


class InvalidMemberCount(RotationError):
    code = "invalid-member-count"


class EmptyMemberList(RotationError):
    code = "empty-member-list"


class PositionOutOfRange(RotationError):
    code = "position-out-of-range"


class UnknownMember(RotationError):
    code = "unknown-member"


class InvalidStatusTransition(RotationError):
    code = "invalid-status-transition"


class InvalidCollectionDate(RotationError):
    code = "invalid-collection-date"


class InvalidGroup(RotationError):
    code = "invalid-group"


class GroupFull(RotationError):
    code = "group-full"


class CycleInProgress(RotationError):
    """Reassigning positions would discard completed collections."""

    code = "cycle-in-progress"


class StaleDraft(RotationError):
    """A pending draft no longer matches the group it was computed for."""

    code = "stale-draft"


class RequestAlreadyAnswered(RotationError):
    """The invite request was already approved or denied."""

    code = "request-already-answered"


class NotGroupAdmin(RotationError):
    code = "not-group-admin"


# Errors that describe a conflict with current state rather than bad input
CONFLICT_ERRORS: tuple[type[RotationError], ...] = (
    CycleInProgress, StaleDraft, GroupFull, RequestAlreadyAnswered,
)
FORBIDDEN_ERRORS: tuple[type[RotationError], ...] = (NotGroupAdmin,)
