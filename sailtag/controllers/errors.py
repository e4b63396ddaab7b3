"""Error kinds raised while reconciling an IstioRevisionTag.

Each kind carries the condition ``reason`` it maps to and whether it is
``permanent`` (retrying cannot help until the inputs change).
"""

REASON_NAME_ALREADY_EXISTS = "NameAlreadyExists"
REASON_REFERENCE_NOT_FOUND = "ReferenceNotFound"
REASON_RECONCILE_ERROR = "ReconcileError"
REASON_USAGE_CHECK_FAILED = "UsageCheckFailed"


class RevisionTagError(Exception):
    reason: str = REASON_RECONCILE_ERROR
    permanent: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NameAlreadyExistsError(RevisionTagError):
    """An IstioRevision with the tag's name exists."""

    reason = REASON_NAME_ALREADY_EXISTS
    permanent = True


class ReferenceNotFoundError(RevisionTagError):
    """The targetRef is unset or names an object that does not exist."""

    reason = REASON_REFERENCE_NOT_FOUND
    permanent = True


class UnknownKindError(ReferenceNotFoundError):
    pass


class NoActiveRevisionError(ReferenceNotFoundError):
    """The referenced Istio has not activated a revision yet."""

    permanent = False


class RevisionNotFoundError(ReferenceNotFoundError):
    """The revision the target resolves to is missing (possibly still converging)."""

    permanent = False


class ReconcileError(RevisionTagError):
    reason = REASON_RECONCILE_ERROR


class ValidationError(ReconcileError):
    """The validation gate could not complete because of an API failure."""


class UsageCheckFailedError(RevisionTagError):
    reason = REASON_USAGE_CHECK_FAILED
