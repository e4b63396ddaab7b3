import json
import kopf
import pytest
from kubernetes_asyncio.client import ApiException
from sailtag.controllers.errors import (
    NameAlreadyExistsError,
    NoActiveRevisionError,
    ReconcileError,
    ReferenceNotFoundError,
    UnknownKindError,
    UsageCheckFailedError,
)
from sailtag.utils.errors import (
    ErrorList,
    MultipleErrors,
    is_permanent_error,
    not_found_error,
)


def api_exception(status, reason="", body=None):
    ex = ApiException(status=status, reason=reason)
    ex.body = json.dumps(body) if body is not None else None
    return ex


class TestErrorList:
    def test_empty(self):
        errors = ErrorList([None])
        assert not errors
        assert errors.error() is None

    def test_single_error_returned_as_is(self):
        e = ReconcileError("boom")
        assert ErrorList([None, e]).error() is e

    def test_errors_joined(self):
        first, second = ReconcileError("install failed"), RuntimeError("patch failed")
        err = ErrorList([first, second]).error()
        assert isinstance(err, MultipleErrors)
        assert list(err) == [first, second]
        assert str(err) == "install failed\npatch failed"

    def test_nested_joins_flattened(self):
        a, b, c = RuntimeError("a"), RuntimeError("b"), RuntimeError("c")
        errors = ErrorList([a]).add(MultipleErrors([b, c]))
        assert len(errors) == 3
        assert errors.errors == [a, b, c]


class TestPermanence:
    @pytest.mark.parametrize(
        "error,permanent",
        [
            (NameAlreadyExistsError("taken"), True),
            (ReferenceNotFoundError("missing"), True),
            (UnknownKindError("unknown"), True),
            (NoActiveRevisionError("no active revision"), False),
            (ReconcileError("boom"), False),
            (UsageCheckFailedError("boom"), False),
            (kopf.PermanentError("stop"), True),
            (RuntimeError("boom"), False),
        ],
    )
    def test_single_errors(self, error, permanent):
        assert is_permanent_error(error) is permanent

    def test_joined_permanent_only_if_all_permanent(self):
        assert is_permanent_error(
            MultipleErrors([NameAlreadyExistsError("a"), ReferenceNotFoundError("b")])
        )
        assert not is_permanent_error(
            MultipleErrors([NameAlreadyExistsError("a"), ReconcileError("b")])
        )

    def test_reasons(self):
        assert NameAlreadyExistsError("x").reason == "NameAlreadyExists"
        assert NoActiveRevisionError("x").reason == "ReferenceNotFound"
        assert ReconcileError("x").reason == "ReconcileError"


class TestApiErrors:
    def test_not_found_by_status(self):
        assert not_found_error(api_exception(404))

    def test_not_found_by_reason(self):
        assert not_found_error(api_exception(500, body={"reason": "NotFound"}))

    def test_other_errors(self):
        assert not not_found_error(api_exception(500, body={"reason": "InternalError"}))
        assert not not_found_error(RuntimeError("404"))

