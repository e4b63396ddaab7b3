import json
import kopf
import kubernetes_asyncio
from typing import Iterable, Iterator, List, Optional

_NOT_FOUND = "notfound"


def _api_error_reason(ex: kubernetes_asyncio.client.ApiException) -> str:
    try:
        err = json.loads(ex.body) if ex.body else {}
    except (json.JSONDecodeError, TypeError):
        return ""
    return str(err.get("reason", "")).lower()


def not_found_error(ex: Exception) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 404 or _api_error_reason(ex) == _NOT_FOUND


def is_permanent_error(ex: BaseException) -> bool:
    """True if retrying cannot fix the error without a change to the inputs."""
    if isinstance(ex, MultipleErrors):
        return all(is_permanent_error(e) for e in ex.errors)
    if isinstance(ex, kopf.PermanentError):
        return True
    return bool(getattr(ex, "permanent", False))


class MultipleErrors(Exception):
    """Several independent failures reported as one."""

    def __init__(self, errors: List[BaseException]):
        self.errors = list(errors)
        super().__init__("\n".join(str(e) for e in self.errors))

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.errors)


class ErrorList:
    """Collects errors from steps that must all be attempted.

    Example:
        errors = ErrorList()
        errors.add(first_error)
        errors.add(None)
        err = errors.error()
    """

    def __init__(self, errors: Iterable[Optional[BaseException]] = ()):
        self._errors: List[BaseException] = []
        for e in errors:
            self.add(e)

    def add(self, error: Optional[BaseException]) -> "ErrorList":
        if error is None:
            return self
        if isinstance(error, MultipleErrors):
            self._errors.extend(error.errors)
        else:
            self._errors.append(error)
        return self

    def __len__(self) -> int:
        return len(self._errors)

    def __bool__(self) -> bool:
        return bool(self._errors)

    @property
    def errors(self) -> List[BaseException]:
        return list(self._errors)

    def error(self) -> Optional[BaseException]:
        """Return None, the only error, or all errors joined."""
        if not self._errors:
            return None
        if len(self._errors) == 1:
            return self._errors[0]
        return MultipleErrors(self._errors)
