import os
from typing import Any

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Directory holding charts laid out as <version>/charts/<chart name>
RESOURCE_DIRECTORY = str(_getenv("RESOURCE_DIRECTORY", "/var/lib/sail-operator/resources"))

#: Maximum number of concurrent kopf workers
WORKER_LIMIT = int(_getenv("WORKER_LIMIT", 4))

#: Seconds between periodic resyncs of every IstioRevisionTag
RECONCILE_INTERVAL_SECONDS = float(_getenv("RECONCILE_INTERVAL_SECONDS", 60.0))

#: Initial delay before a failed reconciliation is retried
RECONCILE_RETRY_DELAY_SECONDS = float(_getenv("RECONCILE_RETRY_DELAY_SECONDS", 5.0))

#: Upper bound for the exponential retry delay
RECONCILE_RETRY_MAX_DELAY_SECONDS = float(
    _getenv("RECONCILE_RETRY_MAX_DELAY_SECONDS", 300.0)
)

#: Helm binary used by the chart manager
HELM_EXECUTABLE = str(_getenv("HELM_EXECUTABLE", "helm"))

#: Timeout passed to helm operations
HELM_DEFAULT_TIMEOUT = str(_getenv("HELM_DEFAULT_TIMEOUT", "5m"))

#: Number of release revisions helm keeps
HELM_HISTORY_MAX_REVISIONS = int(_getenv("HELM_HISTORY_MAX_REVISIONS", 10))

#: Expose prometheus metrics
METRICS_ENABLED = bool(_getenv("METRICS_ENABLED", True))

#: Port of the prometheus metrics server
METRICS_PORT = int(_getenv("METRICS_PORT", 8000))


class Settings:
    """Operator settings"""

    resource_directory: str = RESOURCE_DIRECTORY
    worker_limit: int = WORKER_LIMIT
    reconcile_interval_seconds: float = RECONCILE_INTERVAL_SECONDS
    reconcile_retry_delay_seconds: float = RECONCILE_RETRY_DELAY_SECONDS
    reconcile_retry_max_delay_seconds: float = RECONCILE_RETRY_MAX_DELAY_SECONDS
    helm_executable: str = HELM_EXECUTABLE
    helm_default_timeout: str = HELM_DEFAULT_TIMEOUT
    helm_history_max_revisions: int = HELM_HISTORY_MAX_REVISIONS
    metrics_enabled: bool = METRICS_ENABLED
    metrics_port: int = METRICS_PORT

    def __init__(
        self,
        *args,
        resource_directory: str = None,
        worker_limit: int = None,
        reconcile_interval_seconds: float = None,
        reconcile_retry_delay_seconds: float = None,
        reconcile_retry_max_delay_seconds: float = None,
        helm_executable: str = None,
        helm_default_timeout: str = None,
        helm_history_max_revisions: int = None,
        metrics_enabled: bool = None,
        metrics_port: int = None,
        **kwargs,
    ):
        if resource_directory is not None:
            self.resource_directory = resource_directory

        if worker_limit is not None:
            self.worker_limit = worker_limit

        if reconcile_interval_seconds is not None:
            self.reconcile_interval_seconds = reconcile_interval_seconds

        if reconcile_retry_delay_seconds is not None:
            self.reconcile_retry_delay_seconds = reconcile_retry_delay_seconds

        if reconcile_retry_max_delay_seconds is not None:
            self.reconcile_retry_max_delay_seconds = reconcile_retry_max_delay_seconds

        if helm_executable is not None:
            self.helm_executable = helm_executable

        if helm_default_timeout is not None:
            self.helm_default_timeout = helm_default_timeout

        if helm_history_max_revisions is not None:
            self.helm_history_max_revisions = helm_history_max_revisions

        if metrics_enabled is not None:
            self.metrics_enabled = metrics_enabled

        if metrics_port is not None:
            self.metrics_port = metrics_port

    def retry_delay(self, attempt: int) -> float:
        """Exponential backoff delay for the given (zero based) retry attempt."""
        delay = self.reconcile_retry_delay_seconds * (2 ** min(max(attempt, 0), 16))
        return min(delay, self.reconcile_retry_max_delay_seconds)
