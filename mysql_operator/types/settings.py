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

#: Image repository the database container is pulled from; `spec.version` is the tag
MYSQL_IMAGE_REPOSITORY = str(_getenv("MYSQL_IMAGE_REPOSITORY", "mysql"))

#: Timeout in seconds applied to every call made against the Kubernetes API
API_REQUEST_TIMEOUT_SECONDS = float(_getenv("API_REQUEST_TIMEOUT_SECONDS", 30.0))

#: Maximum number of MySQL resources reconciled concurrently
WORKER_LIMIT = int(_getenv("WORKER_LIMIT", 2))

#: Seconds between periodic full reconciliations of every MySQL resource
RESYNC_INTERVAL_SECONDS = float(_getenv("RESYNC_INTERVAL_SECONDS", 300.0))

#: Expose Prometheus metrics
METRICS_ENABLED = bool(_getenv("METRICS_ENABLED", True))

#: Port the Prometheus metrics server listens on
METRICS_PORT = int(_getenv("METRICS_PORT", 8000))


class Settings:
    """Operator settings"""

    mysql_image_repository: str = MYSQL_IMAGE_REPOSITORY
    api_request_timeout_seconds: float = API_REQUEST_TIMEOUT_SECONDS
    worker_limit: int = WORKER_LIMIT
    resync_interval_seconds: float = RESYNC_INTERVAL_SECONDS
    metrics_enabled: bool = METRICS_ENABLED
    metrics_port: int = METRICS_PORT

    def __init__(
        self,
        *args,
        mysql_image_repository: str = None,
        api_request_timeout_seconds: float = None,
        worker_limit: int = None,
        resync_interval_seconds: float = None,
        metrics_enabled: bool = None,
        metrics_port: int = None,
        **kwargs,
    ):
        if mysql_image_repository is not None:
            self.mysql_image_repository = mysql_image_repository

        if api_request_timeout_seconds is not None:
            self.api_request_timeout_seconds = api_request_timeout_seconds

        if worker_limit is not None:
            self.worker_limit = worker_limit

        if resync_interval_seconds is not None:
            self.resync_interval_seconds = resync_interval_seconds

        if metrics_enabled is not None:
            self.metrics_enabled = metrics_enabled

        if metrics_port is not None:
            self.metrics_port = metrics_port
