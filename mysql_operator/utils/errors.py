import json
import kopf
import kubernetes_asyncio

_NOT_FOUND = "notfound"

# Status codes retried by the dispatcher even though they are client errors.
_RETRIABLE_CLIENT_ERRORS = (408, 409, 429)


class MalformedQuantityError(ValueError):
    """A storage size literal is not a valid Kubernetes quantity."""

    def __init__(self, quantity: str, reason: str = None):
        self.quantity = quantity
        message = f"Invalid storage size `{quantity}`"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class OwnershipError(RuntimeError):
    """A dependent object cannot be owned by the given resource."""


def _reason(ex: kubernetes_asyncio.client.ApiException) -> str:
    try:
        err = json.loads(ex.body) if ex.body else {}
    except (json.JSONDecodeError, TypeError):
        return ""
    return (err.get("reason") or "").lower()


def not_found_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    else:
        return ex.status == 404 or _reason(ex) == _NOT_FOUND


def convert_api_exception(ex: kubernetes_asyncio.client.ApiException, permanent: bool = None):
    """
    Convert kubernetes ApiException to a Kopf-friendly exception.

    Args:
        ex: The ApiException to convert
        permanent: If True, raises PermanentError (won't retry). If False, raises TemporaryError (will retry).
                   If None, automatically determines based on status code.

    Raises:
        kopf.TemporaryError or kopf.PermanentError with serializable error details
    """
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        raise ex

    error_msg = f"Kubernetes API error ({ex.status}): {ex.reason}"
    try:
        if ex.body:
            body = json.loads(ex.body)
            if "message" in body:
                error_msg = f"{error_msg} - {body['message']}"
    except (json.JSONDecodeError, TypeError, AttributeError):
        pass

    # 4xx errors are permanent, except timeouts, write conflicts and throttling
    if permanent is None:
        is_permanent = (
            ex.status is not None
            and 400 <= ex.status < 500
            and ex.status not in _RETRIABLE_CLIENT_ERRORS
        )
    else:
        is_permanent = permanent

    if is_permanent:
        raise kopf.PermanentError(error_msg) from ex
    else:
        raise kopf.TemporaryError(error_msg, delay=30) from ex
