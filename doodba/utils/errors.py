import json
from typing import Any, Dict, Optional
from kubernetes_asyncio.client import ApiException

_ALREADY_EXISTS = "alreadyexists"
_NOT_FOUND = "notfound"
_CONFLICT = "conflict"


class DoodbaError(Exception):
    """Base class for recoverable reconcile errors.

    Anything raised as a `DoodbaError` is retried by requeueing the object.
    """


class ObjectStoreError(DoodbaError):
    """The object store rejected or failed an operation."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class NotFoundError(ObjectStoreError):
    """Object does not exist."""


class AlreadyExistsError(ObjectStoreError):
    """Object with the same identity already exists."""


class ConflictError(ObjectStoreError):
    """Optimistic concurrency check failed."""


class SerializationError(DoodbaError):
    """A manifest or status document could not be built or serialized."""


class FinalizerError(DoodbaError):
    """Adding or removing the finalizer failed."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.cause = cause


class ResourceNotRegisteredError(DoodbaError):
    """The resource kind itself is unknown to the API server (CRD missing).

    Fatal to the operator only when `kind` is the Doodba kind; a missing
    child API (Ingress on a bare cluster, say) is retried like any other
    store error.
    """

    def __init__(self, message: str, kind: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind


def _error_body(ex: ApiException) -> Optional[Dict[str, Any]]:
    try:
        body = json.loads(ex.body) if ex.body else None
    except (json.JSONDecodeError, TypeError):
        return None
    return body if isinstance(body, dict) else None


def _reason(ex: ApiException) -> str:
    body = _error_body(ex) or {}
    return str(body.get("reason", "")).lower()


def already_exists_error(ex: Exception) -> bool:
    if not isinstance(ex, ApiException):
        return False
    return _reason(ex) == _ALREADY_EXISTS


def not_found_error(ex: Exception) -> bool:
    if not isinstance(ex, ApiException):
        return False
    return ex.status == 404 and not resource_not_registered(ex)


def resource_not_registered(ex: Exception) -> bool:
    """True when a 404 refers to the resource type rather than an object.

    A missing object is reported as a `Status` carrying `details.name`; an
    unknown resource type yields a bare `404 page not found` body or a
    `Status` without a name.
    """
    if not isinstance(ex, ApiException) or ex.status != 404:
        return False
    body = _error_body(ex)
    if body is None:
        return True
    details = body.get("details") or {}
    return _reason(ex) == _NOT_FOUND and not details.get("name")


def convert_api_exception(ex: ApiException) -> DoodbaError:
    """
    Convert a kubernetes ApiException into a typed, retryable error.

    Args:
        ex: The ApiException to convert

    Returns:
        A `DoodbaError` subclass instance carrying a readable message
    """
    error_msg = f"Kubernetes API error ({ex.status}): {ex.reason}"
    body = _error_body(ex)
    if body and "message" in body:
        error_msg = f"{error_msg} - {body['message']}"

    if resource_not_registered(ex):
        return ResourceNotRegisteredError(error_msg)
    if ex.status == 404:
        return NotFoundError(error_msg, status=ex.status)
    if already_exists_error(ex):
        return AlreadyExistsError(error_msg, status=ex.status)
    # A failed json-patch `test` operation is reported as 422 Invalid.
    if ex.status == 409 or _reason(ex) == _CONFLICT or (
        ex.status == 422 and "test" in error_msg.lower()
    ):
        return ConflictError(error_msg, status=ex.status)
    return ObjectStoreError(error_msg, status=ex.status)
