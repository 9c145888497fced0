"""Host-facing entrypoint: request payload in, progress event out."""
import enum
import logging
from typing import Any, Dict

from ..domains.errors import (
    ConflictError,
    NotFoundError,
    SecretResourceError,
    UpstreamError,
    ValidationError,
)
from ..domains.models import ResourceHandlerRequest
from .handler import HandlerErrorCode, ProgressEvent, SecretResourceHandler

logger = logging.getLogger(__name__)


class Action(enum.Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LIST = "LIST"


# Order matters: subclasses before their bases
_ERROR_CODES = (
    (ValidationError, HandlerErrorCode.INVALID_REQUEST),
    (NotFoundError, HandlerErrorCode.NOT_FOUND),
    (ConflictError, HandlerErrorCode.ALREADY_EXISTS),
    (UpstreamError, HandlerErrorCode.INTERNAL_FAILURE),
)


def error_code_for(error: SecretResourceError) -> HandlerErrorCode:
    """Map a classified error onto the host's error code."""
    for error_type, code in _ERROR_CODES:
        if isinstance(error, error_type):
            return code
    return HandlerErrorCode.INTERNAL_FAILURE


def invoke(handler: SecretResourceHandler, action: Action, payload: Dict[str, Any]) -> ProgressEvent:
    """
    Run one lifecycle action for a host request payload.

    Args:
        handler: Handler bound to a store adapter
        action: Lifecycle action to run
        payload: Request with ``DesiredResourceState`` and, for updates,
            ``PreviousResourceState``; optional ``SystemTags`` and
            ``TypeConfiguration``

    Returns:
        ProgressEvent; classified failures are returned as FAILED events
        rather than raised
    """
    action = Action(action)
    try:
        request = ResourceHandlerRequest.from_dict(payload)
        operation = getattr(handler, action.value.lower())
        return operation(request)
    except SecretResourceError as e:
        code = error_code_for(e)
        logger.error(f"{action.value} failed ({code.value}): {e}")
        return ProgressEvent.failed(code, str(e))
