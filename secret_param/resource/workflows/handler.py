"""Lifecycle handler for the secret parameter resource."""
import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from ..domains.errors import (
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from ..domains.models import ResourceHandlerRequest, SecretResource
from ..domains.password import validate_options
from ..domains.planner import plan_password, plan_tags
from ..domains.store import ParameterAlreadyExists, ParameterNotFound, StoreAdapter

logger = logging.getLogger(__name__)

TYPE_NAME = "SecretParam::Parameter::Secret"


class OperationStatus(enum.Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    # Never produced here: every operation completes within one invocation
    IN_PROGRESS = "IN_PROGRESS"


class HandlerErrorCode(enum.Enum):
    INVALID_REQUEST = "InvalidRequest"
    NOT_FOUND = "NotFound"
    ALREADY_EXISTS = "AlreadyExists"
    INTERNAL_FAILURE = "InternalFailure"


@dataclass
class ProgressEvent:
    """Outcome of one lifecycle invocation."""
    status: OperationStatus
    resource_model: Optional[SecretResource] = None
    resource_models: Optional[List[SecretResource]] = None
    error_code: Optional[HandlerErrorCode] = None
    message: str = ""
    type_name: str = field(default=TYPE_NAME)

    @classmethod
    def success(cls, model: Optional[SecretResource] = None) -> "ProgressEvent":
        return cls(status=OperationStatus.SUCCESS, resource_model=model)

    @classmethod
    def failed(cls, error_code: HandlerErrorCode, message: str) -> "ProgressEvent":
        return cls(status=OperationStatus.FAILED, error_code=error_code, message=message)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"typeName": self.type_name, "status": self.status.value}
        if self.error_code is not None:
            result["errorCode"] = self.error_code.value
        if self.message:
            result["message"] = self.message
        if self.resource_model is not None:
            result["resourceModel"] = self.resource_model.to_dict()
        if self.resource_models is not None:
            result["resourceModels"] = [m.to_dict() for m in self.resource_models]
        return result


def _require_name(model: SecretResource) -> str:
    if not model.name:
        raise ValidationError("Property 'Name' is required")
    return model.name


def _require_single_password_source(model: SecretResource) -> None:
    """Exactly one of PasswordOptions or PasswordInput must be given."""
    if model.password_options is not None and model.password_input is not None:
        raise ValidationError("Cannot specify both PasswordOptions and PasswordInput")
    if model.password_options is None and model.password_input is None:
        raise ValidationError("Must specify either PasswordOptions or PasswordInput")
    if model.password_options is not None:
        validate_options(model.password_options)


class SecretResourceHandler:
    """
    Runs Create, Read, Update, Delete and List against a parameter store.

    The handler holds no state besides the injected store; every operation
    validates the request before its first store call and re-fetches whatever
    it needs from the store.

    Args:
        store: Adapter implementing the StoreAdapter protocol
    """

    def __init__(self, store: StoreAdapter):
        self.store = store

    def _call(self, phase: str, name: Optional[str], func: Callable, *args, **kwargs):
        """
        Invoke one store operation and classify its failure.

        Raises:
            NotFoundError: Store reported the parameter missing
            ConflictError: Store reported the parameter already present
            UpstreamError: Any other store failure, tagged with ``phase``
        """
        try:
            return func(*args, **kwargs)
        except ParameterNotFound as e:
            raise NotFoundError(f"Parameter '{name}' not found") from e
        except ParameterAlreadyExists as e:
            raise ConflictError(f"Parameter '{name}' already exists") from e
        except Exception as e:
            logger.error(f"Store call '{phase}' failed for {name}: {e}")
            raise UpstreamError(phase, str(e), name=name) from e

    def create(self, request: ResourceHandlerRequest) -> ProgressEvent:
        model = replace(request.desired_resource_state)
        name = _require_name(model)
        _require_single_password_source(model)

        # Desired tags win over system tags sharing a key
        merged = {tag.key: tag for tag in request.system_tags}
        merged.update({tag.key: tag for tag in model.tags})
        tags = frozenset(merged.values())
        self.store.validate_tags(tags)

        logger.info(f"Creating parameter {name}")
        plan = plan_password(model)
        self._call(
            "put", name, self.store.put, name, plan.value,
            description=model.description, key_id=model.key_id, tier=model.tier,
            overwrite=False,
        )

        if tags:
            self._call("add_tags", name, self.store.add_tags, name, tags)

        model.password = plan.value
        model.password_input = None
        logger.info(f"Created parameter {name} ({plan.action.value})")
        return ProgressEvent.success(model)

    def read(self, request: ResourceHandlerRequest) -> ProgressEvent:
        model = replace(request.desired_resource_state)
        name = _require_name(model)

        logger.info(f"Reading parameter {name}")
        stored = self._call("get", name, self.store.get, name)

        model.password = stored.value
        model.arn = stored.arn
        if model.description is None:
            model.description = stored.description
        if model.tier is None:
            model.tier = stored.tier
        model.password_input = None
        return ProgressEvent.success(model)

    def update(self, request: ResourceHandlerRequest) -> ProgressEvent:
        model = replace(request.desired_resource_state)
        previous = request.previous_resource_state
        if previous is None:
            raise ValidationError("Update requires the previous resource state")

        name = _require_name(model)
        if model.name != previous.name:
            raise ValidationError(
                f"Cannot update parameter name from '{previous.name}' to '{model.name}'"
            )
        _require_single_password_source(model)
        self.store.validate_tags(model.tags)

        logger.info(f"Updating parameter {name}")
        existing = self._call("get", name, self.store.get, name)

        plan = plan_password(model, previous, existing.value)
        self._call(
            "put", name, self.store.put, name, plan.value,
            description=model.description, key_id=model.key_id, tier=model.tier,
            overwrite=True,
        )

        delta = plan_tags(model.tags, previous.tags)
        if delta.to_add:
            self._call("add_tags", name, self.store.add_tags, name, delta.to_add)
        if delta.to_remove:
            self._call("remove_tags", name, self.store.remove_tags, name, delta.to_remove)
        if delta.is_empty:
            logger.debug(f"No tag changes for {name}")

        model.password = plan.value
        model.password_input = None
        logger.info(f"Updated parameter {name} ({plan.action.value})")
        return ProgressEvent.success(model)

    def delete(self, request: ResourceHandlerRequest) -> ProgressEvent:
        name = _require_name(request.desired_resource_state)

        logger.info(f"Deleting parameter {name}")
        self._call("delete", name, self.store.delete, name)
        return ProgressEvent.success()

    def list(self, request: ResourceHandlerRequest) -> ProgressEvent:
        logger.info("Listing parameters")
        names = self._call("list", None, lambda: list(self.store.list_all()))
        event = ProgressEvent.success()
        event.resource_models = [SecretResource(name=n) for n in names]
        return event
