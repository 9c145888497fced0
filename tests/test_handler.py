"""Tests for the lifecycle handler and host entrypoint.

This suite validates:
- Validation happens before any store call
- Password generate/reuse/accept behaviour across Create and Update
- Tag reconciliation and skipped tag calls
- Error classification and phase reporting
"""
from unittest import mock

import pytest

from secret_param.resource.domains.errors import (
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from secret_param.resource.domains.gcp_store import GCPParameterStore
from secret_param.resource.domains.models import (
    PasswordOptions,
    ResourceHandlerRequest,
    SecretResource,
    Tag,
)
from secret_param.resource.domains.store import InMemoryStore
from secret_param.resource.workflows.entrypoint import Action, invoke
from secret_param.resource.workflows.handler import (
    HandlerErrorCode,
    OperationStatus,
    SecretResourceHandler,
)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def handler(store):
    return SecretResourceHandler(store)


def _request(desired, previous=None, system_tags=frozenset()):
    return ResourceHandlerRequest(
        desired_resource_state=desired,
        previous_resource_state=previous,
        system_tags=system_tags,
    )


def _tags(**pairs):
    return frozenset(Tag(key=k, value=v) for k, v in pairs.items())


class FailingStore(InMemoryStore):
    """In-memory store whose named operation raises a transport error."""

    def __init__(self, failing_operation):
        super().__init__()
        self.failing_operation = failing_operation

    def __getattribute__(self, item):
        if item == object.__getattribute__(self, "failing_operation"):
            def fail(*args, **kwargs):
                raise ConnectionError("connection reset by peer")
            return fail
        return object.__getattribute__(self, item)


class TestCreate:
    """Test suite for create."""

    def test_create_generates_password(self, handler, store):
        """Test that create with options stores and returns a generated password."""
        desired = SecretResource(name="p1", password_options=PasswordOptions(length=24))
        event = handler.create(_request(desired))

        assert event.status == OperationStatus.SUCCESS
        assert len(event.resource_model.password) == 24
        assert store.get("p1").value == event.resource_model.password

    def test_create_accepts_input(self, handler, store):
        """Test that create with input stores the literal."""
        desired = SecretResource(name="p1", password_input="literal", description="d", tier="Advanced")
        event = handler.create(_request(desired))

        stored = store.get("p1")
        assert event.resource_model.password == "literal"
        assert event.resource_model.password_input is None
        assert stored.value == "literal"
        assert stored.description == "d"
        assert stored.tier == "Advanced"

    def test_create_applies_tags_and_system_tags(self, handler, store):
        """Test that desired tags and system tags are attached."""
        desired = SecretResource(name="p1", password_input="x", tags=_tags(env="prod"))
        handler.create(_request(desired, system_tags=_tags(stack="s1")))

        assert store.tags_of("p1") == {"env": "prod", "stack": "s1"}

    def test_create_without_tags_skips_tag_call(self, handler, store):
        """Test that no tag call is issued when there are no tags."""
        handler.create(_request(SecretResource(name="p1", password_input="x")))

        assert store.calls == [("put", "p1")]

    def test_create_existing_name_conflicts(self, handler, store):
        """Test that create rejects a pre-existing name."""
        store.put("p1", "old")

        with pytest.raises(ConflictError):
            handler.create(_request(SecretResource(name="p1", password_input="new")))
        assert store.get("p1").value == "old"

    @pytest.mark.parametrize("desired", [
        SecretResource(name="p1", password_options=PasswordOptions(), password_input="x"),
        SecretResource(name="p1"),
        SecretResource(name="p1", password_options=PasswordOptions(length=0)),
        SecretResource(password_input="x"),
    ])
    def test_invalid_create_makes_no_store_calls(self, handler, store, desired):
        """Test that invalid desired state fails before touching the store."""
        with pytest.raises(ValidationError):
            handler.create(_request(desired))
        assert store.calls == []


class TestRead:
    """Test suite for read."""

    def test_read_returns_value_and_arn(self, handler, store):
        """Test that read populates password, arn and stored metadata."""
        store.put("p1", "secret", description="from store", tier="Standard")

        event = handler.read(_request(SecretResource(name="p1")))
        model = event.resource_model

        assert model.password == "secret"
        assert model.arn == "memory://parameters/p1"
        assert model.description == "from store"
        assert model.tier == "Standard"

    def test_read_missing_is_not_found(self, handler):
        """Test that read of an absent name raises NotFoundError."""
        with pytest.raises(NotFoundError):
            handler.read(_request(SecretResource(name="missing")))


class TestUpdate:
    """Test suite for update."""

    @pytest.fixture
    def existing(self, store):
        """Parameter p1 created with default options and tags A:1, C:3."""
        store.put("p1", "stored-value")
        store.add_tags("p1", _tags(A="1", C="3"))
        store.calls.clear()
        return SecretResource(
            name="p1", password_options=PasswordOptions(length=16, serial=1), tags=_tags(A="1", C="3")
        )

    def test_identical_options_reuse_value(self, handler, store, existing):
        """Test that unchanged options keep the stored password."""
        desired = SecretResource(
            name="p1", password_options=PasswordOptions(length=16, serial=1), tags=existing.tags
        )
        event = handler.update(_request(desired, existing))

        assert event.resource_model.password == "stored-value"
        assert store.get("p1").value == "stored-value"

    def test_serial_change_regenerates(self, handler, store, existing):
        """Test that bumping serial stores and returns a new password."""
        desired = SecretResource(
            name="p1", password_options=PasswordOptions(length=16, serial=2), tags=existing.tags
        )
        event = handler.update(_request(desired, existing))

        assert event.resource_model.password != "stored-value"
        assert store.get("p1").value == event.resource_model.password

    def test_input_replaces_value(self, handler, store, existing):
        """Test that a password input overwrites the stored value."""
        desired = SecretResource(name="p1", password_input="replacement", tags=existing.tags)
        event = handler.update(_request(desired, existing))

        assert event.resource_model.password == "replacement"
        assert store.get("p1").value == "replacement"

    def test_tag_reconciliation(self, handler, store, existing):
        """Test that B:2 is added and C removed while A:1 is untouched."""
        desired = SecretResource(
            name="p1", password_options=existing.password_options, tags=_tags(A="1", B="2")
        )
        handler.update(_request(desired, existing))

        assert store.tags_of("p1") == {"A": "1", "B": "2"}
        assert store.calls == [
            ("get", "p1"), ("put", "p1"), ("add_tags", "p1"), ("remove_tags", "p1"),
        ]

    def test_tag_value_change_adds_only(self, handler, store, existing):
        """Test that a changed value is added without a removal call."""
        desired = SecretResource(
            name="p1", password_options=existing.password_options, tags=_tags(A="2", C="3")
        )
        handler.update(_request(desired, existing))

        assert store.tags_of("p1") == {"A": "2", "C": "3"}
        assert ("remove_tags", "p1") not in store.calls

    def test_unchanged_tags_skip_tag_calls(self, handler, store, existing):
        """Test that no tag calls are issued when tags are unchanged."""
        desired = SecretResource(name="p1", password_options=existing.password_options, tags=existing.tags)
        handler.update(_request(desired, existing))

        assert store.calls == [("get", "p1"), ("put", "p1")]

    def test_name_change_rejected_without_store_calls(self, handler, store, existing):
        """Test that renaming fails validation and touches nothing."""
        desired = SecretResource(name="p2", password_options=existing.password_options)

        with pytest.raises(ValidationError) as exc_info:
            handler.update(_request(desired, existing))
        assert "Cannot update parameter name" in str(exc_info.value)
        assert store.calls == []

    @pytest.mark.parametrize("desired", [
        SecretResource(name="p1", password_options=PasswordOptions(), password_input="x"),
        SecretResource(name="p1"),
    ])
    def test_exclusivity_on_update(self, handler, store, existing, desired):
        """Test that both or neither password source fails before any store call."""
        with pytest.raises(ValidationError):
            handler.update(_request(desired, existing))
        assert store.calls == []

    def test_missing_previous_state_rejected(self, handler, store):
        """Test that update requires previous state."""
        with pytest.raises(ValidationError):
            handler.update(_request(SecretResource(name="p1", password_input="x")))
        assert store.calls == []

    def test_update_missing_parameter_not_found(self, handler, store):
        """Test that update of an absent name raises NotFoundError after one get."""
        previous = SecretResource(name="gone", password_input="x")
        with pytest.raises(NotFoundError):
            handler.update(_request(SecretResource(name="gone", password_input="y"), previous))
        assert store.calls == [("get", "gone")]


class TestDeleteAndList:
    """Test suite for delete and list."""

    def test_delete_removes_parameter(self, handler, store):
        """Test that delete removes an existing parameter."""
        store.put("p1", "x")

        event = handler.delete(_request(SecretResource(name="p1")))

        assert event.status == OperationStatus.SUCCESS
        assert event.resource_model is None
        assert list(store.list_all()) == []

    def test_delete_missing_is_not_found(self, handler, store):
        """Test that delete of an absent name fails with one store call."""
        with pytest.raises(NotFoundError):
            handler.delete(_request(SecretResource(name="missing")))
        assert store.calls == [("delete", "missing")]

    def test_list_returns_name_only_stubs(self, handler, store):
        """Test that list yields one stub per parameter without password material."""
        store.put("p1", "x")
        store.put("p2", "y")

        event = handler.list(_request(SecretResource()))

        assert sorted(m.name for m in event.resource_models) == ["p1", "p2"]
        for model in event.resource_models:
            assert model.password is None
            assert model.to_dict() == {"Name": model.name}


class TestTagRules:
    """Test suite for store tag rules checked before any store call."""

    @pytest.fixture
    def client(self):
        return mock.MagicMock()

    @pytest.fixture
    def gcp_handler(self, client):
        return SecretResourceHandler(GCPParameterStore(project_id="test-project", client=client))

    def test_uppercase_tag_key_rejected_before_create(self, gcp_handler, client):
        """Test that an invalid label key fails Create without creating the secret."""
        desired = SecretResource(name="p1", password_input="x", tags=_tags(Env="prod"))

        with pytest.raises(ValidationError):
            gcp_handler.create(_request(desired))
        client.create_secret.assert_not_called()
        assert client.mock_calls == []

    def test_invalid_system_tag_rejected_before_create(self, gcp_handler, client):
        """Test that merged system tags are checked too."""
        desired = SecretResource(name="p1", password_input="x")

        with pytest.raises(ValidationError):
            gcp_handler.create(_request(desired, system_tags=_tags(Stack="s1")))
        assert client.mock_calls == []

    def test_invalid_tag_rejected_before_update(self, gcp_handler, client):
        """Test that Update rejects invalid tags before fetching the parameter."""
        previous = SecretResource(name="p1", password_input="x")
        desired = SecretResource(name="p1", password_input="y", tags=_tags(env="Prod"))

        with pytest.raises(ValidationError):
            gcp_handler.update(_request(desired, previous))
        assert client.mock_calls == []

    def test_invalid_tag_maps_to_invalid_request(self, gcp_handler, client):
        """Test that the entrypoint reports label violations as InvalidRequest."""
        event = invoke(gcp_handler, Action.CREATE, {
            "DesiredResourceState": {
                "Name": "p1",
                "PasswordInput": "x",
                "Tags": [{"Key": "Env", "Value": "prod"}],
            },
        })

        assert event.error_code == HandlerErrorCode.INVALID_REQUEST
        assert client.mock_calls == []

    def test_in_memory_store_accepts_any_tag(self, handler, store):
        """Test that the in-memory store imposes no label rules."""
        desired = SecretResource(name="p1", password_input="x", tags=_tags(Env="Prod"))

        handler.create(_request(desired))

        assert store.tags_of("p1") == {"Env": "Prod"}


class TestUpstreamFailures:
    """Test suite for unclassified store failures."""

    def test_put_failure_names_phase(self):
        """Test that a failing put is wrapped as UpstreamError with phase 'put'."""
        handler = SecretResourceHandler(FailingStore("put"))

        with pytest.raises(UpstreamError) as exc_info:
            handler.create(_request(SecretResource(name="p1", password_input="x")))
        assert exc_info.value.phase == "put"
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_tag_failure_after_put_names_phase(self):
        """Test that a tag failure after a successful put reports the tag phase."""
        store = FailingStore("add_tags")
        store.put("p1", "x")
        handler = SecretResourceHandler(store)
        previous = SecretResource(name="p1", password_input="x")
        desired = SecretResource(name="p1", password_input="y", tags=_tags(A="1"))

        with pytest.raises(UpstreamError) as exc_info:
            handler.update(_request(desired, previous))
        assert exc_info.value.phase == "add_tags"
        assert store.get("p1").value == "y"


class TestEntrypoint:
    """Test suite for invoke."""

    def test_success_payload(self, handler):
        """Test that a create payload produces a SUCCESS event dict."""
        event = invoke(handler, Action.CREATE, {
            "DesiredResourceState": {"Name": "p1", "PasswordOptions": {"Length": 10}},
        })
        result = event.to_dict()

        assert result["status"] == "SUCCESS"
        assert result["typeName"] == "SecretParam::Parameter::Secret"
        assert result["resourceModel"]["Name"] == "p1"
        assert len(result["resourceModel"]["Password"]) == 10

    def test_action_accepts_string(self, handler, store):
        """Test that actions may be given by value."""
        store.put("p1", "x")
        event = invoke(handler, "READ", {"DesiredResourceState": {"Name": "p1"}})
        assert event.resource_model.password == "x"

    @pytest.mark.parametrize("action,payload,code", [
        (Action.CREATE, {"DesiredResourceState": {"Name": "p1"}}, HandlerErrorCode.INVALID_REQUEST),
        (Action.READ, {"DesiredResourceState": {"Name": "nope"}}, HandlerErrorCode.NOT_FOUND),
        (Action.DELETE, {"DesiredResourceState": {"Name": "nope"}}, HandlerErrorCode.NOT_FOUND),
        (Action.CREATE, {"DesiredResourceState": {"Name": "p1", "PasswordOptions": {"Length": "x"}}},
         HandlerErrorCode.INVALID_REQUEST),
    ])
    def test_failures_are_classified(self, handler, action, payload, code):
        """Test that classified errors become FAILED events with host codes."""
        event = invoke(handler, action, payload)

        assert event.status == OperationStatus.FAILED
        assert event.error_code == code
        assert event.message

    def test_conflict_code(self, handler, store):
        """Test that create of an existing name maps to AlreadyExists."""
        store.put("p1", "x")
        event = invoke(handler, Action.CREATE, {"DesiredResourceState": {"Name": "p1", "PasswordInput": "y"}})

        assert event.error_code == HandlerErrorCode.ALREADY_EXISTS

    def test_upstream_code(self):
        """Test that store transport failures map to InternalFailure."""
        handler = SecretResourceHandler(FailingStore("list_all"))
        event = invoke(handler, Action.LIST, {})

        assert event.error_code == HandlerErrorCode.INTERNAL_FAILURE
        assert event.to_dict()["errorCode"] == "InternalFailure"

    def test_never_in_progress(self, handler, store):
        """Test that every action completes in a single invocation."""
        store.put("p1", "x")
        for action in Action:
            payload = {
                "DesiredResourceState": {"Name": "p1", "PasswordInput": "z"},
                "PreviousResourceState": {"Name": "p1", "PasswordInput": "x"},
            }
            if action == Action.CREATE:
                payload["DesiredResourceState"]["Name"] = "p2"
            event = invoke(handler, action, payload)
            assert event.status != OperationStatus.IN_PROGRESS
