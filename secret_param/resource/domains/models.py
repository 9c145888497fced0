"""Domain models for the secret parameter resource.

Payloads exchanged with the provisioning host use PascalCase keys
(``Name``, ``PasswordOptions``, ``Tags`` ...). Each model converts to and from
that shape explicitly through ``from_dict`` / ``to_dict``.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from .errors import ValidationError

DEFAULT_PASSWORD_LENGTH = 16


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def _optional_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise ValidationError(f"'{key}' must be an integer, got bool")
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise ValidationError(f"'{key}' must be an integer, got '{value}'")
    if not isinstance(value, int):
        raise ValidationError(f"'{key}' must be an integer, got {type(value).__name__}")
    return value


def _optional_bool(data: Dict[str, Any], key: str) -> Optional[bool]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    # Hosts commonly stringify booleans in templates
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValidationError(f"'{key}' must be a boolean, got '{value}'")


@dataclass(frozen=True)
class Tag:
    """A single key/value tag attached to a parameter."""
    key: str
    value: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tag":
        if not isinstance(data, dict):
            raise ValidationError(f"Tag must be an object, got {type(data).__name__}")
        key = _optional_str(data, "Key")
        if not key:
            raise ValidationError("Tag 'Key' is required")
        return cls(key=key, value=_optional_str(data, "Value") or "")

    def to_dict(self) -> Dict[str, str]:
        return {"Key": self.key, "Value": self.value}


def tags_from_list(items: Optional[Iterable[Dict[str, Any]]]) -> FrozenSet[Tag]:
    """
    Build a tag set from a host payload list.

    Args:
        items: List of ``{"Key": ..., "Value": ...}`` objects, or None

    Returns:
        Frozen set of Tag

    Raises:
        ValidationError: If an entry is malformed or a key appears twice
    """
    if items is None:
        return frozenset()
    tags = [Tag.from_dict(item) for item in items]
    keys = [tag.key for tag in tags]
    duplicates = sorted({key for key in keys if keys.count(key) > 1})
    if duplicates:
        raise ValidationError(f"Duplicate tag keys: {', '.join(duplicates)}")
    return frozenset(tags)


def tags_from_mapping(mapping: Optional[Dict[str, str]]) -> FrozenSet[Tag]:
    """Build a tag set from a plain ``{key: value}`` mapping (system tags)."""
    if not mapping:
        return frozenset()
    return frozenset(Tag(key=str(k), value=str(v)) for k, v in mapping.items())


@dataclass(frozen=True)
class PasswordOptions:
    """Password generation policy.

    Unset fields keep ``None`` so the payload round-trips unchanged; use
    ``effective()`` to get the policy with defaults applied.
    """
    length: Optional[int] = None
    include_numbers: Optional[bool] = None
    include_symbols: Optional[bool] = None
    exclude_similar_characters: Optional[bool] = None
    serial: Optional[int] = None

    def effective(self) -> "PasswordOptions":
        """Return a copy with defaults filled in for unset fields."""
        return replace(
            self,
            length=DEFAULT_PASSWORD_LENGTH if self.length is None else self.length,
            include_numbers=self.include_numbers is not False,
            include_symbols=self.include_symbols is not False,
            exclude_similar_characters=bool(self.exclude_similar_characters),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PasswordOptions":
        if not isinstance(data, dict):
            raise ValidationError(
                f"'PasswordOptions' must be an object, got {type(data).__name__}"
            )
        return cls(
            length=_optional_int(data, "Length"),
            include_numbers=_optional_bool(data, "IncludeNumbers"),
            include_symbols=_optional_bool(data, "IncludeSymbols"),
            exclude_similar_characters=_optional_bool(data, "ExcludeSimilarCharacters"),
            serial=_optional_int(data, "Serial"),
        )

    def to_dict(self) -> Dict[str, Any]:
        pairs = (
            ("Length", self.length),
            ("IncludeNumbers", self.include_numbers),
            ("IncludeSymbols", self.include_symbols),
            ("ExcludeSimilarCharacters", self.exclude_similar_characters),
            ("Serial", self.serial),
        )
        return {key: value for key, value in pairs if value is not None}


@dataclass
class SecretResource:
    """
    The managed secret parameter.

    Exactly one of ``password_options`` or ``password_input`` is expected when
    the resource is created or updated. ``password`` and ``arn`` are outputs
    and are only populated by the handler.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    key_id: Optional[str] = None
    tier: Optional[str] = None
    password_options: Optional[PasswordOptions] = None
    password_input: Optional[str] = None
    password: Optional[str] = None
    arn: Optional[str] = None
    tags: FrozenSet[Tag] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SecretResource":
        """
        Unmarshal a host resource payload.

        Args:
            data: PascalCase resource properties, or None for an empty model

        Returns:
            SecretResource instance

        Raises:
            ValidationError: If a property has the wrong type
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError(f"Resource state must be an object, got {type(data).__name__}")

        options = data.get("PasswordOptions")
        return cls(
            name=_optional_str(data, "Name"),
            description=_optional_str(data, "Description"),
            key_id=_optional_str(data, "KeyId"),
            tier=_optional_str(data, "Tier"),
            password_options=PasswordOptions.from_dict(options) if options is not None else None,
            password_input=_optional_str(data, "PasswordInput"),
            password=_optional_str(data, "Password"),
            arn=_optional_str(data, "Arn"),
            tags=tags_from_list(data.get("Tags")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Marshal to a host payload. ``PasswordInput`` is never echoed back."""
        result: Dict[str, Any] = {}
        scalars = (
            ("Name", self.name),
            ("Description", self.description),
            ("KeyId", self.key_id),
            ("Tier", self.tier),
            ("Password", self.password),
            ("Arn", self.arn),
        )
        for key, value in scalars:
            if value is not None:
                result[key] = value
        if self.password_options is not None:
            result["PasswordOptions"] = self.password_options.to_dict()
        if self.tags:
            result["Tags"] = sorted_tags(self.tags)
        return result


def sorted_tags(tags: Iterable[Tag]) -> List[Dict[str, str]]:
    """Serialize tags in key order so output is stable."""
    return [tag.to_dict() for tag in sorted(tags, key=lambda t: (t.key, t.value))]


@dataclass
class ResourceHandlerRequest:
    """One lifecycle invocation as received from the provisioning host."""
    desired_resource_state: SecretResource = field(default_factory=SecretResource)
    previous_resource_state: Optional[SecretResource] = None
    system_tags: FrozenSet[Tag] = field(default_factory=frozenset)
    type_configuration: Dict[str, Any] = field(default_factory=dict)
    logical_resource_identifier: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceHandlerRequest":
        if not isinstance(data, dict):
            raise ValidationError(f"Request must be an object, got {type(data).__name__}")
        previous = data.get("PreviousResourceState")
        return cls(
            desired_resource_state=SecretResource.from_dict(data.get("DesiredResourceState")),
            previous_resource_state=SecretResource.from_dict(previous) if previous is not None else None,
            system_tags=tags_from_mapping(data.get("SystemTags")),
            type_configuration=data.get("TypeConfiguration") or {},
            logical_resource_identifier=data.get("LogicalResourceIdentifier"),
        )
