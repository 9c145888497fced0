"""Parameter store interface and an in-process implementation."""
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Tuple

from .models import Tag


class StoreError(Exception):
    """Base class for store adapter failures."""
    pass


class ParameterNotFound(StoreError):
    """The named parameter does not exist."""
    pass


class ParameterAlreadyExists(StoreError):
    """The named parameter exists and overwrite was not requested."""
    pass


@dataclass
class StoredParameter:
    """Parameter as returned by a store lookup."""
    name: str
    value: str
    arn: Optional[str] = None
    description: Optional[str] = None
    tier: Optional[str] = None


class StoreAdapter(Protocol):
    """Operations the lifecycle handler needs from a parameter store."""

    def get(self, name: str) -> StoredParameter:
        ...

    def put(
        self,
        name: str,
        value: str,
        description: Optional[str] = None,
        key_id: Optional[str] = None,
        tier: Optional[str] = None,
        overwrite: bool = False,
    ) -> None:
        ...

    def delete(self, name: str) -> None:
        ...

    def list_all(self) -> Iterator[str]:
        ...

    def add_tags(self, name: str, tags: Iterable[Tag]) -> None:
        ...

    def remove_tags(self, name: str, keys: Iterable[str]) -> None:
        ...

    def validate_tags(self, tags: Iterable[Tag]) -> None:
        ...


@dataclass
class _Entry:
    value: str
    description: Optional[str] = None
    key_id: Optional[str] = None
    tier: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)


class InMemoryStore:
    """
    Dictionary-backed store for local runs and tests.

    Every call is appended to ``calls`` as ``(operation, name)`` so callers can
    assert exactly which store operations were issued.
    """

    ARN_PREFIX = "memory://parameters/"

    def __init__(self):
        self._entries: Dict[str, _Entry] = {}
        self.calls: List[Tuple[str, Optional[str]]] = []

    def _require(self, name: str) -> _Entry:
        entry = self._entries.get(name)
        if entry is None:
            raise ParameterNotFound(f"Parameter '{name}' not found")
        return entry

    def get(self, name: str) -> StoredParameter:
        self.calls.append(("get", name))
        entry = self._require(name)
        return StoredParameter(
            name=name,
            value=entry.value,
            arn=f"{self.ARN_PREFIX}{name}",
            description=entry.description,
            tier=entry.tier,
        )

    def put(
        self,
        name: str,
        value: str,
        description: Optional[str] = None,
        key_id: Optional[str] = None,
        tier: Optional[str] = None,
        overwrite: bool = False,
    ) -> None:
        self.calls.append(("put", name))
        existing = self._entries.get(name)
        if existing is not None and not overwrite:
            raise ParameterAlreadyExists(f"Parameter '{name}' already exists")
        tags = existing.tags if existing is not None else {}
        self._entries[name] = _Entry(
            value=value, description=description, key_id=key_id, tier=tier, tags=tags
        )

    def delete(self, name: str) -> None:
        self.calls.append(("delete", name))
        self._require(name)
        del self._entries[name]

    def list_all(self) -> Iterator[str]:
        self.calls.append(("list_all", None))
        # Snapshot so callers may mutate the store while iterating
        return iter(list(self._entries))

    def add_tags(self, name: str, tags: Iterable[Tag]) -> None:
        self.calls.append(("add_tags", name))
        entry = self._require(name)
        for tag in tags:
            entry.tags[tag.key] = tag.value

    def remove_tags(self, name: str, keys: Iterable[str]) -> None:
        self.calls.append(("remove_tags", name))
        entry = self._require(name)
        for key in keys:
            entry.tags.pop(key, None)

    def validate_tags(self, tags: Iterable[Tag]) -> None:
        """Any string key and value is accepted."""

    def tags_of(self, name: str) -> Dict[str, str]:
        """Current tags of a parameter (test helper, not part of the adapter API)."""
        return dict(self._require(name).tags)
