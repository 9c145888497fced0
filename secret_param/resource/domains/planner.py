"""Change planning: password action selection and tag deltas."""
import enum
import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from .models import PasswordOptions, SecretResource, Tag
from .password import generate_password

logger = logging.getLogger(__name__)


class PasswordAction(enum.Enum):
    GENERATE = "generate"
    REUSE = "reuse"
    ACCEPT_INPUT = "accept_input"


@dataclass(frozen=True)
class PasswordPlan:
    """Chosen password action and the resulting value."""
    action: PasswordAction
    value: str


@dataclass(frozen=True)
class TagDelta:
    """Tags to attach and tag keys to detach."""
    to_add: FrozenSet[Tag] = field(default_factory=frozenset)
    to_remove: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


# ExcludeSimilarCharacters is not part of the reuse key
REUSE_FIELDS = ("length", "include_numbers", "include_symbols", "serial")


def options_identical(desired: PasswordOptions, previous: PasswordOptions) -> bool:
    """Compare length, include_numbers, include_symbols and serial after defaults."""
    desired, previous = desired.effective(), previous.effective()
    return all(getattr(desired, f) == getattr(previous, f) for f in REUSE_FIELDS)


def plan_password(
    desired: SecretResource,
    previous: Optional[SecretResource] = None,
    existing_value: Optional[str] = None,
) -> PasswordPlan:
    """
    Decide how the password for ``desired`` is obtained.

    Args:
        desired: Desired state; must carry exactly one password source
        previous: Previous state on Update, None on Create
        existing_value: Value currently held by the store, if fetched

    Returns:
        PasswordPlan with the action taken and the resolved value

    Decision order:
        1. ``password_input`` is always accepted verbatim
        2. Without previous options (Create, or previous used an input) generate
        3. Identical effective options reuse ``existing_value``
        4. Any difference in a compared field, serial included, regenerates
    """
    if desired.password_input is not None:
        logger.debug(f"Accepting supplied password input for {desired.name}")
        return PasswordPlan(PasswordAction.ACCEPT_INPUT, desired.password_input)

    options = desired.password_options or PasswordOptions()
    previous_options = previous.password_options if previous is not None else None

    if (
        previous_options is not None
        and existing_value is not None
        and options_identical(options, previous_options)
    ):
        logger.debug(f"Password options unchanged for {desired.name}, reusing stored value")
        return PasswordPlan(PasswordAction.REUSE, existing_value)

    logger.debug(f"Generating new password for {desired.name}")
    return PasswordPlan(PasswordAction.GENERATE, generate_password(options))


def plan_tags(desired: Iterable[Tag], previous: Iterable[Tag]) -> TagDelta:
    """
    Compute the tag mutation moving ``previous`` toward ``desired``.

    Additions compare full (key, value) pairs; removals compare keys only.
    A tag whose value changed is therefore added again but its key is not
    removed first.

    Args:
        desired: Tags requested now
        previous: Tags recorded by the prior successful operation

    Returns:
        TagDelta of tags to add and keys to remove
    """
    desired_tags = frozenset(desired)
    previous_tags = frozenset(previous)
    desired_keys = {tag.key for tag in desired_tags}

    to_add = frozenset(tag for tag in desired_tags if tag not in previous_tags)
    to_remove = frozenset(tag.key for tag in previous_tags if tag.key not in desired_keys)
    return TagDelta(to_add=to_add, to_remove=to_remove)
