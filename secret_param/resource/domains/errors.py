"""Error taxonomy surfaced by the secret parameter lifecycle handler."""
from typing import Optional


class SecretResourceError(Exception):
    """Base class for classified lifecycle errors."""
    pass


class ValidationError(SecretResourceError):
    """Desired state is invalid. Reported directly, never retried."""
    pass


class InvalidPolicyError(ValidationError):
    """Password options cannot produce a usable password."""
    pass


class NotFoundError(SecretResourceError):
    """Target parameter does not exist in the store."""
    pass


class ConflictError(SecretResourceError):
    """Create targeted a parameter name that already exists."""
    pass


class UpstreamError(SecretResourceError):
    """
    Unclassified store failure (network, permission, throttling).

    Attributes:
        phase: Store step that failed, e.g. "put" or "add_tags"
    """

    def __init__(self, phase: str, message: str, name: Optional[str] = None):
        self.phase = phase
        self.name = name
        target = f" for parameter '{name}'" if name else ""
        super().__init__(f"Store call '{phase}' failed{target}: {message}")
