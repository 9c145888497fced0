"""Random password generation from a PasswordOptions policy."""
import logging
import secrets
import string
from typing import Optional

from .errors import InvalidPolicyError
from .models import PasswordOptions

logger = logging.getLogger(__name__)

LETTERS = string.ascii_lowercase + string.ascii_uppercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()_+~`|}{[]:;?><,./-="
SIMILAR_CHARACTERS = frozenset("ilLI|`oO0")

# Upper bound on generated length; store payload limits are far higher
MAX_PASSWORD_LENGTH = 4096

# OS-backed CSPRNG
_random = secrets.SystemRandom()


def build_alphabet(options: Optional[PasswordOptions] = None) -> str:
    """
    Assemble the character alphabet implied by a policy.

    Args:
        options: Password policy (defaults applied for unset fields)

    Returns:
        Alphabet string with no duplicate characters
    """
    policy = (options or PasswordOptions()).effective()

    chars = LETTERS
    if policy.include_numbers:
        chars += DIGITS
    if policy.include_symbols:
        chars += SYMBOLS

    if policy.exclude_similar_characters:
        chars = "".join(c for c in chars if c not in SIMILAR_CHARACTERS)

    return chars


def validate_options(options: PasswordOptions) -> None:
    """
    Check that a policy can produce a password.

    Raises:
        InvalidPolicyError: If length is out of range or the alphabet is empty
    """
    policy = options.effective()
    if policy.length <= 0:
        raise InvalidPolicyError(f"Password length must be positive, got {policy.length}")
    if policy.length > MAX_PASSWORD_LENGTH:
        raise InvalidPolicyError(
            f"Password length {policy.length} exceeds maximum of {MAX_PASSWORD_LENGTH}"
        )
    if not build_alphabet(policy):
        raise InvalidPolicyError("Password options leave an empty character alphabet")


def generate_password(options: Optional[PasswordOptions] = None) -> str:
    """
    Generate a random password.

    Each character is drawn independently and uniformly from the policy's
    alphabet using the operating system's cryptographically secure source.

    Args:
        options: Password policy; None means all defaults

    Returns:
        Password of exactly ``length`` characters

    Raises:
        InvalidPolicyError: If the policy is unusable
    """
    options = options or PasswordOptions()
    validate_options(options)

    policy = options.effective()
    alphabet = build_alphabet(policy)
    logger.debug(f"Generating password of length {policy.length} from {len(alphabet)} characters")
    return "".join(_random.choice(alphabet) for _ in range(policy.length))
