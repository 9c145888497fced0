"""Input validation for CLI arguments."""
import re
import sys

# Secret Manager secret ids: letters, digits, underscores, hyphens; at most 255 chars
PARAMETER_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9_-]{1,255}$')


def validate_parameter_name(name: str) -> None:
    """
    Validate a parameter name against Secret Manager naming rules.

    Args:
        name: Parameter name to validate

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name:
        print("Error: Parameter name cannot be empty", file=sys.stderr)
        print("\nParameter names must match: [a-zA-Z0-9_-]", file=sys.stderr)
        sys.exit(2)

    if not PARAMETER_NAME_PATTERN.match(name):
        print(f"Error: Invalid parameter name '{name}'", file=sys.stderr)
        print("\nAllowed characters: letters, numbers, underscores (_), hyphens (-)", file=sys.stderr)
        print("Maximum length: 255 characters", file=sys.stderr)
        print("\nExamples of valid names:", file=sys.stderr)
        print("  ✓ DB_PASSWORD", file=sys.stderr)
        print("  ✓ api-key-prod", file=sys.stderr)
        print("\nExamples of invalid names:", file=sys.stderr)
        print("  ✗ /app/db/password (contains slashes)", file=sys.stderr)
        print("  ✗ db.password (contains dot)", file=sys.stderr)
        sys.exit(2)


def validate_password_length(length: int) -> None:
    """
    Validate a requested password length is positive.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if length <= 0:
        print(f"Error: Password length must be positive, got {length}", file=sys.stderr)
        sys.exit(2)
