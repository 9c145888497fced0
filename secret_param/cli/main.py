"""CLI entrypoint for secret-param."""
import sys
import json
import argparse
import logging
import shutil
from pathlib import Path

from .validators import validate_parameter_name, validate_password_length

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)

RESOURCE_ACTIONS = ("create", "read", "update", "delete", "list")


def cmd_version(args):
    """Show version information."""
    print(f"secret-param {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from secret_param.resource.domains.preferences import set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path and where it came from."""
    from secret_param.resource.domains.preferences import default_config_path, get_preference

    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        suffix = "" if config_path.exists() else " (file not found)"
        print(f"Config path: {config_path}{suffix}")
        print("Source: preference")
        return

    default_config = default_config_path()
    suffix = "" if default_config.exists() else " (file not found)"
    print(f"Config path: {default_config}")
    print(f"Source: default{suffix}")


def cmd_config_clear(args):
    """Clear config path preference."""
    from secret_param.resource.domains.preferences import clear_preference, default_config_path

    clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_config_init(args):
    """Interactive config setup."""
    from secret_param.resource.domains.preferences import default_config_path, set_preference

    default_config = default_config_path()

    print("=== secret-param Configuration Setup ===\n")
    print(f"Default config location: {default_config}\n")

    if default_config.exists():
        print(f"Using existing config at: {default_config}")
        return

    print("Choose an option:")
    print("1. Copy an existing config file to default location")
    print("2. Point to an existing config file at a different location")
    print("3. Cancel (manually create config file later)")

    choice = input("\nEnter choice (1-3): ").strip()

    if choice in ("1", "2"):
        source = Path(input("Enter path to existing config file: ").strip()).expanduser().resolve()
        if not source.is_file():
            print(f"Error: File not found: {source}", file=sys.stderr)
            sys.exit(1)

        if choice == "1":
            default_config.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, default_config)
            print(f"\nConfig copied to: {default_config}")
        else:
            set_preference("config_path", str(source))
            print(f"\nConfig path set to: {source}")
    elif choice == "3":
        print("\nSetup cancelled.")
        print(f"Create your config file at: {default_config}")
        print("Or use: secret-param config set-path <path>")
    else:
        print("Invalid choice.", file=sys.stderr)
        sys.exit(2)


def cmd_password_generate(args):
    """Print one generated password."""
    from secret_param.resource.domains.errors import InvalidPolicyError
    from secret_param.resource.domains.models import PasswordOptions
    from secret_param.resource.domains.password import generate_password

    validate_password_length(args.length)
    options = PasswordOptions(
        length=args.length,
        include_numbers=not args.no_numbers,
        include_symbols=not args.no_symbols,
        exclude_similar_characters=args.exclude_similar,
    )
    try:
        print(generate_password(options))
    except InvalidPolicyError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


def _read_request(source: str) -> dict:
    """Load a JSON request payload from a file path or '-' for stdin."""
    try:
        if source == "-":
            payload = json.load(sys.stdin)
        else:
            with open(source, 'r') as f:
                payload = json.load(f)
    except OSError as e:
        print(f"Error: Cannot read request file {source}: {e}", file=sys.stderr)
        sys.exit(2)
    except json.JSONDecodeError as e:
        print(f"Error: Request is not valid JSON: {e}", file=sys.stderr)
        sys.exit(2)

    if not isinstance(payload, dict):
        print("Error: Request must be a JSON object", file=sys.stderr)
        sys.exit(2)
    return payload


def cmd_resource(args, store=None):
    """Run one lifecycle action against Secret Manager and print the progress event."""
    from secret_param.resource.domains.gcp_store import GCPParameterStore
    from secret_param.resource.workflows.entrypoint import Action, invoke
    from secret_param.resource.workflows.handler import OperationStatus, SecretResourceHandler

    payload = _read_request(args.request)

    desired = payload.get("DesiredResourceState") or {}
    if args.resource_command != "list":
        validate_parameter_name(desired.get("Name") if isinstance(desired, dict) else None)

    if store is None:
        store = GCPParameterStore(project_id=args.project_id)
    handler = SecretResourceHandler(store)

    event = invoke(handler, Action(args.resource_command.upper()), payload)
    print(json.dumps(event.to_dict(), indent=2))

    if event.status == OperationStatus.FAILED:
        sys.exit(1)


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="secret-param",
        description="secret-param - lifecycle controller for secret parameters in GCP Secret Manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (authentication, network, parameter not found, etc.)
  2 - Usage error (invalid arguments, invalid parameter name, etc.)

Environment variables:
  GCP_PROJECT - GCP project ID (overrides config file)

Configuration:
  Default location: ~/.config/secret-param/config.yml
  Custom path: Set with 'secret-param config set-path <path>'
  View current: Run 'secret-param config show'
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log lifecycle steps to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of secret-param"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage secret-param configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="Store the absolute path to your config file in ~/.config/secret-param/preferences.json"
    )
    config_set_path_parser.add_argument("path", help="Path to config file")

    config_subparsers.add_parser(
        "show",
        help="Show current config path",
        description="Display the current configuration file path and its source (preference or default)"
    )
    config_subparsers.add_parser(
        "clear",
        help="Clear config path preference",
        description="Remove the config path preference; ~/.config/secret-param/config.yml is used afterwards"
    )
    config_subparsers.add_parser(
        "init",
        help="Interactive config setup",
        description="Interactive setup wizard for secret-param configuration"
    )

    # password command
    password_parser = subparsers.add_parser(
        "password",
        help="Password utilities",
        description="Generate passwords with the same policy used for managed parameters"
    )
    password_subparsers = password_parser.add_subparsers(dest="password_command")
    generate_parser = password_subparsers.add_parser(
        "generate",
        help="Generate a random password",
        description="Print one password drawn from a cryptographically secure source"
    )
    generate_parser.add_argument("--length", type=int, default=16, help="Password length (default: 16)")
    generate_parser.add_argument("--no-numbers", action="store_true", help="Exclude digits")
    generate_parser.add_argument("--no-symbols", action="store_true", help="Exclude symbols")
    generate_parser.add_argument(
        "--exclude-similar",
        action="store_true",
        help="Exclude look-alike characters (i l L I | ` o O 0)"
    )

    # resource command
    resource_parser = subparsers.add_parser(
        "resource",
        help="Run a lifecycle action",
        description="""
Run a lifecycle action for one secret parameter.

The request is a JSON object with:
  DesiredResourceState   - resource properties (Name, PasswordOptions, Tags, ...)
  PreviousResourceState  - prior properties (update only)
  SystemTags             - optional {key: value} tags added on create

The resulting progress event is printed as JSON.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    resource_parser.add_argument("resource_command", choices=RESOURCE_ACTIONS, help="Lifecycle action")
    resource_parser.add_argument(
        "--request",
        required=True,
        help="Path to JSON request file, or '-' to read stdin"
    )
    resource_parser.add_argument(
        "--project-id",
        help="GCP project ID (auto-detected from GCP_PROJECT env var or config file if not provided)"
    )

    return parser, {
        "config": config_parser,
        "password": password_parser,
    }


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (authentication, network, parameter not found, etc.)
        2 - Usage errors (invalid arguments, invalid parameter name, etc.)
    """
    parser, subcommand_parsers = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            handlers = {
                "set-path": cmd_config_set_path,
                "show": cmd_config_show,
                "clear": cmd_config_clear,
                "init": cmd_config_init,
            }
            if args.config_command not in handlers:
                subcommand_parsers["config"].print_help()
                sys.exit(2)
            handlers[args.config_command](args)
        elif args.command == "password":
            if args.password_command != "generate":
                subcommand_parsers["password"].print_help()
                sys.exit(2)
            cmd_password_generate(args)
        elif args.command == "resource":
            cmd_resource(args)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
