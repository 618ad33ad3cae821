"""CLI entrypoint for protected-config."""
import sys
import argparse
import logging
from dataclasses import replace
from pathlib import Path

import yaml

from .validators import validate_config_key, validate_plaintext

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _settings(args):
    """Load settings, applying a --secrets override when given."""
    from protected_config.secrets.domains.config_loader import load_settings

    settings = load_settings()
    secrets = getattr(args, "secrets", None)
    if secrets:
        settings = replace(settings, secrets_path=Path(secrets))
    return settings


def cmd_version(args):
    """Show version information."""
    print(f"protected-config {VERSION}")


def cmd_protect(args):
    """Protect plaintext values in the secrets file."""
    from protected_config.secrets.domains.codec import ProtectionCodec
    from protected_config.secrets.workflows.rewrite import SecretsRewriter

    settings = _settings(args)
    result = SecretsRewriter(ProtectionCodec.for_machine(settings), settings.secrets_path).rewrite()

    if not result.exists:
        print(f"Secrets file not found: {result.path} (nothing to protect)")
    elif result.changed:
        print(f"Protected {result.protected_count} value(s) in {result.path}")
    else:
        print(f"All values already protected in {result.path}")


def cmd_get(args):
    """Resolve a configuration value, decrypting it if protected."""
    from protected_config.secrets.domains.errors import KeyNotFoundError
    from protected_config.secrets.domains.merged import FileSource, MergedConfiguration
    from protected_config.secrets.workflows.configuration import ProtectedConfiguration

    validate_config_key(args.key)
    config = ProtectedConfiguration.from_settings(_settings(args))
    config.bind(MergedConfiguration([FileSource(path, optional=False) for path in args.config or []]))

    try:
        value = config.get_value(args.key)
    except KeyNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.quiet:
        print(value)
    else:
        print(f"{args.key}: {value}")


def cmd_encrypt(args):
    """Protect a single value for this machine."""
    from protected_config.secrets.domains.codec import ProtectionCodec

    validate_plaintext(args.value)
    codec = ProtectionCodec.for_machine(_settings(args))
    token = codec.encrypt(args.value)

    if args.quiet:
        print(token)
    else:
        print(f"Protected value: {token}")


def cmd_decrypt(args):
    """Reverse a protected value."""
    from protected_config.secrets.domains.codec import ProtectionCodec

    codec = ProtectionCodec.for_machine(_settings(args))
    result = codec.decrypt(args.value)
    if not result.ok:
        print(f"Error: Value is not protected for this machine ({result.reason})", file=sys.stderr)
        sys.exit(1)
    print(result.value)


def cmd_config_set_path(args):
    """Set settings file path preference."""
    from protected_config.secrets.domains.preferences import set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Settings file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference("config_path", str(config_path))
    print(f"Settings path set to: {config_path}")


def cmd_config_show(args):
    """Show the settings file in use and the resolved secrets file."""
    from protected_config.secrets.domains.config_loader import default_config_path
    from protected_config.secrets.domains.preferences import get_preference

    config_path_pref = get_preference("config_path")

    if config_path_pref and Path(config_path_pref).exists():
        print(f"Settings path: {config_path_pref}")
        print("Source: preference")
    else:
        if config_path_pref:
            print(f"Settings path (from preference, but file not found): {config_path_pref}")
        default_config = default_config_path()
        suffix = "" if default_config.exists() else " (file not found, defaults apply)"
        print(f"Settings path: {default_config}")
        print(f"Source: default{suffix}")

    settings = _settings(args)
    print(f"Secrets file: {settings.secrets_path}")


def cmd_config_clear(args):
    """Clear settings path preference."""
    from protected_config.secrets.domains.config_loader import default_config_path
    from protected_config.secrets.domains.preferences import clear_preference

    clear_preference("config_path")
    print(f"Settings path preference cleared. Will use default: {default_config_path()}")


def cmd_config_init(args):
    """Write a default settings file."""
    from protected_config.secrets.domains.config_loader import DEFAULT_SECRETS_PATH, default_config_path
    from protected_config.secrets.domains.fileio import atomic_write_text

    default_config = default_config_path()
    if default_config.exists() and not args.force:
        print(f"Settings file already exists at: {default_config}")
        print("Use --force to overwrite it.")
        return

    content = {
        "secrets": {"path": args.secrets or DEFAULT_SECRETS_PATH},
        "protection": {},
    }
    if args.key_secret:
        content["protection"]["key_secret"] = {"name": args.key_secret}

    atomic_write_text(default_config, yaml.safe_dump(content, sort_keys=False))
    print(f"Settings written to: {default_config}")


def main():
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (malformed secrets file, key not found, encryption failure, etc.)
        2 - Usage errors (invalid arguments, invalid key format, etc.)
    """
    parser = argparse.ArgumentParser(
        prog="protected-config",
        description="protected-config CLI - machine-bound encryption at rest for configuration secrets",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (malformed secrets file, key not found, encryption failure, etc.)
  2 - Usage error (invalid arguments, invalid key format, etc.)

Environment variables:
  PROTECTED_CONFIG_SECRETS_PATH - secrets file location (overrides settings)
  PROTECTED_CONFIG_MACHINE_ID   - machine identity (overrides /etc/machine-id)
  GCP_PROJECT                   - GCP project holding the key secret

Configuration:
  Default location: ~/.config/protected-config/config.yml
  Custom path: Set with 'protected-config config set-path <path>'
  View current: Run 'protected-config config show'

Protected values are bound to this machine and cannot be read elsewhere.
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # version command
    _version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of protected-config"
    )

    # protect command
    protect_parser = subparsers.add_parser(
        "protect",
        help="Protect plaintext values in the secrets file",
        description="""
Encrypt every non-empty string value in the secrets file that is not already
protected. The file is rewritten only when a value changed.
        """
    )
    protect_parser.add_argument(
        "--secrets",
        help="Secrets file (defaults to the settings value, appsettings.secrets.json)"
    )

    # get command
    get_parser = subparsers.add_parser(
        "get",
        help="Get a configuration value",
        description="""
Protect the secrets file, merge it over the given configuration files and print
the value of KEY, decrypting it if it is protected.

Exit codes:
  0 - Value found and printed
  1 - Key not found, or a configuration file is missing or malformed
  2 - Invalid key format
        """
    )
    get_parser.add_argument(
        "key",
        help="Configuration key (':'-separated path, e.g. Database:Password)"
    )
    get_parser.add_argument(
        "--config",
        action="append",
        metavar="FILE",
        help="Base configuration file (JSON or YAML); may be repeated, later files win"
    )
    get_parser.add_argument(
        "--secrets",
        help="Secrets file (defaults to the settings value, appsettings.secrets.json)"
    )
    get_parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Output only the value (useful for scripts)"
    )

    # encrypt command
    encrypt_parser = subparsers.add_parser(
        "encrypt",
        help="Protect a single value",
        description="Print the protected form of VALUE for this machine"
    )
    encrypt_parser.add_argument("value", help="Plaintext value")
    encrypt_parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Output only the protected value (useful for scripts)"
    )

    # decrypt command
    decrypt_parser = subparsers.add_parser(
        "decrypt",
        help="Reveal a protected value",
        description="Print the plaintext of a value protected on this machine"
    )
    decrypt_parser.add_argument("value", help="Protected value")

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Settings management",
        description="Manage protected-config settings"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set settings file path",
        description="""
Set the settings file path preference.

This stores the absolute path to your settings file in:
~/.config/protected-config/preferences.json
        """
    )
    config_set_path_parser.add_argument(
        "path",
        help="Path to settings file"
    )

    _config_show_parser = config_subparsers.add_parser(
        "show",
        help="Show current settings path",
        description="Display the settings file path, its source and the secrets file in use"
    )

    _config_clear_parser = config_subparsers.add_parser(
        "clear",
        help="Clear settings path preference",
        description="Remove the settings path preference; the default location is used afterwards"
    )

    config_init_parser = config_subparsers.add_parser(
        "init",
        help="Write a default settings file",
        description="Create ~/.config/protected-config/config.yml"
    )
    config_init_parser.add_argument("--secrets", help="Secrets file path to record")
    config_init_parser.add_argument("--key-secret", help="Name of the platform-managed key secret")
    config_init_parser.add_argument("--force", action="store_true", help="Overwrite an existing file")

    args = parser.parse_args()

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    # Route to command handlers
    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "protect":
            cmd_protect(args)
        elif args.command == "get":
            cmd_get(args)
        elif args.command == "encrypt":
            cmd_encrypt(args)
        elif args.command == "decrypt":
            cmd_decrypt(args)
        elif args.command == "config":
            if args.config_command == "set-path":
                cmd_config_set_path(args)
            elif args.config_command == "show":
                cmd_config_show(args)
            elif args.config_command == "clear":
                cmd_config_clear(args)
            elif args.config_command == "init":
                cmd_config_init(args)
            else:
                config_parser.print_help()
                sys.exit(2)
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
