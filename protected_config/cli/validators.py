"""Input validation for CLI arguments."""
import sys


def validate_config_key(key: str) -> None:
    """
    Validate a colon-delimited configuration key.

    Keys are paths such as ``Database:Password`` or ``Hosts:0``; every
    segment must be non-empty.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not key or not key.strip():
        print("Error: Configuration key cannot be empty", file=sys.stderr)
        sys.exit(2)

    if any(not segment.strip() for segment in key.split(":")):
        print(f"Error: Invalid configuration key '{key}'", file=sys.stderr)
        print("\nKeys are ':'-separated paths with no empty segments.", file=sys.stderr)
        print("\nExamples of valid keys:", file=sys.stderr)
        print("  ✓ ApiKey", file=sys.stderr)
        print("  ✓ Database:Password", file=sys.stderr)
        print("  ✓ Hosts:0", file=sys.stderr)
        print("\nExamples of invalid keys:", file=sys.stderr)
        print("  ✗ :Password (leading ':')", file=sys.stderr)
        print("  ✗ Database::Password (empty segment)", file=sys.stderr)
        sys.exit(2)


def validate_plaintext(value: str) -> None:
    """
    Validate a value to protect is not blank.

    Blank values are never protected, so encrypting one is a usage error.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not value or value.strip() == "":
        print("Error: Value to protect cannot be empty", file=sys.stderr)
        print("\nEmpty and whitespace-only values are stored as plaintext.", file=sys.stderr)
        sys.exit(2)
