"""Parsing and serialization of secrets documents (JSON or YAML)."""
import json
import re
from pathlib import Path
from typing import Any, Optional, Tuple, Union

import yaml

from .errors import SecretsDocumentError

YAML_SUFFIXES = {".yml", ".yaml"}

_INDENT_RE = re.compile(r"\n([ \t]+)\S")
_STRING_RE = re.compile(r'"(?:[^"\\]|\\.)*"')
_SPACED_COLON_RE = re.compile(r":[ \t]")
_SPACED_COMMA_RE = re.compile(r",[ \t]")


def is_yaml(path: Path) -> bool:
    return Path(path).suffix.lower() in YAML_SUFFIXES


def detect_indent(text: str) -> Optional[Union[int, str]]:
    """
    Indentation unit used by text.

    Returns:
        Number of spaces, "\\t" for tab indentation, or None for a document
        written on a single line
    """
    if "\n" not in text.strip():
        return None
    match = _INDENT_RE.search(text)
    if not match:
        return 2
    unit = match.group(1)
    if unit.startswith("\t"):
        return "\t"
    return len(unit)


def detect_separators(text: str, indent: Optional[Union[int, str]]) -> Tuple[str, str]:
    """
    JSON (item, key) separators used by text.

    String literals are blanked out first so their content does not count.
    Without a sample the json module defaults apply.
    """
    skeleton = _STRING_RE.sub('""', text)
    key_sep = ": " if ":" not in skeleton or _SPACED_COLON_RE.search(skeleton) else ":"
    if indent is not None:
        # items end at a line break
        return ",", key_sep
    item_sep = ", " if "," not in skeleton or _SPACED_COMMA_RE.search(skeleton) else ","
    return item_sep, key_sep


def parse_document(text: str, path: Path) -> Any:
    """
    Parse secrets document text.

    Raises:
        SecretsDocumentError: If the text is not a valid document
    """
    if is_yaml(path):
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise SecretsDocumentError(f"Failed to parse YAML secrets file at {path}: {e}") from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise SecretsDocumentError(f"Failed to parse JSON secrets file at {path}: {e}") from e


def dump_document(document: Any, path: Path, original_text: str = "") -> str:
    """Serialize document, following the layout conventions of original_text."""
    indent = detect_indent(original_text)
    newline = "\n" if original_text.endswith("\n") else ""

    if is_yaml(path):
        text = yaml.safe_dump(
            document,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            indent=indent if isinstance(indent, int) else 2,
        )
        # safe_dump always ends with a newline
        return text if newline else text.rstrip("\n")

    separators = detect_separators(original_text, indent)
    return json.dumps(document, indent=indent, separators=separators, ensure_ascii=False) + newline
