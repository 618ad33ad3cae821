"""Minimal merged configuration view.

Sources are layered in order; later sources override earlier ones. Nested
documents are flattened into colon-delimited keys (``Database:Password``,
``Hosts:0``) and looked up case-insensitively.
"""
import base64
import datetime
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .document_format import parse_document
from .errors import ConfigError

logger = logging.getLogger(__name__)

KEY_DELIMITER = ":"


def _scalar_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, (bool, int, float)):
        return json.dumps(value)
    # YAML timestamps and !!binary
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    return str(value)


def flatten(document: Any, prefix: str = "") -> Dict[str, str]:
    """Flatten a parsed document into {colon:key -> string value}."""
    flat: Dict[str, str] = {}
    stack = [(prefix, document)]
    while stack:
        path, node = stack.pop()
        if isinstance(node, Mapping):
            children = [(str(k), v) for k, v in node.items()]
        elif isinstance(node, list):
            children = [(str(i), v) for i, v in enumerate(node)]
        else:
            if path:
                flat[path] = _scalar_text(node)
            continue
        for key, child in children:
            stack.append((f"{path}{KEY_DELIMITER}{key}" if path else key, child))
    return flat


class MappingSource:
    """In-memory configuration source."""

    def __init__(self, data: Mapping[str, Any]):
        self._data = data

    def load(self) -> Dict[str, str]:
        return flatten(self._data)

    def __repr__(self) -> str:
        return f"MappingSource({len(self._data)} keys)"


class FileSource:
    """JSON or YAML file source."""

    def __init__(self, path: Union[str, Path], optional: bool = True):
        self.path = Path(path)
        self.optional = optional

    def load(self) -> Dict[str, str]:
        if not self.path.exists():
            if self.optional:
                logger.debug(f"Optional configuration file not found: {self.path}")
                return {}
            raise ConfigError(f"Configuration file not found at: {self.path}")

        try:
            text = self.path.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file at {self.path}: {e}") from e
        return flatten(parse_document(text, self.path))

    def __repr__(self) -> str:
        return f"FileSource({str(self.path)!r}, optional={self.optional})"


def _same_file(a: Any, b: Any) -> bool:
    return isinstance(a, FileSource) and isinstance(b, FileSource) and a.path.resolve() == b.path.resolve()


class MergedConfiguration:
    """Union of configuration sources with colon-delimited, case-insensitive keys."""

    def __init__(self, sources: Optional[Iterable[Any]] = None):
        self.sources: List[Any] = list(sources or [])
        self._values: Dict[str, str] = {}
        self.reload()

    @classmethod
    def from_base(cls, base: Union["MergedConfiguration", Mapping[str, Any], None],
                  *extra_sources: Any) -> "MergedConfiguration":
        """Layer extra_sources on top of base (a view, a mapping or None)."""
        if base is None:
            sources: List[Any] = []
        elif isinstance(base, MergedConfiguration):
            sources = list(base.sources)
        else:
            sources = [MappingSource(base)]
        extra = list(extra_sources)
        # A file layered again moves to the top instead of appearing twice
        sources = [s for s in sources if not any(_same_file(s, e) for e in extra)]
        return cls(sources + extra)

    def reload(self) -> None:
        """Re-read every source and swap in the new values."""
        values: Dict[str, str] = {}
        for source in self.sources:
            for key, value in source.load().items():
                values[key.casefold()] = value
        self._values = values

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key.casefold())

    def __contains__(self, key: str) -> bool:
        return key.casefold() in self._values

    def __len__(self) -> int:
        return len(self._values)
