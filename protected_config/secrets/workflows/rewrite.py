"""Workflow that protects plaintext values in the secrets file."""
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from ..domains.codec import ProtectionCodec
from ..domains.document_format import dump_document, parse_document
from ..domains.fileio import atomic_write_text
from ..domains.models import RewriteResult
from ..domains.walker import walk

logger = logging.getLogger(__name__)

BOM = "\ufeff"

# One lock per resolved secrets file, shared by every rewriter in the process
_file_locks: Dict[Path, threading.Lock] = {}
_file_locks_guard = threading.Lock()


def secrets_file_lock(path: Union[str, Path]) -> threading.Lock:
    """Return the process-wide lock for a secrets file."""
    key = Path(path).resolve()
    with _file_locks_guard:
        lock = _file_locks.get(key)
        if lock is None:
            lock = _file_locks[key] = threading.Lock()
        return lock


class SecretsRewriter:
    """
    Rewrites a secrets document so that every non-blank string leaf is protected.

    A pass reads the document, encrypts string leaves that do not already
    decrypt under the codec, and writes the file back only when something
    changed. Passes over the same file are serialized within the process.
    """

    def __init__(self, codec: ProtectionCodec, path: Union[str, Path]):
        self.codec = codec
        self.path = Path(path)

    def _protect_leaf(self, value: str) -> Optional[str]:
        if not value.strip() or self.codec.is_protected(value):
            return None
        return self.codec.encrypt(value)

    def rewrite(self) -> RewriteResult:
        """
        Run one rewrite pass.

        Returns:
            RewriteResult describing the pass

        Raises:
            SecretsDocumentError: If the secrets file is malformed
            EncryptionError: If a value cannot be protected; the file is left untouched
        """
        if not self.path.exists():
            logger.debug(f"Secrets file not found, skipping protection: {self.path}")
            return RewriteResult(path=self.path, exists=False)

        with secrets_file_lock(self.path):
            text = self.path.read_text(encoding="utf-8")
            bom = BOM if text.startswith(BOM) else ""
            text = text[len(bom):]
            document = parse_document(text, self.path)

            protected_count = 0

            def transform(value: str) -> Optional[str]:
                nonlocal protected_count
                replacement = self._protect_leaf(value)
                if replacement is not None:
                    protected_count += 1
                return replacement

            document, changed = walk(document, transform)

            if not changed:
                logger.debug(f"All values already protected in {self.path}")
                return RewriteResult(path=self.path, exists=True)

            atomic_write_text(self.path, bom + dump_document(document, self.path, text))
            logger.info(f"Protected {protected_count} value(s) in {self.path}")
            return RewriteResult(path=self.path, exists=True, changed=True, protected_count=protected_count)
