"""File helpers shared by the secrets rewriter and preferences."""
import os
import tempfile
from pathlib import Path


def atomic_write_text(target_path: Path, text: str) -> None:
    """
    Replace target_path with text in one step.

    The content is written to a temporary file in the same directory, flushed
    to disk and moved over the target, so readers see either the old or the
    new document, never a partial one.

    Args:
        target_path: File to replace
        text: Full UTF-8 content
    """
    target_path = Path(target_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target_path.name}.", suffix=".tmp", dir=str(target_path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        if target_path.exists():
            os.chmod(tmp_name, target_path.stat().st_mode & 0o777)
        os.replace(tmp_name, target_path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
