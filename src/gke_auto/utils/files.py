"""File helpers shared by the cooldown store, kubeconfig and Docker config writers."""

import os
import stat
import tempfile
from pathlib import Path


def atomic_write_text(path: str | Path, content: str, mode: int | None = None) -> None:
    """Replace ``path`` with ``content`` in a single rename.

    The file is written to a temporary sibling, fsynced and renamed over the
    target, so readers see either the old or the new content. Parent
    directories are created as needed.

    Args:
        path: Destination file
        content: Text to write
        mode: Permission bits; defaults to the existing file's mode, else 0600
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    if mode is None:
        try:
            mode = stat.S_IMODE(target.stat().st_mode)
        except FileNotFoundError:
            mode = 0o600

    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
