"""Kubeconfig management for gke-auto.

gke-auto owns exactly three named entries per cluster (user, cluster and
context, all named after the cluster key) plus ``current-context``. Every
other part of the kubeconfig is user-owned and must survive a write
unchanged, so each file in the ``$KUBECONFIG`` precedence list is kept as
its own raw document and only the file that is modified gets written back.
"""

import base64
import binascii
import os
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import filelock
import yaml

from gke_auto.core.exceptions import CACertificateError, KubeconfigError, KubeconfigLockError
from gke_auto.core.models import ExecHookSpec
from gke_auto.interfaces.cloud_types import ClusterDescriptor
from gke_auto.utils.files import atomic_write_text
from gke_auto.utils.logging import get_logger

logger = get_logger(__name__)

KUBECONFIG_ENV_VAR = "KUBECONFIG"
RECOMMENDED_HOME_FILE = Path("~/.kube/config")
LOCK_FILENAME = "gke-auto-kubeconfig.lock"

# Section name -> key holding the entry body.
SECTIONS = {"users": "user", "clusters": "cluster", "contexts": "context"}

EMPTY_USER: dict[str, Any] = {}
EMPTY_CLUSTER: dict[str, Any] = {"server": ""}
EMPTY_CONTEXT: dict[str, Any] = {"cluster": "", "user": ""}


def empty_kubeconfig() -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "preferences": {},
        "clusters": [],
        "users": [],
        "contexts": [],
        "current-context": "",
    }


def precedence_paths(kubeconfig_env: str | None = None) -> list[Path]:
    """Files kubectl reads, in precedence order.

    Args:
        kubeconfig_env: Value of ``$KUBECONFIG`` (read from the environment if None)
    """
    if kubeconfig_env is None:
        kubeconfig_env = os.environ.get(KUBECONFIG_ENV_VAR, "")

    paths: list[Path] = []
    for part in kubeconfig_env.split(os.pathsep):
        if not part:
            continue
        path = Path(part).expanduser()
        if path not in paths:
            paths.append(path)

    return paths or [RECOMMENDED_HOME_FILE.expanduser()]


@dataclass
class KubeconfigFile:
    """One kubeconfig file and its parsed document."""

    path: Path
    raw: dict[str, Any] = field(default_factory=empty_kubeconfig)
    exists: bool = False
    dirty: bool = False

    @classmethod
    def read(cls, path: Path) -> "KubeconfigFile":
        """Parse a kubeconfig file; a missing file yields an empty document.

        Raises:
            KubeconfigError: If the file cannot be read or is not a YAML mapping
        """
        if not path.exists():
            return cls(path=path)
        if path.is_dir():
            raise KubeconfigError(f'Error loading config file "{path}": is a directory.')

        try:
            with path.open(encoding="utf-8") as fh:
                raw = yaml.safe_load(fh)
        except (OSError, yaml.YAMLError) as e:
            raise KubeconfigError(f"Loading kubeconfig {path}: {e}") from e

        if raw is None:
            raw = empty_kubeconfig()
        if not isinstance(raw, dict):
            raise KubeconfigError(f"Loading kubeconfig {path}: document is not a mapping")
        return cls(path=path, raw=raw, exists=True)

    def section(self, name: str) -> list[dict[str, Any]]:
        entries = self.raw.get(name)
        if entries is None:
            entries = self.raw[name] = []
        if not isinstance(entries, list):
            raise KubeconfigError(f"Kubeconfig {self.path}: {name} is not a list")
        return entries

    def find(self, section: str, name: str) -> dict[str, Any] | None:
        for entry in self.section(section):
            if isinstance(entry, dict) and entry.get("name") == name:
                return entry
        return None

    def put(self, section: str, name: str, body: dict[str, Any]) -> None:
        """Overwrite (or append) the named entry's body, keeping its position."""
        body_key = SECTIONS[section]
        entry = self.find(section, name)
        if entry is None:
            self.section(section).append({"name": name, body_key: body})
        else:
            entry.clear()
            entry.update({"name": name, body_key: body})
        self.dirty = True

    def set_current_context(self, context: str) -> None:
        self.raw["current-context"] = context
        self.dirty = True

    def save(self) -> None:
        """Atomically write the document back to its path."""
        for key, value in empty_kubeconfig().items():
            self.raw.setdefault(key, value)

        content = yaml.safe_dump(self.raw, default_flow_style=False, sort_keys=False)
        try:
            # Write through symlinks instead of replacing them.
            atomic_write_text(self.path.resolve(), content)
        except OSError as e:
            raise KubeconfigError(f"Writing kubeconfig {str(self.path)!r}: {e}") from e

        self.exists = True
        self.dirty = False
        logger.debug("kubeconfig_file_written", path=str(self.path))


class KubeconfigManager:
    """Upserts and clears the entries gke-auto owns for one cluster key."""

    def __init__(self, files: Sequence[KubeconfigFile], default_path: Path | None = None):
        """Initialize kubeconfig manager.

        Args:
            files: Loaded kubeconfig files in precedence order
            default_path: Where new entries go when no file already holds them
        """
        self.files = list(files)
        if not self.files:
            raise KubeconfigError("no kubeconfig files to manage")
        self.default_path = default_path or self._conventional_default()

    @classmethod
    def load(
        cls,
        paths: Sequence[str | Path] | None = None,
        default_path: str | Path | None = None,
    ) -> "KubeconfigManager":
        """Load every kubeconfig in the precedence list.

        Args:
            paths: Files to load (defaults to ``$KUBECONFIG`` or ``~/.kube/config``)
            default_path: Override for the file that receives new entries

        Raises:
            KubeconfigError: If any existing file cannot be parsed
        """
        resolved = [Path(p).expanduser() for p in paths] if paths else precedence_paths()
        files = [KubeconfigFile.read(path) for path in resolved]
        logger.debug(
            "kubeconfig_loaded",
            paths=[str(f.path) for f in files],
            existing=[str(f.path) for f in files if f.exists],
        )
        return cls(files, Path(default_path).expanduser() if default_path else None)

    def _conventional_default(self) -> Path:
        for kubeconfig in self.files:
            if kubeconfig.exists:
                return kubeconfig.path
        return self.files[0].path

    def origin_of(self, section: str, name: str) -> Path | None:
        """Path of the first file defining the named entry, if any."""
        for kubeconfig in self.files:
            if kubeconfig.find(section, name) is not None:
                return kubeconfig.path
        return None

    def target_for(self, key: str) -> KubeconfigFile:
        """File that receives the entries for ``key``.

        The file already holding the user entry wins so edits go where kubectl
        reads them; otherwise the default path is used.
        """
        path = self.origin_of("users", key) or self.default_path
        for kubeconfig in self.files:
            if kubeconfig.path == path:
                return kubeconfig

        kubeconfig = KubeconfigFile.read(path)
        self.files.append(kubeconfig)
        return kubeconfig

    def install(self, key: str, descriptor: ClusterDescriptor, hook: ExecHookSpec) -> Path:
        """Overwrite the user, cluster and context entries for ``key``.

        Args:
            key: Cluster key used as the name of all three entries
            descriptor: Cluster endpoint and CA certificate
            hook: Exec hook that re-invokes gke-auto for tokens

        Returns:
            Path of the file that was modified

        Raises:
            CACertificateError: If the CA certificate is not valid base64
        """
        ca_data = decode_ca_certificate(descriptor.ca_certificate_base64)
        target = self.target_for(key)

        target.put("users", key, hook.to_kubeconfig())
        target.put(
            "clusters",
            key,
            {
                "server": f"https://{descriptor.endpoint}",
                "certificate-authority-data": base64.b64encode(ca_data).decode("ascii"),
            },
        )
        target.put("contexts", key, {"cluster": key, "user": key})
        target.set_current_context(key)

        logger.debug("kubeconfig_entries_installed", key=key, path=str(target.path))
        return target.path

    def clear(self, key: str, preserve_foreign_current_context: bool = False) -> Path:
        """Reset the user, cluster and context entries for ``key`` to placeholders.

        ``current-context`` is blanked unconditionally unless
        ``preserve_foreign_current_context`` is set, in which case it is only
        blanked when it points at ``key``.

        Returns:
            Path of the file that was modified
        """
        target = self.target_for(key)

        target.put("users", key, dict(EMPTY_USER))
        target.put("clusters", key, dict(EMPTY_CLUSTER))
        target.put("contexts", key, dict(EMPTY_CONTEXT))

        if not preserve_foreign_current_context or target.raw.get("current-context") == key:
            target.set_current_context("")

        logger.debug("kubeconfig_entries_cleared", key=key, path=str(target.path))
        return target.path

    def save(self) -> list[Path]:
        """Write every modified file.

        Returns:
            Paths that were written
        """
        written = []
        for kubeconfig in self.files:
            if kubeconfig.dirty:
                kubeconfig.save()
                written.append(kubeconfig.path)
        return written


def decode_ca_certificate(ca_certificate_base64: str) -> bytes:
    """Strictly decode the cluster CA certificate.

    Raises:
        CACertificateError: If the value is not valid base64
    """
    try:
        return base64.b64decode(ca_certificate_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CACertificateError(f"Decoding CA cert: {e}") from e


@contextmanager
def kubeconfig_transaction(
    lock_dir: str | Path,
    paths: Sequence[str | Path] | None = None,
    default_path: str | Path | None = None,
    lock_timeout: float = 30.0,
) -> Iterator[KubeconfigManager]:
    """Load, modify and save the kubeconfig under a cross-process lock.

    Concurrent gke-auto invocations are serialized on a lock file kept
    outside ``~/.kube`` so kubectl's own ``config.lock`` is left alone.
    Writers other than gke-auto are not coordinated with: last writer wins.
    Nothing is saved if the body raises.

    Raises:
        KubeconfigLockError: If the lock is not acquired within ``lock_timeout``
            or the lock file cannot be created
    """
    lock_path = Path(lock_dir) / LOCK_FILENAME
    lock = filelock.FileLock(str(lock_path), timeout=lock_timeout)
    try:
        lock.acquire()
    except filelock.Timeout as e:
        raise KubeconfigLockError(
            f"timed out after {lock_timeout}s waiting for kubeconfig lock {lock_path}"
        ) from e
    except OSError as e:
        raise KubeconfigLockError(f"acquiring kubeconfig lock {lock_path}: {e}") from e

    try:
        manager = KubeconfigManager.load(paths=paths, default_path=default_path)
        yield manager
        for path in manager.save():
            logger.info("kubeconfig_written", path=str(path))
    finally:
        lock.release()
