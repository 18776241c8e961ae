"""Persisted cooldown records for privileged clusters."""

from datetime import datetime, timezone
from pathlib import Path

from gke_auto.core.exceptions import CooldownStateError
from gke_auto.core.models import ClusterIdentity
from gke_auto.utils.files import atomic_write_text
from gke_auto.utils.logging import get_logger

logger = get_logger(__name__)

FILENAME_PREFIX = "gke-auto-privileged-timeout-"


class CooldownStore:
    """One file per cluster holding the moment its confirmation expires."""

    def __init__(self, directory: str | Path):
        """Initialize cooldown store.

        Args:
            directory: Scratch directory for cooldown files
        """
        self.directory = Path(directory)

    def path_for(self, identity: ClusterIdentity) -> Path:
        return self.directory / f"{FILENAME_PREFIX}{identity.key}"

    def read(self, identity: ClusterIdentity) -> datetime | None:
        """Read the cooldown expiry for a cluster.

        Returns:
            Timezone-aware expiry, or None if no record exists yet

        Raises:
            CooldownStateError: If the record exists but cannot be read or parsed
        """
        path = self.path_for(identity)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("cooldown_record_not_found", path=str(path))
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise CooldownStateError(f"reading cooldown record {path}: {e}") from e

        try:
            expires_at = datetime.fromisoformat(raw.strip())
        except ValueError as e:
            raise CooldownStateError(f"parsing cooldown record {path}: {e}") from e

        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        logger.debug("cooldown_record_read", path=str(path), expires_at=expires_at.isoformat())
        return expires_at

    def write(self, identity: ClusterIdentity, expires_at: datetime) -> Path:
        """Persist a new cooldown expiry for a cluster.

        Raises:
            CooldownStateError: If the record cannot be written
        """
        path = self.path_for(identity)
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        try:
            atomic_write_text(path, expires_at.astimezone(timezone.utc).isoformat(), mode=0o600)
        except OSError as e:
            raise CooldownStateError(f"writing cooldown record {path}: {e}") from e

        logger.debug("cooldown_record_written", path=str(path), expires_at=expires_at.isoformat())
        return path
