"""Interactive confirmation gate for privileged clusters.

A cluster is privileged when its ``privileged`` resource label is exactly
``"true"``. Access to it requires typing ``Y`` at a prompt on stderr; the
confirmation is remembered for ``timeout-seconds`` (label, default 300) in a
cooldown record so that kubectl's repeated re-invocations do not prompt on
every API call.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import click

from gke_auto.core.exceptions import AccessDeclinedError, PrivilegeConfigurationError
from gke_auto.core.models import ClusterIdentity
from gke_auto.interfaces.cloud_types import ClusterDescriptor
from gke_auto.privilege.cooldown import CooldownStore
from gke_auto.utils.logging import get_logger

logger = get_logger(__name__)

PRIVILEGED_LABEL = "privileged"
TIMEOUT_LABEL = "timeout-seconds"
DEFAULT_TIMEOUT_SECONDS = 300
CONFIRMATION_ANSWER = "Y"

_INTEGER = re.compile(r"[+-]?[0-9]+")

Prompt = Callable[[str], str]
Clock = Callable[[], datetime]


@dataclass(frozen=True)
class PrivilegeDecision:
    """Outcome of a privilege check."""

    granted: bool
    interactive_mode_required: bool


def prompt_on_stderr(message: str) -> str:
    """Show ``message`` on stderr and read one line from stdin.

    End of input counts as an empty answer. ``click.prompt`` is not used
    because it echoes to stdout, which carries the ExecCredential.
    """
    click.echo(message, nl=False, err=True)
    return click.get_text_stream("stdin").readline()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PrivilegeGate:
    """Decides whether access to a cluster needs interactive confirmation."""

    def __init__(
        self,
        cooldown_store: CooldownStore,
        prompt: Prompt = prompt_on_stderr,
        clock: Clock = _utcnow,
        default_timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
    ):
        """Initialize privilege gate.

        Args:
            cooldown_store: Where confirmations are remembered
            prompt: Shows a question and returns the answer line
            clock: Returns the current time (timezone-aware)
            default_timeout_seconds: Cooldown when the cluster has no timeout label
        """
        self.cooldown_store = cooldown_store
        self.prompt = prompt
        self.clock = clock
        self.default_timeout_seconds = default_timeout_seconds

    def evaluate(
        self,
        identity: ClusterIdentity,
        descriptor: ClusterDescriptor,
        skip_check: bool = False,
    ) -> PrivilegeDecision:
        """Check the cluster's privilege labels, prompting if required.

        Args:
            identity: Cluster being accessed
            descriptor: Freshly fetched cluster metadata
            skip_check: Bypass the check entirely (caller records the bypass)

        Returns:
            PrivilegeDecision; ``interactive_mode_required`` is True for every
            privileged cluster, whether or not a prompt was shown

        Raises:
            PrivilegeConfigurationError: If a prompt is due and ``timeout-seconds``
                is not an integer
            CooldownStateError: If the cooldown record is corrupt
            AccessDeclinedError: If the user does not answer ``Y``
        """
        if skip_check:
            return PrivilegeDecision(granted=True, interactive_mode_required=False)

        if descriptor.labels.get(PRIVILEGED_LABEL) != "true":
            return PrivilegeDecision(granted=True, interactive_mode_required=False)

        logger.debug("configuring_privileged_cluster_context", cluster=identity.display_name)

        now = self.clock()
        expires_at = self.cooldown_store.read(identity)
        if expires_at is not None and expires_at > now:
            logger.debug(
                "privilege_cooldown_active",
                cluster=identity.display_name,
                expires_at=expires_at.isoformat(),
            )
            return PrivilegeDecision(granted=True, interactive_mode_required=True)

        # The timeout label is only consulted once the cooldown has lapsed.
        timeout_seconds = self.timeout_seconds(descriptor)
        logger.debug("privilege_cooldown_expired", timeout_seconds=timeout_seconds)
        answer = self.prompt(
            f"cluster {identity.display_name} is privileged, you will be re-prompted "
            f"after {timeout_seconds} seconds, proceed? [Y/n] "
        )
        if answer.strip() != CONFIRMATION_ANSWER:
            raise AccessDeclinedError(
                f"aborting access to privileged cluster {identity.display_name}"
            )

        self.cooldown_store.write(identity, self.clock() + timedelta(seconds=timeout_seconds))
        logger.info(
            "privileged_access_confirmed",
            cluster=identity.display_name,
            timeout_seconds=timeout_seconds,
        )
        return PrivilegeDecision(granted=True, interactive_mode_required=True)

    def timeout_seconds(self, descriptor: ClusterDescriptor) -> int:
        """Cooldown length from the ``timeout-seconds`` label.

        Raises:
            PrivilegeConfigurationError: If the label is present but not an integer
        """
        raw = descriptor.labels.get(TIMEOUT_LABEL)
        if raw is None:
            return self.default_timeout_seconds
        if not _INTEGER.fullmatch(raw):
            raise PrivilegeConfigurationError(
                f"label {TIMEOUT_LABEL}={raw!r} is not an integer number of seconds"
            )
        return int(raw)
