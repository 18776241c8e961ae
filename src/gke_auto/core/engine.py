"""Invocation flow for gke-auto.

One invocation does one of four things:

- clear: reset the cluster's kubeconfig entries
- get: print an ExecCredential for kubectl
- install: write the cluster's kubeconfig entries with an exec hook that
  calls back into ``get``
- configure-docker: register the Docker credential-helper bridge

``get`` and ``install`` both fetch a token and the cluster descriptor and
run the privilege gate; the gate's outcome decides whether the installed
hook asks kubectl for an interactive terminal.
"""

from typing import TextIO

from gke_auto.core.config import GkeAutoConfig, InvocationConfig
from gke_auto.core.models import ExecHookSpec, InteractiveMode, Mode
from gke_auto.credentials import exec_credential
from gke_auto.credentials.docker_helper import install_helper_symlink, register_credential_helper
from gke_auto.interfaces.cloud_provider import ClusterProvider, TokenSource
from gke_auto.interfaces.cloud_types import AccessToken, ClusterDescriptor
from gke_auto.privilege.gate import PrivilegeDecision, PrivilegeGate
from gke_auto.utils.kubeconfig import kubeconfig_transaction
from gke_auto.utils.logging import get_logger

logger = get_logger(__name__)


class CredentialEngine:
    """Runs a single gke-auto invocation."""

    def __init__(
        self,
        invocation: InvocationConfig,
        config: GkeAutoConfig,
        token_source: TokenSource,
        cluster_provider: ClusterProvider,
        gate: PrivilegeGate,
        stdout: TextIO | None = None,
    ):
        """Initialize engine.

        Args:
            invocation: Validated flags for this invocation
            config: Tool configuration
            token_source: Supplies access tokens
            cluster_provider: Looks up cluster descriptors
            gate: Privileged cluster gate
            stdout: Stream for the ExecCredential (defaults to sys.stdout)
        """
        self.invocation = invocation
        self.config = config
        self.token_source = token_source
        self.cluster_provider = cluster_provider
        self.gate = gate
        self.stdout = stdout

    def run(self) -> None:
        handlers = {
            Mode.CLEAR: self.clear,
            Mode.GET: self.get,
            Mode.INSTALL: self.install,
            Mode.CONFIGURE_DOCKER: self.configure_docker,
        }
        handlers[self.invocation.mode]()

    def clear(self) -> None:
        """Reset the three kubeconfig entries for the cluster."""
        key = self.invocation.require_identity().key
        with self._kubeconfig() as kubeconfig:
            kubeconfig.clear(
                key,
                preserve_foreign_current_context=(
                    self.config.kubeconfig.preserve_foreign_current_context
                ),
            )
        logger.info("auth_config_cleared", key=key)

    def get(self) -> None:
        """Print an ExecCredential for kubectl."""
        token, _descriptor, _decision = self._authorize()
        logger.debug("getting_token_for_cluster_access")
        exec_credential.respond(token, self.stdout)

    def install(self) -> None:
        """Write the user, cluster and context entries and switch to the context."""
        identity = self.invocation.require_identity()
        _token, descriptor, decision = self._authorize()

        hook = ExecHookSpec(
            command=self.invocation.program,
            args=self.invocation.hook_args(),
            interactive_mode=(
                InteractiveMode.ALWAYS
                if decision.interactive_mode_required
                else InteractiveMode.NEVER
            ),
            install_hint=self.config.kubeconfig.install_hint,
        )

        with self._kubeconfig() as kubeconfig:
            path = kubeconfig.install(identity.key, descriptor, hook)

        logger.info(
            "cluster_context_installed",
            context=identity.key,
            path=str(path),
            interactive_mode=hook.interactive_mode.value,
        )

    def configure_docker(self) -> None:
        """Install the credential-helper symlink and register it with Docker."""
        docker = self.config.docker
        install_helper_symlink(self.invocation.program, docker.helper_name, docker.bin_dir)
        register_credential_helper(docker.config_path, docker.helper_name, docker.registries)
        logger.info("docker_configured", helper=docker.helper_name)

    def _authorize(self) -> tuple[AccessToken, ClusterDescriptor, PrivilegeDecision]:
        identity = self.invocation.require_identity()

        token = self.token_source.get_token(self.config.gcp.scopes)
        logger.debug("got_oauth2_token")

        descriptor = self.cluster_provider.get_cluster(identity, token)
        logger.debug("got_gke_cluster", cluster=identity.display_name)

        if self.invocation.skip_privilege_check:
            logger.warning(
                "privilege_check_skipped",
                cluster=identity.name,
                location=identity.location,
                project=identity.project,
            )
        decision = self.gate.evaluate(
            identity, descriptor, skip_check=self.invocation.skip_privilege_check
        )
        logger.debug("checked_for_privileged_cluster", privileged=decision.interactive_mode_required)
        return token, descriptor, decision

    def _kubeconfig(self):
        return kubeconfig_transaction(
            lock_dir=self.config.resolved_scratch_dir(),
            default_path=self.config.kubeconfig.path,
            lock_timeout=self.config.kubeconfig.lock_timeout_seconds,
        )
