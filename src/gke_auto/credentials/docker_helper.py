"""Docker credential-helper bridge.

Docker runs ``docker-credential-<name> <action>`` and talks to it over
stdin/stdout. For ``get`` the helper reads a registry URL and answers with
an OAuth2 access token. The username must be the fixed sentinel below:
with a real username Docker would prompt for a password instead of using
the token.
"""

import json
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, BinaryIO, TextIO

from gke_auto.core.exceptions import DockerConfigError, DockerHelperError
from gke_auto.interfaces.cloud_provider import TokenSource
from gke_auto.utils.files import atomic_write_text
from gke_auto.utils.logging import get_logger

logger = get_logger(__name__)

HELPER_PREFIX = "docker-credential-"
OAUTH2_USERNAME = "oauth2accesstoken"

GET = "get"
LIST = "list"
STORE = "store"
ERASE = "erase"
ACTIONS = (GET, LIST, STORE, ERASE)


def helper_program_name(helper_name: str) -> str:
    return f"{HELPER_PREFIX}{helper_name}"


def is_helper_invocation(argv0: str) -> bool:
    """True when the process was started under a docker-credential-* name."""
    return Path(argv0).name.startswith(HELPER_PREFIX)


def read_server_url(stream: BinaryIO, max_bytes: int) -> str:
    """Read the registry URL Docker writes to stdin.

    Raises:
        DockerHelperError: If the input is empty, too long or not UTF-8
    """
    data = stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise DockerHelperError(f"server URL exceeds {max_bytes} bytes")
    try:
        server_url = data.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise DockerHelperError(f"server URL is not valid UTF-8: {e}") from e
    if not server_url:
        raise DockerHelperError("no server URL on standard input")
    return server_url


class DockerCredentialHelper:
    """Serves Docker credential-helper actions from a token source."""

    def __init__(
        self,
        token_source: TokenSource,
        scopes: Sequence[str],
        registries: Sequence[str] = (),
        max_server_url_bytes: int = 4096,
    ):
        """Initialize Docker credential helper.

        Args:
            token_source: Supplies access tokens
            scopes: OAuth scopes for registry tokens
            registries: Registry hosts reported by ``list``
            max_server_url_bytes: Upper bound on the stdin read for ``get``
        """
        self.token_source = token_source
        self.scopes = list(scopes)
        self.registries = list(registries)
        self.max_server_url_bytes = max_server_url_bytes

    def handle(
        self,
        action: str,
        stdin: BinaryIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        """Run one credential-helper action.

        Raises:
            DockerHelperError: On an unknown action or bad input
            TokenSourceError: If no token can be obtained
        """
        stdin = stdin if stdin is not None else sys.stdin.buffer
        stdout = stdout if stdout is not None else sys.stdout

        if action == GET:
            document = self.get(read_server_url(stdin, self.max_server_url_bytes))
        elif action == LIST:
            document = self.list()
        elif action in (STORE, ERASE):
            # Credentials are minted on demand; there is nothing to store or erase.
            logger.debug("docker_helper_noop", action=action)
            return
        else:
            raise DockerHelperError(f"unsupported credential helper action {action!r}")

        payload = json.dumps(document) + "\n"
        stdout.write(payload)
        stdout.flush()

    def get(self, server_url: str) -> dict[str, str]:
        token = self.token_source.get_token(self.scopes)
        logger.debug("docker_credentials_issued", server_url=server_url)
        return {
            "ServerURL": server_url,
            "Username": OAUTH2_USERNAME,
            "Secret": token.access_token,
        }

    def list(self) -> dict[str, str]:
        return {f"https://{registry}": OAUTH2_USERNAME for registry in self.registries}


def install_helper_symlink(program: str | Path, helper_name: str, bin_dir: str | Path | None = None) -> Path:
    """Make ``docker-credential-<helper_name>`` point at this program.

    An existing regular file of that name (for instance a console script
    installed by pip) is left untouched.

    Returns:
        Path of the helper executable

    Raises:
        DockerConfigError: If the symlink cannot be created
    """
    target = Path(program).expanduser().resolve()
    directory = Path(bin_dir).expanduser() if bin_dir else target.parent
    link = directory / helper_program_name(helper_name)

    if link.exists() and not link.is_symlink():
        logger.info("docker_helper_already_installed", path=str(link))
        return link

    try:
        if link.is_symlink():
            if link.resolve() == target:
                logger.debug("docker_helper_symlink_current", path=str(link))
                return link
            link.unlink()
        directory.mkdir(parents=True, exist_ok=True)
        os.symlink(target, link)
    except OSError as e:
        raise DockerConfigError(f"creating {link} -> {target}: {e}") from e

    logger.info("docker_helper_symlink_created", path=str(link), target=str(target))
    return link


def register_credential_helper(config_path: str | Path, helper_name: str, registries: Sequence[str]) -> Path:
    """Point Docker's ``credHelpers`` for each registry at the helper.

    Every other key of the Docker config is preserved.

    Raises:
        DockerConfigError: If the config cannot be read, parsed or written
    """
    path = Path(config_path).expanduser()
    config: dict[str, Any] = {}
    if path.exists():
        try:
            text = path.read_text(encoding="utf-8")
            config = json.loads(text) if text.strip() else {}
        except (OSError, ValueError) as e:
            raise DockerConfigError(f"reading {path}: {e}") from e
        if not isinstance(config, dict):
            raise DockerConfigError(f"{path} is not a JSON object")

    helpers = config.get("credHelpers")
    if helpers is None:
        helpers = config["credHelpers"] = {}
    if not isinstance(helpers, dict):
        raise DockerConfigError(f"{path}: credHelpers is not an object")

    for registry in registries:
        helpers[registry] = helper_name

    try:
        atomic_write_text(path, json.dumps(config, indent="\t") + "\n")
    except OSError as e:
        raise DockerConfigError(f"writing {path}: {e}") from e

    logger.info("docker_config_updated", path=str(path), registries=len(registries))
    return path
