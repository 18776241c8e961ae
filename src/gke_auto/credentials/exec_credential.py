"""ExecCredential responder for kubectl's exec auth plugin protocol."""

import sys
from typing import TextIO

from gke_auto.core.models import ExecCredential, ExecCredentialStatus
from gke_auto.interfaces.cloud_types import AccessToken


def render(token: AccessToken) -> str:
    """Serialize a token as a complete ExecCredential document."""
    credential = ExecCredential(
        status=ExecCredentialStatus(
            expiration_timestamp=token.expiry,
            token=token.access_token,
        )
    )
    return credential.model_dump_json(by_alias=True) + "\n"


def respond(token: AccessToken, stream: TextIO | None = None) -> None:
    """Write the ExecCredential for ``token`` in a single write.

    The document is rendered before anything touches the stream, so a
    failure never leaves kubectl with a partial envelope.
    """
    document = render(token)
    out = stream if stream is not None else sys.stdout
    out.write(document)
    out.flush()
