"""Credential artifact materialization.

The artifact has its own lifecycle: it is rewritten whenever the cluster
handle changes, but teardown never removes it. Removal is an explicit
operator action (``remove``).
"""

import base64
import binascii
import os
import tempfile
from pathlib import Path

from lode.core.exceptions import CredentialWriteError, DecodeError
from lode.core.models import ClusterHandle, CredentialArtifact
from lode.utils.logging import get_logger

logger = get_logger(__name__)

ARTIFACT_MODE = 0o600


def decode_kubeconfig(blob: str) -> bytes:
    """Decode a base64 kubeconfig payload.

    Args:
        blob: Base64 text as returned by the provider

    Returns:
        Raw kubeconfig bytes

    Raises:
        DecodeError: If the payload is not valid base64 or not UTF-8 text
    """
    if not blob or not blob.strip():
        raise DecodeError("Kubeconfig payload is empty")

    try:
        data = base64.b64decode("".join(blob.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Kubeconfig payload is not valid base64: {e}") from e

    try:
        data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError("Kubeconfig payload is not UTF-8 text") from e

    return data


class CredentialMaterializer:
    """Writes cluster credentials to a local file readable only by the owner."""

    def __init__(self, path: str | Path):
        """Initialize the materializer.

        Args:
            path: Where the kubeconfig artifact is written
        """
        self.path = Path(path).expanduser()

    def materialize(self, handle: ClusterHandle) -> CredentialArtifact:
        """Decode the cluster's kubeconfig and write it atomically with mode 0600.

        Args:
            handle: Ready cluster handle

        Returns:
            CredentialArtifact pointing at the written file

        Raises:
            DecodeError: If the kubeconfig payload is malformed
            CredentialWriteError: If the file cannot be written
        """
        data = decode_kubeconfig(handle.kubeconfig_blob.get_secret_value())

        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".kubeconfig-")
            with os.fdopen(fd, "wb") as f:
                os.fchmod(f.fileno(), ARTIFACT_MODE)
                f.write(data)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)
            logger.error("credential_write_failed", path=str(self.path), error=str(e))
            raise CredentialWriteError(f"Failed to write kubeconfig to {self.path}: {e}") from e

        logger.info("credentials_written", path=str(self.path), cluster_id=handle.id)
        return CredentialArtifact(path=str(self.path), cluster_id=handle.id)

    def matches(self, handle: ClusterHandle) -> bool:
        """Check whether the file on disk holds this cluster's kubeconfig.

        Raises:
            DecodeError: If the handle's kubeconfig payload is malformed
            CredentialWriteError: If the file exists but cannot be read
        """
        expected = decode_kubeconfig(handle.kubeconfig_blob.get_secret_value())
        try:
            current = self.path.read_bytes()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CredentialWriteError(f"Failed to read {self.path}: {e}") from e
        return current == expected

    def ensure(self, handle: ClusterHandle) -> CredentialArtifact:
        """Return an artifact for this cluster, rewriting the file if it is missing or stale.

        The path is shared by every cluster the config has ever named, so a
        file left by another cluster is never trusted.
        """
        if self.matches(handle):
            return CredentialArtifact(path=str(self.path), cluster_id=handle.id)

        if self.path.exists():
            logger.warning("credentials_stale", path=str(self.path), cluster_id=handle.id)
        return self.materialize(handle)

    def remove(self) -> bool:
        """Delete the artifact. Never called by teardown.

        Returns:
            True if a file was removed
        """
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CredentialWriteError(f"Failed to remove {self.path}: {e}") from e

        logger.info("credentials_removed", path=str(self.path))
        return True
