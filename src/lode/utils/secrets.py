"""Provider token resolution, optionally from AWS Secrets Manager."""

import json

import boto3
from botocore.exceptions import ClientError

from lode.core.config import TOKEN_ENV_VAR, LinodeConfig
from lode.core.exceptions import ConfigurationError
from lode.utils.logging import get_logger

logger = get_logger(__name__)


class SecretsManager:
    """AWS Secrets Manager client."""

    def __init__(self, region: str = "us-east-1"):
        """Initialize Secrets Manager client.

        Args:
            region: AWS region
        """
        self.client = boto3.client("secretsmanager", region_name=region)
        self.region = region
        logger.debug("secrets_manager_initialized", region=region)

    def get_secret(self, secret_name: str) -> str:
        """Get secret value from Secrets Manager.

        Args:
            secret_name: Name of the secret

        Returns:
            Secret value as string

        Raises:
            ConfigurationError: If secret cannot be retrieved
        """
        try:
            logger.debug("getting_secret", secret_name=secret_name)
            response = self.client.get_secret_value(SecretId=secret_name)

            if "SecretString" in response:
                secret = response["SecretString"]
            else:
                secret = response["SecretBinary"].decode("utf-8")

            logger.info("secret_retrieved", secret_name=secret_name)
            return secret

        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            logger.error(
                "secret_retrieval_failed",
                secret_name=secret_name,
                error_code=error_code,
            )

            if error_code == "ResourceNotFoundException":
                raise ConfigurationError(f"Secret not found: {secret_name}") from e
            raise ConfigurationError(
                f"Failed to retrieve secret {secret_name}: {error_code}"
            ) from e


def resolve_provider_token(
    linode: LinodeConfig, secrets_manager: SecretsManager | None = None
) -> str:
    """Return the Linode API token.

    The configured token (or ``LINODE_TOKEN``, already folded into the config)
    wins; otherwise ``token_secret`` is read from Secrets Manager. The secret may
    hold the raw token or a JSON object with a ``token`` key.

    Raises:
        ConfigurationError: If no token can be found
    """
    if linode.token is not None and linode.token.get_secret_value():
        return linode.token.get_secret_value()

    if not linode.token_secret:
        raise ConfigurationError(
            f"No Linode API token: set {TOKEN_ENV_VAR}, linode.token or linode.token_secret"
        )

    manager = secrets_manager or SecretsManager(region=linode.aws_region)
    raw = manager.get_secret(linode.token_secret).strip()

    if raw.startswith("{"):
        try:
            raw = json.loads(raw)["token"]
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise ConfigurationError(
                f"Secret {linode.token_secret} has no 'token' field"
            ) from e

    if not raw:
        raise ConfigurationError(f"Secret {linode.token_secret} is empty")
    return raw
