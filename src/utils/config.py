import json
import os
from dataclasses import dataclass
from typing import Optional, Tuple

import boto3
from botocore.exceptions import ClientError

from utils.logger import get_logger

logger = get_logger("config")

DEFAULT_AUTH_URL = "https://auth.zendit.io/oauth/token"
DEFAULT_API_BASE_URL = "https://api.zendit.io"
DEFAULT_TIMEOUT_SECONDS = "30"


@dataclass(frozen=True)
class ZenditConfig:
    client_id: str
    client_secret: str
    auth_url: str = DEFAULT_AUTH_URL
    api_base_url: str = DEFAULT_API_BASE_URL
    timeout_seconds: float = float(DEFAULT_TIMEOUT_SECONDS)

    def __repr__(self) -> str:
        # Never leak the secret into logs or tracebacks
        return (
            f"ZenditConfig(client_id={self.client_id!r}, client_secret='***', "
            f"auth_url={self.auth_url!r}, api_base_url={self.api_base_url!r}, "
            f"timeout_seconds={self.timeout_seconds!r})"
        )


def get_zendit_secrets(secret_name: str, region_name: str) -> dict:
    """
    Fetch Zendit credentials from AWS Secrets Manager.

    Expects the secret value to be a JSON object, e.g.:

        {
          "client_id": "...",
          "client_secret": "..."
        }
    """
    logger.info(
        "config.fetching_secret",
        extra={"secret_name": secret_name, "region": region_name},
    )

    client = boto3.client("secretsmanager", region_name=region_name)

    try:
        resp = client.get_secret_value(SecretId=secret_name)
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code")
        msg = f"Could not read secret '{secret_name}': {code}"
        logger.error(msg)
        raise RuntimeError(msg) from e

    secret_str = resp.get("SecretString")

    if not secret_str:
        msg = f"Secret '{secret_name}' has no SecretString payload"
        logger.error(msg)
        raise RuntimeError(msg)

    try:
        data = json.loads(secret_str)
    except json.JSONDecodeError as e:
        logger.error(
            "config.secret_not_json",
            extra={"secret_name": secret_name, "error": str(e)},
        )
        raise

    if not isinstance(data, dict):
        msg = f"Secret '{secret_name}' must be a JSON object"
        logger.error(msg)
        raise RuntimeError(msg)

    return data


def _resolve_credentials() -> Tuple[str, str]:
    """
    ZENDIT_SECRET_NAME wins when set; otherwise ZENDIT_ID / ZENDIT_SECRET.

    Missing values are only warned about. The token endpoint rejects
    empty credentials and the handler reports that as a 502.
    """
    secret_name = os.getenv("ZENDIT_SECRET_NAME")

    if secret_name:
        region_name = os.getenv("AWS_REGION", "us-east-1")
        secrets = get_zendit_secrets(secret_name, region_name)
        client_id = secrets.get("client_id")
        client_secret = secrets.get("client_secret")
    else:
        client_id = os.getenv("ZENDIT_ID")
        client_secret = os.getenv("ZENDIT_SECRET")

    missing = [
        name
        for name, value in [("client_id", client_id), ("client_secret", client_secret)]
        if not value
    ]
    if missing:
        logger.warning("config.missing_credentials", extra={"missing": missing})

    return client_id or "", client_secret or ""


def load_config() -> ZenditConfig:
    """
    Build a ZenditConfig from the environment (and Secrets Manager if configured).

    Raises RuntimeError if ZENDIT_TIMEOUT_SECONDS is not a number.
    """
    timeout_str = os.getenv("ZENDIT_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
    try:
        timeout_seconds = float(timeout_str)
    except ValueError:
        msg = (
            f"Invalid ZENDIT_TIMEOUT_SECONDS='{timeout_str}'. "
            "Must be a number of seconds."
        )
        logger.error(msg)
        raise RuntimeError(msg)

    client_id, client_secret = _resolve_credentials()

    return ZenditConfig(
        client_id=client_id,
        client_secret=client_secret,
        auth_url=os.getenv("ZENDIT_AUTH_URL", DEFAULT_AUTH_URL),
        api_base_url=os.getenv("ZENDIT_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
        timeout_seconds=timeout_seconds,
    )


_config: Optional[ZenditConfig] = None


def get_config() -> ZenditConfig:
    """Resolve the config once per container and reuse it across invocations."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    global _config
    _config = None
