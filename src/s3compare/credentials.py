from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ProfileNotFound

from .config import S3Config

logger = logging.getLogger(__name__)


class CredentialsError(RuntimeError):
    pass


@dataclass
class Credentials:
    access_key: str
    secret_key: str
    session_token: Optional[str] = None
    source: str = "env"


def resolve_credentials(
    profile: str = "",
    environ: Optional[Mapping[str, str]] = None,
) -> Credentials:
    env = os.environ if environ is None else environ
    access_key = env.get("AWS_ACCESS_KEY_ID", "").strip()
    secret_key = env.get("AWS_SECRET_ACCESS_KEY", "").strip()
    if access_key and secret_key:
        logger.info("using credentials from AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY")
        return Credentials(
            access_key=access_key,
            secret_key=secret_key,
            session_token=env.get("AWS_SESSION_TOKEN") or None,
            source="env",
        )

    explicit_profile = profile or env.get("AWS_PROFILE", "") or None
    profile_name = explicit_profile or "default"
    try:
        session = boto3.Session(profile_name=explicit_profile)
        found = session.get_credentials()
    except (ProfileNotFound, BotoCoreError) as exc:
        raise CredentialsError(_missing_message(profile_name, str(exc))) from exc
    if found is None:
        raise CredentialsError(_missing_message(profile_name, "no credentials found"))
    frozen = found.get_frozen_credentials()
    if not (frozen.access_key and frozen.secret_key):
        raise CredentialsError(
            _missing_message(profile_name, "missing access or secret key")
        )
    logger.info("using credentials from profile %s", profile_name)
    return Credentials(
        access_key=frozen.access_key,
        secret_key=frozen.secret_key,
        session_token=frozen.token,
        source=f"profile:{profile_name}",
    )


def build_client(
    s3_config: S3Config,
    credentials: Credentials,
    max_pool_connections: int = 32,
) -> Any:
    config = BotoConfig(
        connect_timeout=s3_config.connect_timeout,
        read_timeout=s3_config.read_timeout,
        retries={"max_attempts": s3_config.max_attempts, "mode": "standard"},
        max_pool_connections=max(10, int(max_pool_connections)),
    )
    kwargs: Dict[str, Any] = {
        "config": config,
        "region_name": s3_config.region or "us-east-1",
        "aws_access_key_id": credentials.access_key,
        "aws_secret_access_key": credentials.secret_key,
    }
    if credentials.session_token:
        kwargs["aws_session_token"] = credentials.session_token
    if s3_config.endpoint:
        kwargs["endpoint_url"] = s3_config.endpoint
    return boto3.client("s3", **kwargs)


def _missing_message(profile_name: str, reason: str) -> str:
    return (
        f"missing access key or secret key ({reason}); tried environment variables "
        f"AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY and the '{profile_name}' profile "
        "of the shared credentials file"
    )
