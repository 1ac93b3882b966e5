"""Credential resolution through the boto3 credential chain.

Credentials are fetched for every invocation and never cached here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

import boto3
from botocore.exceptions import BotoCoreError, ProfileNotFound

from agent_bridge_contracts.errors import CredentialsError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    access_key: str
    secret_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)
    expiration: datetime | None = None


def resolve_credentials(profile: str | None = None) -> Credentials:
    """Resolve short-lived credentials for `profile` (or the default chain).

    Raises:
        CredentialsError: if the profile is unknown or no credentials are available.
    """

    try:
        session = boto3.Session(profile_name=profile or None)
        resolved = session.get_credentials()
        if resolved is None:
            raise CredentialsError(
                f"No AWS credentials found for profile {profile or 'default'!r}", profile=profile
            )
        frozen = resolved.get_frozen_credentials()
    except ProfileNotFound as e:
        raise CredentialsError(f"AWS profile not found: {profile}", profile=profile) from e
    except BotoCoreError as e:
        raise CredentialsError(f"Failed to load AWS credentials: {e}", profile=profile) from e

    if not frozen.access_key or not frozen.secret_key:
        raise CredentialsError("Resolved AWS credentials are incomplete", profile=profile)

    logger.debug("credentials.resolved profile=%s method=%s", profile, getattr(resolved, "method", None))
    return Credentials(
        access_key=frozen.access_key,
        secret_key=frozen.secret_key,
        session_token=frozen.token,
    )
