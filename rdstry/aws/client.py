"""boto3 session and client factory."""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig

logger = logging.getLogger(__name__)

# Retries are left to botocore's standard mode; rdstry itself never retries
DEFAULT_BOTO_CONFIG = BotoConfig(retries={"max_attempts": 3, "mode": "standard"})


def create_session(profile_name: Optional[str] = None, region_name: Optional[str] = None) -> boto3.Session:
    """Create a boto3 session with an optional named profile."""
    if profile_name:
        return boto3.Session(profile_name=profile_name, region_name=region_name)
    return boto3.Session(region_name=region_name)


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
) -> Any:
    """Create a boto3 client.

    Args:
        service_name: AWS service name (e.g. "rds", "sts")
        region_name: AWS region (default: from profile / environment)
        profile_name: AWS profile name (optional)

    Returns:
        boto3 client for the service
    """
    session = create_session(profile_name=profile_name, region_name=region_name)
    logger.debug(f"Creating {service_name} client (region={region_name or session.region_name}, profile={profile_name})")
    return session.client(service_name, region_name=region_name, config=DEFAULT_BOTO_CONFIG)
