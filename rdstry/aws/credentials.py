"""AWS credential validation."""

from __future__ import annotations

from typing import Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from .client import create_boto_client


class CredentialValidationError(Exception):
    """AWS credentials are missing or invalid."""


def validate_credentials(profile_name: Optional[str] = None, region_name: Optional[str] = None) -> Dict[str, str]:
    """Validate credentials by calling STS GetCallerIdentity.

    Args:
        profile_name: AWS profile name (optional)
        region_name: AWS region (optional)

    Returns:
        Dictionary with account_id, arn, user_id and partition

    Raises:
        CredentialValidationError: If no credentials are found or STS rejects them
    """
    try:
        sts = create_boto_client("sts", region_name=region_name, profile_name=profile_name)
        identity = sts.get_caller_identity()
    except NoCredentialsError:
        raise CredentialValidationError(
            "No AWS credentials found. Configure a profile or set AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY."
        )
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        raise CredentialValidationError(f"AWS credentials are invalid: {error_code}")
    except BotoCoreError as e:
        raise CredentialValidationError(f"Unable to validate AWS credentials: {e}")

    return {
        "account_id": identity["Account"],
        "arn": identity["Arn"],
        "user_id": identity["UserId"],
        "partition": partition_from_arn(identity["Arn"]),
    }


def partition_from_arn(arn: str) -> str:
    """Return the partition of an ARN (aws, aws-cn, aws-us-gov, ...)."""
    parts = arn.split(":")
    if len(parts) < 6 or parts[0] != "arn" or not parts[1]:
        raise CredentialValidationError(f"Unexpected caller ARN: {arn}")
    return parts[1]
