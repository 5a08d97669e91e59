"""
AWS provider for authentication and service client management
"""

import logging
from typing import Dict, Optional

import boto3
from botocore.exceptions import ClientError, NoCredentialsError, PartialCredentialsError

logger = logging.getLogger(__name__)

PERMISSION_ERROR_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedOperation",
    "AuthFailure",
    "InvalidClientTokenId",
}


def is_permission_error(error: Exception) -> bool:
    """True if an AWS error is authorization-related.

    Checks skip a resource or the whole check on these instead of failing.
    """
    if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
        return True
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        return code in PERMISSION_ERROR_CODES
    return False


def error_code(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "")
    return ""


class AWSProvider:
    """Holds a boto3 session and caches service clients"""

    def __init__(self, region: str = "us-east-1", profile: Optional[str] = None,
                 session: Optional[boto3.Session] = None):
        self.region = region
        self.profile = profile or None
        self._account_id: Optional[str] = None
        self._clients: Dict[str, object] = {}

        if session is not None:
            self.session = session
        else:
            self.session = self._initialize_session()

    def _initialize_session(self) -> boto3.Session:
        """Initialize boto3 session from a named profile or the default chain"""
        if self.profile:
            return boto3.Session(profile_name=self.profile, region_name=self.region)
        return boto3.Session(region_name=self.region)

    @property
    def account_id(self) -> str:
        """AWS account ID, looked up once through STS"""
        if self._account_id is None:
            try:
                sts_client = self.get_client("sts")
                self._account_id = sts_client.get_caller_identity()["Account"]
            except Exception as e:
                logger.warning(f"Could not retrieve account ID: {e}")
                self._account_id = "unknown"
        return self._account_id

    def get_client(self, service_name: str):
        """Get boto3 client for AWS service"""
        if service_name not in self._clients:
            self._clients[service_name] = self.session.client(
                service_name, region_name=self.region
            )
        return self._clients[service_name]
