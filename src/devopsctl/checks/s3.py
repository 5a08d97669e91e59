"""
S3 security checks
"""

import logging
from typing import List

from botocore.exceptions import BotoCoreError, ClientError

from ..core.framework import Finding
from ..core.provider import AWSProvider, error_code, is_permission_error
from ..core.severity import Severity
from .base import AWSCheck

logger = logging.getLogger(__name__)

PUBLIC_GROUP_MARKERS = ("AllUsers", "AuthenticatedUsers")
NO_ENCRYPTION_CODE = "ServerSideEncryptionConfigurationNotFoundError"


def list_bucket_names(s3_client) -> List[str]:
    return [bucket["Name"] for bucket in s3_client.list_buckets().get("Buckets", [])]


def is_bucket_public(s3_client, bucket_name: str) -> bool:
    """A bucket is public when Block Public Access does not fully cover it
    and its ACL grants access to everyone or to any authenticated user."""
    try:
        pab = s3_client.get_public_access_block(Bucket=bucket_name)
        cfg = pab.get("PublicAccessBlockConfiguration", {})
        if all(cfg.get(key) for key in ("BlockPublicAcls", "BlockPublicPolicy",
                                        "IgnorePublicAcls", "RestrictPublicBuckets")):
            return False
    except ClientError:
        # No block configured, fall through to the ACL
        pass

    acl = s3_client.get_bucket_acl(Bucket=bucket_name)
    for grant in acl.get("Grants", []):
        grantee = grant.get("Grantee", {})
        if grantee.get("Type") == "Group":
            uri = grantee.get("URI", "")
            if any(marker in uri for marker in PUBLIC_GROUP_MARKERS):
                return True
    return False


class S3CheckBase(AWSCheck):
    """Shared bucket enumeration for S3 checks"""

    def _bucket_names(self, s3_client) -> List[str]:
        try:
            return list_bucket_names(s3_client)
        except (ClientError, BotoCoreError) as e:
            if is_permission_error(e):
                logger.warning(f"Skipping {self.check_name}: {e}")
                return []
            raise


class S3BucketPublicCheck(S3CheckBase):
    """Check for S3 buckets that are publicly accessible"""

    def __init__(self):
        super().__init__()
        self.check_name = "s3-public-bucket"
        self.severity = Severity.CRITICAL
        self.recommendation = "Enable S3 Block Public Access settings for the bucket and account"

    def execute(self, aws_provider: AWSProvider) -> List[Finding]:
        findings = []
        s3_client = aws_provider.get_client("s3")

        for bucket_name in self._bucket_names(s3_client):
            try:
                public = is_bucket_public(s3_client, bucket_name)
            except ClientError as e:
                logger.debug(f"Could not inspect ACL of {bucket_name}: {e}")
                continue
            if public:
                findings.append(self.create_finding(
                    resource_id=bucket_name,
                    message=f'S3 bucket "{bucket_name}" is publicly accessible',
                ))

        return findings


class S3BucketEncryptionCheck(S3CheckBase):
    """Check for S3 buckets without default server-side encryption"""

    def __init__(self):
        super().__init__()
        self.check_name = "s3-no-encryption"
        self.severity = Severity.HIGH
        self.recommendation = "Enable SSE-S3 or SSE-KMS encryption on the bucket"

    def execute(self, aws_provider: AWSProvider) -> List[Finding]:
        findings = []
        s3_client = aws_provider.get_client("s3")

        for bucket_name in self._bucket_names(s3_client):
            try:
                s3_client.get_bucket_encryption(Bucket=bucket_name)
            except ClientError as e:
                if error_code(e) == NO_ENCRYPTION_CODE:
                    findings.append(self.create_finding(
                        resource_id=bucket_name,
                        message=f'S3 bucket "{bucket_name}" has no server-side encryption configured',
                    ))
                elif error_code(e) == "NoSuchBucket" or is_permission_error(e):
                    continue
                else:
                    raise

        return findings


class S3BucketVersioningCheck(S3CheckBase):
    """Check for S3 buckets without versioning enabled"""

    def __init__(self):
        super().__init__()
        self.check_name = "s3-versioning-disabled"
        self.severity = Severity.LOW
        self.recommendation = "Enable versioning for data protection and point-in-time recovery"

    def execute(self, aws_provider: AWSProvider) -> List[Finding]:
        findings = []
        s3_client = aws_provider.get_client("s3")

        for bucket_name in self._bucket_names(s3_client):
            try:
                versioning = s3_client.get_bucket_versioning(Bucket=bucket_name)
            except ClientError as e:
                logger.debug(f"Could not read versioning of {bucket_name}: {e}")
                continue
            if versioning.get("Status") != "Enabled":
                findings.append(self.create_finding(
                    resource_id=bucket_name,
                    message=f'S3 bucket "{bucket_name}" does not have versioning enabled',
                ))

        return findings
