"""
IAM security checks
"""

import logging
from datetime import datetime, timezone
from typing import List

from botocore.exceptions import BotoCoreError, ClientError

from ..core.framework import Finding
from ..core.provider import AWSProvider, is_permission_error
from ..core.severity import Severity
from .base import AWSCheck

logger = logging.getLogger(__name__)

ADMIN_POLICY_ARN = "arn:aws:iam::aws:policy/AdministratorAccess"

# Keys older than this are HIGH regardless of the configured threshold
KEY_AGE_HIGH_DAYS = 120


def list_users(iam_client) -> List[dict]:
    """Return all IAM users, following pagination"""
    users = []
    paginator = iam_client.get_paginator("list_users")
    for page in paginator.paginate():
        users.extend(page["Users"])
    return users


class IAMUserWithoutMFACheck(AWSCheck):
    """Check for IAM users without an MFA device"""

    def __init__(self):
        super().__init__()
        self.check_name = "iam-mfa-disabled"
        self.severity = Severity.HIGH
        self.recommendation = "Enable MFA for all IAM users"

    def execute(self, aws_provider: AWSProvider) -> List[Finding]:
        findings = []
        iam_client = aws_provider.get_client("iam")

        try:
            users = list_users(iam_client)
        except (ClientError, BotoCoreError) as e:
            if is_permission_error(e):
                logger.warning(f"Skipping {self.check_name}: {e}")
                return findings
            raise

        for user in users:
            username = user["UserName"]
            try:
                devices = iam_client.list_mfa_devices(UserName=username)["MFADevices"]
            except ClientError as e:
                if is_permission_error(e):
                    continue
                raise

            if not devices:
                findings.append(self.create_finding(
                    resource_id=username,
                    message=f'IAM user "{username}" has no MFA device enabled',
                ))

        return findings


class IAMAccessKeyAgeCheck(AWSCheck):
    """Check for active access keys older than the configured age"""

    def __init__(self, key_age_days: int = 90):
        super().__init__()
        self.check_name = "iam-old-access-key"
        self.severity = Severity.MEDIUM
        self.recommendation = "Rotate access keys regularly; delete unused keys"
        self.key_age_days = key_age_days

    def execute(self, aws_provider: AWSProvider) -> List[Finding]:
        findings = []
        iam_client = aws_provider.get_client("iam")

        try:
            users = list_users(iam_client)
        except (ClientError, BotoCoreError) as e:
            if is_permission_error(e):
                logger.warning(f"Skipping {self.check_name}: {e}")
                return findings
            raise

        now = datetime.now(timezone.utc)
        for user in users:
            username = user["UserName"]
            try:
                keys = iam_client.list_access_keys(UserName=username)["AccessKeyMetadata"]
            except ClientError as e:
                if is_permission_error(e):
                    continue
                raise

            for key in keys:
                if key.get("Status") == "Inactive":
                    continue
                age_days = (now - key["CreateDate"]).days
                if age_days <= self.key_age_days:
                    continue
                severity = Severity.HIGH if age_days > KEY_AGE_HIGH_DAYS else Severity.MEDIUM
                findings.append(self.create_finding(
                    resource_id=key["AccessKeyId"],
                    message=f'Access key for "{username}" is {age_days} days old',
                    severity=severity,
                ))

        return findings


class IAMAdminUserCheck(AWSCheck):
    """Check for users with AdministratorAccess, directly or through a group"""

    def __init__(self):
        super().__init__()
        self.check_name = "iam-admin-access"
        self.severity = Severity.CRITICAL
        self.recommendation = "Apply least-privilege; remove AdministratorAccess from regular users"

    def execute(self, aws_provider: AWSProvider) -> List[Finding]:
        findings = []
        iam_client = aws_provider.get_client("iam")

        try:
            users = list_users(iam_client)
        except (ClientError, BotoCoreError) as e:
            if is_permission_error(e):
                logger.warning(f"Skipping {self.check_name}: {e}")
                return findings
            raise

        for user in users:
            username = user["UserName"]
            try:
                is_admin = self._has_admin_access(iam_client, username)
            except ClientError as e:
                logger.debug(f"Could not inspect policies of {username}: {e}")
                continue

            if is_admin:
                findings.append(self.create_finding(
                    resource_id=username,
                    message=f'IAM user "{username}" has AdministratorAccess policy',
                ))

        return findings

    @staticmethod
    def _has_admin_access(iam_client, username: str) -> bool:
        attached = iam_client.list_attached_user_policies(UserName=username)
        for policy in attached.get("AttachedPolicies", []):
            if policy.get("PolicyArn") == ADMIN_POLICY_ARN:
                return True

        groups = iam_client.list_groups_for_user(UserName=username)
        for group in groups.get("Groups", []):
            try:
                group_policies = iam_client.list_attached_group_policies(
                    GroupName=group["GroupName"]
                )
            except ClientError:
                continue
            for policy in group_policies.get("AttachedPolicies", []):
                if policy.get("PolicyArn") == ADMIN_POLICY_ARN:
                    return True

        return False
