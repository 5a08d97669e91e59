"""
EC2 security group and EBS volume checks
"""

import logging
from typing import List

from botocore.exceptions import BotoCoreError, ClientError

from ..core.framework import Finding
from ..core.provider import AWSProvider, is_permission_error
from ..core.severity import Severity
from .base import AWSCheck

logger = logging.getLogger(__name__)

OPEN_CIDRS = ("0.0.0.0/0", "::/0")
SSH_PORT = 22


def _paginate(client, operation: str, key: str) -> List[dict]:
    items = []
    for page in client.get_paginator(operation).paginate():
        items.extend(page.get(key, []))
    return items


def _open_cidr(permission: dict) -> str:
    """Return the world-open CIDR of a rule, or an empty string"""
    for ip_range in permission.get("IpRanges", []):
        if ip_range.get("CidrIp") in OPEN_CIDRS:
            return ip_range["CidrIp"]
    for ip_range in permission.get("Ipv6Ranges", []):
        if ip_range.get("CidrIpv6") in OPEN_CIDRS:
            return ip_range["CidrIpv6"]
    return ""


class SecurityGroupOpenAccessCheck(AWSCheck):
    """Check for security groups open to the internet on all ports or SSH.

    Emits `sg-all-ports-open` or `sg-ssh-open`, both CRITICAL.
    """

    def __init__(self):
        super().__init__()
        self.check_name = "sg-ssh-open"
        self.severity = Severity.CRITICAL
        self.recommendation = ("Restrict SSH access to known IP ranges or use "
                               "AWS Systems Manager Session Manager")

    def execute(self, aws_provider: AWSProvider) -> List[Finding]:
        findings = []
        ec2_client = aws_provider.get_client("ec2")

        try:
            groups = _paginate(ec2_client, "describe_security_groups", "SecurityGroups")
        except (ClientError, BotoCoreError) as e:
            if is_permission_error(e):
                logger.warning(f"Skipping security group checks: {e}")
                return findings
            raise

        for sg in groups:
            sg_id = sg["GroupId"]
            sg_name = sg.get("GroupName", "")

            for permission in sg.get("IpPermissions", []):
                cidr = _open_cidr(permission)
                if not cidr:
                    continue

                if permission.get("IpProtocol") == "-1":
                    findings.append(Finding(
                        check_name="sg-all-ports-open",
                        severity=Severity.CRITICAL,
                        resource_id=sg_id,
                        message=f'Security group "{sg_name}" ({sg_id}) allows all traffic from {cidr}',
                        recommendation="Restrict security group rules to specific ports and CIDR ranges",
                    ))
                    continue

                from_port = permission.get("FromPort")
                to_port = permission.get("ToPort")
                if from_port is not None and to_port is not None and from_port <= SSH_PORT <= to_port:
                    findings.append(self.create_finding(
                        resource_id=sg_id,
                        message=f'Security group "{sg_name}" ({sg_id}) allows SSH (port 22) from {cidr}',
                    ))

        return findings


class EBSVolumeCheckBase(AWSCheck):
    """Shared volume enumeration for EBS checks"""

    def _volumes(self, ec2_client) -> List[dict]:
        try:
            return _paginate(ec2_client, "describe_volumes", "Volumes")
        except (ClientError, BotoCoreError) as e:
            if is_permission_error(e):
                logger.warning(f"Skipping {self.check_name}: {e}")
                return []
            raise


class EBSEncryptionCheck(EBSVolumeCheckBase):
    """Check for unencrypted EBS volumes"""

    def __init__(self):
        super().__init__()
        self.check_name = "ebs-unencrypted"
        self.severity = Severity.HIGH
        self.recommendation = "Enable EBS encryption by default in your AWS account settings"

    def execute(self, aws_provider: AWSProvider) -> List[Finding]:
        findings = []
        for volume in self._volumes(aws_provider.get_client("ec2")):
            if not volume.get("Encrypted"):
                volume_id = volume["VolumeId"]
                findings.append(self.create_finding(
                    resource_id=volume_id,
                    message=f'EBS volume "{volume_id}" is not encrypted',
                ))
        return findings


class EBSUnattachedCheck(EBSVolumeCheckBase):
    """Check for EBS volumes not attached to any instance"""

    def __init__(self):
        super().__init__()
        self.check_name = "ebs-unattached"
        self.severity = Severity.LOW
        self.recommendation = "Delete unused EBS volumes to reduce costs"

    def execute(self, aws_provider: AWSProvider) -> List[Finding]:
        findings = []
        for volume in self._volumes(aws_provider.get_client("ec2")):
            if volume.get("State") == "available":
                volume_id = volume["VolumeId"]
                findings.append(self.create_finding(
                    resource_id=volume_id,
                    message=f'EBS volume "{volume_id}" is not attached to any instance',
                ))
        return findings
