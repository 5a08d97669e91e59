"""
AWS runner: the IAM, S3 and EC2 checks run against one provider
"""

import logging
from typing import List

from ..core.config import AWSConfig
from ..core.context import RunContext
from ..core.provider import AWSProvider
from .base import AWSCheck, RunnerResult, run_checks
from .ec2 import EBSEncryptionCheck, EBSUnattachedCheck, SecurityGroupOpenAccessCheck
from .iam import IAMAccessKeyAgeCheck, IAMAdminUserCheck, IAMUserWithoutMFACheck
from .s3 import S3BucketEncryptionCheck, S3BucketPublicCheck, S3BucketVersioningCheck

logger = logging.getLogger(__name__)


def default_aws_checks(config: AWSConfig = None) -> List[AWSCheck]:
    """Built-in AWS checks in execution order"""
    config = config or AWSConfig()
    return [
        IAMUserWithoutMFACheck(),
        IAMAccessKeyAgeCheck(key_age_days=config.key_age_days),
        IAMAdminUserCheck(),
        S3BucketPublicCheck(),
        S3BucketEncryptionCheck(),
        S3BucketVersioningCheck(),
        SecurityGroupOpenAccessCheck(),
        EBSEncryptionCheck(),
        EBSUnattachedCheck(),
    ]


def run_aws_checks(ctx: RunContext, provider: AWSProvider,
                   config: AWSConfig = None, checks: List[AWSCheck] = None) -> RunnerResult:
    if checks is None:
        checks = default_aws_checks(config)

    logger.info(f"Running {len(checks)} AWS checks in region {provider.region}")
    named = [(check.check_name, lambda c=check: c.execute(provider)) for check in checks]
    return run_checks(named, ctx)
