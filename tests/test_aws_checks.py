"""
Tests for the AWS checks.

Uses moto to mock IAM and EC2 for live-API tests, and small fake clients
where moto cannot reproduce the account state (old keys, managed
policies, bucket encryption responses).
"""

from datetime import datetime, timedelta, timezone

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from devopsctl.checks.aws import default_aws_checks, run_aws_checks
from devopsctl.checks.ec2 import EBSEncryptionCheck, EBSUnattachedCheck, SecurityGroupOpenAccessCheck
from devopsctl.checks.iam import (
    ADMIN_POLICY_ARN,
    IAMAccessKeyAgeCheck,
    IAMAdminUserCheck,
    IAMUserWithoutMFACheck,
)
from devopsctl.checks.s3 import (
    S3BucketEncryptionCheck,
    S3BucketPublicCheck,
    S3BucketVersioningCheck,
)
from devopsctl.core.config import AWSConfig
from devopsctl.core.provider import AWSProvider, is_permission_error
from devopsctl.core.severity import Severity

REGION = "us-east-1"


def client_error(code, operation="Operation"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeProvider:
    region = REGION

    def __init__(self, **clients):
        self.clients = clients

    def get_client(self, service_name):
        return self.clients[service_name]


class FakePaginator:
    def __init__(self, pages=None, error=None):
        self.pages = pages or []
        self.error = error

    def paginate(self):
        if self.error is not None:
            raise self.error
        return iter(self.pages)


class FakeIAM:
    def __init__(self, users=None, keys=None, user_policies=None, groups=None,
                 group_policies=None, list_error=None):
        self.users = users or []
        self.keys = keys or {}
        self.user_policies = user_policies or {}
        self.groups = groups or {}
        self.group_policies = group_policies or {}
        self.list_error = list_error

    def get_paginator(self, operation):
        assert operation == "list_users"
        return FakePaginator([{"Users": [{"UserName": u} for u in self.users]}], self.list_error)

    def list_access_keys(self, UserName):
        return {"AccessKeyMetadata": self.keys.get(UserName, [])}

    def list_attached_user_policies(self, UserName):
        return {"AttachedPolicies": [{"PolicyArn": a} for a in self.user_policies.get(UserName, [])]}

    def list_groups_for_user(self, UserName):
        return {"Groups": [{"GroupName": g} for g in self.groups.get(UserName, [])]}

    def list_attached_group_policies(self, GroupName):
        return {"AttachedPolicies": [{"PolicyArn": a} for a in self.group_policies.get(GroupName, [])]}


class FakeS3:
    def __init__(self, buckets, acl_public=(), blocked=(), encrypted=(), versioned=(),
                 encryption_errors=None):
        self.buckets = buckets
        self.acl_public = set(acl_public)
        self.blocked = set(blocked)
        self.encrypted = set(encrypted)
        self.versioned = set(versioned)
        self.encryption_errors = encryption_errors or {}

    def list_buckets(self):
        return {"Buckets": [{"Name": b} for b in self.buckets]}

    def get_public_access_block(self, Bucket):
        if Bucket not in self.blocked:
            raise client_error("NoSuchPublicAccessBlockConfiguration")
        return {"PublicAccessBlockConfiguration": {
            "BlockPublicAcls": True,
            "BlockPublicPolicy": True,
            "IgnorePublicAcls": True,
            "RestrictPublicBuckets": True,
        }}

    def get_bucket_acl(self, Bucket):
        grants = [{"Grantee": {"Type": "CanonicalUser", "ID": "owner"}, "Permission": "FULL_CONTROL"}]
        if Bucket in self.acl_public:
            grants.append({
                "Grantee": {"Type": "Group", "URI": "http://acs.amazonaws.com/groups/global/AllUsers"},
                "Permission": "READ",
            })
        return {"Grants": grants}

    def get_bucket_encryption(self, Bucket):
        if Bucket in self.encryption_errors:
            raise client_error(self.encryption_errors[Bucket])
        if Bucket not in self.encrypted:
            raise client_error("ServerSideEncryptionConfigurationNotFoundError")
        return {"ServerSideEncryptionConfiguration": {"Rules": []}}

    def get_bucket_versioning(self, Bucket):
        return {"Status": "Enabled"} if Bucket in self.versioned else {}


@pytest.fixture
def moto_provider(aws_credentials):
    with mock_aws():
        yield AWSProvider(region=REGION)


class TestIAMChecks:

    def test_user_without_mfa(self, moto_provider):
        iam = boto3.client("iam", region_name=REGION)
        iam.create_user(UserName="alice")

        findings = IAMUserWithoutMFACheck().execute(moto_provider)

        assert len(findings) == 1
        assert findings[0].check_name == "iam-mfa-disabled"
        assert findings[0].severity is Severity.HIGH
        assert findings[0].resource_id == "alice"

    def test_no_users_no_findings(self, moto_provider):
        assert IAMUserWithoutMFACheck().execute(moto_provider) == []

    def test_permission_error_skips_check(self):
        provider = FakeProvider(iam=FakeIAM(list_error=client_error("AccessDenied", "ListUsers")))
        assert IAMUserWithoutMFACheck().execute(provider) == []

    def test_other_errors_propagate(self):
        provider = FakeProvider(iam=FakeIAM(list_error=client_error("Throttling", "ListUsers")))
        with pytest.raises(ClientError):
            IAMAdminUserCheck().execute(provider)

    def test_access_key_age(self):
        now = datetime.now(timezone.utc)
        keys = {"bob": [
            {"AccessKeyId": "AKIAFRESH", "Status": "Active", "CreateDate": now - timedelta(days=10)},
            {"AccessKeyId": "AKIAOLD", "Status": "Active", "CreateDate": now - timedelta(days=100)},
            {"AccessKeyId": "AKIAANCIENT", "Status": "Active", "CreateDate": now - timedelta(days=400)},
            {"AccessKeyId": "AKIAINACTIVE", "Status": "Inactive", "CreateDate": now - timedelta(days=400)},
        ]}
        provider = FakeProvider(iam=FakeIAM(users=["bob"], keys=keys))

        findings = IAMAccessKeyAgeCheck(key_age_days=90).execute(provider)

        by_key = {f.resource_id: f.severity for f in findings}
        assert by_key == {"AKIAOLD": Severity.MEDIUM, "AKIAANCIENT": Severity.HIGH}

    def test_admin_direct_and_through_group(self):
        provider = FakeProvider(iam=FakeIAM(
            users=["root-ish", "ops", "dev"],
            user_policies={"root-ish": [ADMIN_POLICY_ARN]},
            groups={"ops": ["admins"], "dev": ["readers"]},
            group_policies={"admins": [ADMIN_POLICY_ARN],
                            "readers": ["arn:aws:iam::aws:policy/ReadOnlyAccess"]},
        ))

        findings = IAMAdminUserCheck().execute(provider)

        assert sorted(f.resource_id for f in findings) == ["ops", "root-ish"]
        assert all(f.severity is Severity.CRITICAL for f in findings)


class TestS3Checks:

    def test_public_bucket(self):
        s3 = FakeS3(["open", "blocked-but-open-acl", "private"],
                    acl_public=["open", "blocked-but-open-acl"], blocked=["blocked-but-open-acl"])
        findings = S3BucketPublicCheck().execute(FakeProvider(s3=s3))
        assert [f.resource_id for f in findings] == ["open"]
        assert findings[0].severity is Severity.CRITICAL

    def test_missing_encryption(self):
        s3 = FakeS3(["plain", "sealed", "gone"], encrypted=["sealed"],
                    encryption_errors={"gone": "NoSuchBucket"})
        findings = S3BucketEncryptionCheck().execute(FakeProvider(s3=s3))
        assert [f.resource_id for f in findings] == ["plain"]
        assert findings[0].check_name == "s3-no-encryption"

    def test_unexpected_encryption_error_raises(self):
        s3 = FakeS3(["weird"], encryption_errors={"weird": "InternalError"})
        with pytest.raises(ClientError):
            S3BucketEncryptionCheck().execute(FakeProvider(s3=s3))

    def test_versioning_disabled(self):
        s3 = FakeS3(["a", "b"], versioned=["b"])
        findings = S3BucketVersioningCheck().execute(FakeProvider(s3=s3))
        assert [f.resource_id for f in findings] == ["a"]
        assert findings[0].severity is Severity.LOW


class TestEC2Checks:

    def test_security_group_rules(self, moto_provider):
        ec2 = boto3.client("ec2", region_name=REGION)
        ssh = ec2.create_security_group(GroupName="ssh", Description="ssh")["GroupId"]
        ec2.authorize_security_group_ingress(GroupId=ssh, IpPermissions=[{
            "IpProtocol": "tcp", "FromPort": 22, "ToPort": 22,
            "IpRanges": [{"CidrIp": "0.0.0.0/0"}],
        }])
        wide = ec2.create_security_group(GroupName="wide", Description="all")["GroupId"]
        ec2.authorize_security_group_ingress(GroupId=wide, IpPermissions=[{
            "IpProtocol": "-1",
            "IpRanges": [{"CidrIp": "0.0.0.0/0"}],
        }])
        web = ec2.create_security_group(GroupName="web", Description="https")["GroupId"]
        ec2.authorize_security_group_ingress(GroupId=web, IpPermissions=[{
            "IpProtocol": "tcp", "FromPort": 443, "ToPort": 443,
            "IpRanges": [{"CidrIp": "0.0.0.0/0"}],
        }])

        findings = SecurityGroupOpenAccessCheck().execute(moto_provider)

        by_group = {f.resource_id: f.check_name for f in findings}
        assert by_group == {ssh: "sg-ssh-open", wide: "sg-all-ports-open"}
        assert all(f.severity is Severity.CRITICAL for f in findings)

    def test_ipv6_open_ssh(self):
        class EC2:
            def get_paginator(self, operation):
                return FakePaginator([{"SecurityGroups": [{
                    "GroupId": "sg-6", "GroupName": "v6",
                    "IpPermissions": [{"IpProtocol": "tcp", "FromPort": 0, "ToPort": 1024,
                                       "IpRanges": [], "Ipv6Ranges": [{"CidrIpv6": "::/0"}]}],
                }]}])

        findings = SecurityGroupOpenAccessCheck().execute(FakeProvider(ec2=EC2()))
        assert [f.check_name for f in findings] == ["sg-ssh-open"]
        assert "::/0" in findings[0].message

    def test_ebs_volumes(self, moto_provider):
        ec2 = boto3.client("ec2", region_name=REGION)
        plain = ec2.create_volume(AvailabilityZone="us-east-1a", Size=8, Encrypted=False)["VolumeId"]
        sealed = ec2.create_volume(AvailabilityZone="us-east-1a", Size=8, Encrypted=True)["VolumeId"]

        unencrypted = EBSEncryptionCheck().execute(moto_provider)
        unattached = EBSUnattachedCheck().execute(moto_provider)

        assert [f.resource_id for f in unencrypted] == [plain]
        assert sorted(f.resource_id for f in unattached) == sorted([plain, sealed])


class TestRunner:

    def test_default_checks_cover_every_rule(self):
        names = [c.check_name for c in default_aws_checks(AWSConfig(key_age_days=30))]
        assert len(names) == 9
        assert "iam-old-access-key" in names
        key_check = [c for c in default_aws_checks(AWSConfig(key_age_days=30))
                     if isinstance(c, IAMAccessKeyAgeCheck)][0]
        assert key_check.key_age_days == 30

    def test_failing_check_does_not_stop_others(self, ctx):
        provider = FakeProvider(
            iam=FakeIAM(users=["carol"], list_error=client_error("Throttling", "ListUsers")),
            s3=FakeS3(["bucket"]),
        )
        checks = [IAMAdminUserCheck(), S3BucketVersioningCheck()]

        result = run_aws_checks(ctx, provider, checks=checks)

        assert [f.check_name for f in result.findings] == ["s3-versioning-disabled"]
        assert len(result.errors) == 1
        assert result.errors[0].startswith("iam-admin-access: ")
        assert "some checks failed" in str(result.error)

    def test_full_run_against_moto(self, moto_provider, ctx):
        boto3.client("iam", region_name=REGION).create_user(UserName="dave")

        result = run_aws_checks(ctx, moto_provider, AWSConfig())

        assert "iam-mfa-disabled" in {f.check_name for f in result.findings}
        assert result.errors == []


def test_permission_error_detection():
    assert is_permission_error(client_error("AccessDenied"))
    assert is_permission_error(client_error("UnauthorizedOperation"))
    assert not is_permission_error(client_error("Throttling"))
    assert not is_permission_error(ValueError("x"))
