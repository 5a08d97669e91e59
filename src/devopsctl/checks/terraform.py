"""
Terraform configuration checks
"""

import logging
import os
import re
from glob import glob
from typing import List, Optional

from ..core.command import is_installed, run_command
from ..core.config import TerraformConfig
from ..core.context import RunContext
from ..core.errors import DevopsctlError
from ..core.framework import Finding
from ..core.severity import Severity
from .base import RunnerResult, run_checks

logger = logging.getLogger(__name__)

TERRAFORM = "terraform"
FMT_TIMEOUT = 60.0
VALIDATE_TIMEOUT = 120.0

CREDENTIAL_PATTERNS = (
    ("aws_access_key", re.compile(r"AKIA[0-9A-Z]{16}")),
    ("aws_secret_key", re.compile(r'"[A-Za-z0-9/+=]{40}"')),
    ("password", re.compile(r'password\s*=\s*"[^"]+"')),
    ("api_key", re.compile(r'api_key\s*=\s*"[^"]+"')),
    ("secret", re.compile(r'secret\s*=\s*"[^"]+"')),
)

VERSION_CONSTRAINT = re.compile(r"\bversion\s*=")


class TerraformChecker:
    """Checks the *.tf files of one directory.

    The fmt and validate checks shell out to terraform and are skipped
    when it is not installed; the provider and credential checks only
    read the files.
    """

    def __init__(self, working_dir: str = "."):
        self.working_dir = working_dir

    def validate_dir(self):
        if not os.path.isdir(self.working_dir):
            raise DevopsctlError(f"terraform directory not found: {self.working_dir}")

    def tf_files(self) -> List[str]:
        return sorted(glob(os.path.join(self.working_dir, "*.tf")))

    def _read(self, path: str) -> Optional[str]:
        try:
            with open(path, encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            logger.debug(f"Could not read {path}: {e}")
            return None
        except UnicodeDecodeError as e:
            logger.warning(f"Skipping {path}: not valid UTF-8 ({e})")
            return None

    def check_format(self, ctx: RunContext) -> List[Finding]:
        if not is_installed(TERRAFORM):
            logger.warning("terraform not found on PATH; skipping terraform-fmt")
            return []

        result = run_command([TERRAFORM, "fmt", "-check", "-recursive"],
                             cwd=self.working_dir, timeout=ctx.timeout_for(FMT_TIMEOUT),
                             check=False)
        if result.returncode == 0:
            return []

        unformatted = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        message = "Terraform files are not properly formatted"
        if unformatted:
            message = f"{message}: {', '.join(unformatted)}"
        return [Finding(
            check_name="terraform-fmt",
            severity=Severity.MEDIUM,
            resource_id=self.working_dir,
            message=message,
            recommendation="Run 'terraform fmt' to fix formatting",
        )]

    def check_validate(self, ctx: RunContext) -> List[Finding]:
        if not is_installed(TERRAFORM):
            logger.warning("terraform not found on PATH; skipping terraform-validate")
            return []

        result = run_command([TERRAFORM, "validate", "-no-color"],
                             cwd=self.working_dir, timeout=ctx.timeout_for(VALIDATE_TIMEOUT),
                             check=False)
        if result.returncode == 0:
            return []

        logger.debug(f"terraform validate output: {result.stderr.strip()}")
        return [Finding(
            check_name="terraform-validate",
            severity=Severity.HIGH,
            resource_id=self.working_dir,
            message="Terraform configuration is invalid",
            recommendation="Fix terraform validation errors",
        )]

    def check_provider_versions(self) -> List[Finding]:
        findings = []
        for path in self.tf_files():
            content = self._read(path)
            if content is None:
                continue
            if "required_providers" in content and not VERSION_CONSTRAINT.search(content):
                findings.append(Finding(
                    check_name="provider-version",
                    severity=Severity.MEDIUM,
                    resource_id=path,
                    message="Provider version constraint not found",
                    recommendation="Add version constraint to provider configuration",
                ))
        return findings

    def check_credentials(self) -> List[Finding]:
        findings = []
        for path in self.tf_files():
            content = self._read(path)
            if content is None:
                continue
            for cred_type, pattern in CREDENTIAL_PATTERNS:
                if pattern.search(content):
                    findings.append(Finding(
                        check_name="hardcoded-credentials",
                        severity=Severity.CRITICAL,
                        resource_id=path,
                        message=f"Hardcoded {cred_type} detected",
                        recommendation="Use environment variables or secret management instead",
                    ))
        return findings


def run_terraform_checks(ctx: RunContext, config: TerraformConfig = None,
                         tf_dir: Optional[str] = None) -> RunnerResult:
    """Run all terraform checks; a missing directory raises"""
    config = config or TerraformConfig()
    checker = TerraformChecker(tf_dir or config.tf_dir)
    checker.validate_dir()

    logger.info(f"Checking {len(checker.tf_files())} terraform files in {checker.working_dir}")
    return run_checks([
        ("terraform-fmt", lambda: checker.check_format(ctx)),
        ("terraform-validate", lambda: checker.check_validate(ctx)),
        ("provider-version", checker.check_provider_versions),
        ("hardcoded-credentials", checker.check_credentials),
    ], ctx)
