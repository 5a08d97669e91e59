"""
Git repository hygiene checks
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from ..core.command import run_command
from ..core.config import GitConfig
from ..core.context import RunContext
from ..core.errors import CommandError
from ..core.framework import Finding
from ..core.severity import Severity
from .base import Check, RunnerResult, run_checks

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 30.0
SECONDS_PER_DAY = 24 * 60 * 60
BYTES_PER_MB = 1024 * 1024

# count-objects -vH prints e.g. "size: 12.50 MiB" and "size-pack: 310 bytes"
SIZE_LINE = re.compile(r"^(size|size-pack):\s+(\d+(?:\.\d+)?)\s*([KMGT]i?B|bytes|B)?\s*$",
                       re.MULTILINE)

_UNIT_TO_MB = {
    "B": 1.0 / BYTES_PER_MB,
    "BYTES": 1.0 / BYTES_PER_MB,
    "KB": 1.0 / 1024,
    "KIB": 1.0 / 1024,
    "MB": 1.0,
    "MIB": 1.0,
    "GB": 1024.0,
    "GIB": 1024.0,
    "TB": 1024.0 * 1024,
    "TIB": 1024.0 * 1024,
}


def to_megabytes(value: float, unit: Optional[str]) -> float:
    """Convert a count-objects size to MB; no unit means bytes"""
    if not unit:
        return value / BYTES_PER_MB
    return value * _UNIT_TO_MB.get(unit.upper(), 1.0)


def parse_repo_size(output: str) -> Optional[float]:
    """Total of loose and packed object sizes in MB, or None if absent"""
    matches = SIZE_LINE.findall(output)
    if not matches:
        return None
    return sum(to_megabytes(float(value), unit) for _, value, unit in matches)


class GitClient:
    """Runs git inside one repository"""

    def __init__(self, repo_path: str = ".", timeout: float = GIT_TIMEOUT):
        self.repo_path = repo_path
        self.timeout = timeout

    def run(self, ctx: RunContext, *args: str) -> str:
        ctx.check()
        result = run_command(["git", *args], cwd=self.repo_path,
                             timeout=ctx.timeout_for(self.timeout))
        return result.stdout

    def is_repo(self, ctx: RunContext) -> bool:
        try:
            return self.run(ctx, "rev-parse", "--is-inside-work-tree").strip() == "true"
        except CommandError:
            return False

    def count_objects(self, ctx: RunContext) -> str:
        return self.run(ctx, "count-objects", "-vH")

    def branches(self, ctx: RunContext) -> str:
        return self.run(ctx, "branch", "-a", "--format=%(refname:short)|%(committerdate:unix)")

    def tree_with_sizes(self, ctx: RunContext) -> str:
        return self.run(ctx, "ls-tree", "-r", "-l", "HEAD")


class GitCheck(Check, ABC):
    def __init__(self, config: GitConfig = None):
        super().__init__()
        self.config = config or GitConfig()

    @abstractmethod
    def execute(self, client: GitClient, ctx: RunContext) -> List[Finding]:
        """Execute the check and return findings"""


class RepoSizeCheck(GitCheck):
    """Repository object store larger than repo_size_mb"""

    def __init__(self, config: GitConfig = None):
        super().__init__(config)
        self.check_name = "git-repo-size"
        self.severity = Severity.MEDIUM
        self.recommendation = "Consider using Git LFS for large files or cleaning up unnecessary objects"

    def execute(self, client: GitClient, ctx: RunContext) -> List[Finding]:
        size_mb = parse_repo_size(client.count_objects(ctx))
        if size_mb is None:
            logger.debug("Could not determine repository size; skipping")
            return []
        if size_mb <= self.config.repo_size_mb:
            return []
        return [self.create_finding(
            resource_id=client.repo_path,
            message=(f"Repository size {size_mb:.1f} MB exceeds threshold of "
                     f"{self.config.repo_size_mb} MB"),
        )]


class StaleBranchCheck(GitCheck):
    """Branches whose last commit is older than branch_age_days"""

    def __init__(self, config: GitConfig = None, now: Optional[float] = None):
        super().__init__(config)
        self.check_name = "git-stale-branch"
        self.severity = Severity.LOW
        self.recommendation = "Consider deleting stale branches or merging/updating them"
        self.now = now

    def execute(self, client: GitClient, ctx: RunContext) -> List[Finding]:
        findings = []
        now = self.now if self.now is not None else time.time()
        threshold = self.config.branch_age_days * SECONDS_PER_DAY

        for line in client.branches(ctx).splitlines():
            line = line.strip()
            if not line or "HEAD" in line:
                continue
            parts = line.split("|")
            if len(parts) != 2:
                continue

            branch = parts[0].strip()
            if branch.startswith("remotes/origin/"):
                branch = branch[len("remotes/origin/"):]
            try:
                committed = int(parts[1].strip())
            except ValueError:
                continue

            if now - committed > threshold:
                age_days = int((now - committed) // SECONDS_PER_DAY)
                findings.append(self.create_finding(
                    resource_id=branch,
                    message=(f"Branch has not been updated in over "
                             f"{self.config.branch_age_days} days ({age_days} days)"),
                ))
        return findings


class LargeFileCheck(GitCheck):
    """Tracked blobs at HEAD larger than large_file_mb"""

    def __init__(self, config: GitConfig = None):
        super().__init__(config)
        self.check_name = "git-large-file"
        self.severity = Severity.MEDIUM
        self.recommendation = "Consider using Git LFS for large files or removing from version control"

    def execute(self, client: GitClient, ctx: RunContext) -> List[Finding]:
        findings = []
        threshold = self.config.large_file_mb * BYTES_PER_MB

        # <mode> <type> <object> <size>\t<path>
        for line in client.tree_with_sizes(ctx).splitlines():
            meta, sep, path = line.partition("\t")
            if not sep:
                continue
            fields = meta.split()
            if len(fields) != 4 or fields[1] != "blob":
                continue
            try:
                size = int(fields[3])
            except ValueError:
                continue

            if size > threshold:
                findings.append(self.create_finding(
                    resource_id=path,
                    message=(f"File is {size / BYTES_PER_MB:.1f} MB, over the "
                             f"{self.config.large_file_mb} MB threshold"),
                ))
        return findings


def default_git_checks(config: GitConfig = None) -> List[GitCheck]:
    return [RepoSizeCheck(config), StaleBranchCheck(config), LargeFileCheck(config)]


class GitRunner:
    """Runs the git checks against one repository"""

    def __init__(self, config: GitConfig = None, repo_path: Optional[str] = None,
                 client: Optional[GitClient] = None, checks: Optional[List[GitCheck]] = None):
        self.config = config or GitConfig()
        self.client = client or GitClient(repo_path or self.config.repo_path)
        self.checks = checks if checks is not None else default_git_checks(self.config)

    def run_all(self, ctx: RunContext) -> RunnerResult:
        named = [(check.check_name, lambda c=check: c.execute(self.client, ctx))
                 for check in self.checks]
        return run_checks(named, ctx)
