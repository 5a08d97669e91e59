"""
Module wrappers that let the engine run each domain runner
"""

import logging
from typing import List, Optional

from .checks.aws import run_aws_checks
from .checks.base import RunnerResult
from .checks.docker import run_docker_checks
from .checks.git import GitClient, GitRunner
from .checks.terraform import run_terraform_checks
from .core.config import AWSConfig, Config, DockerConfig, GitConfig, TerraformConfig
from .core.context import RunContext
from .core.engine import Engine
from .core.errors import DevopsctlError
from .core.framework import Finding
from .core.provider import AWSProvider

logger = logging.getLogger(__name__)


def _collect(name: str, result: RunnerResult) -> List[Finding]:
    """A runner's partial errors are logged; its findings still count"""
    if result.errors:
        logger.warning(f"Module {name}: {result.error}")
    return result.findings


class AWSModule:
    name = "aws"

    def __init__(self, config: AWSConfig = None, provider: Optional[AWSProvider] = None):
        self.config = config or AWSConfig()
        self.provider = provider

    def run(self, ctx: RunContext) -> List[Finding]:
        if self.provider is None:
            self.provider = AWSProvider(region=self.config.region, profile=self.config.profile)
        return _collect(self.name, run_aws_checks(ctx, self.provider, self.config))


class DockerModule:
    name = "docker"

    def __init__(self, config: DockerConfig = None):
        self.config = config or DockerConfig()

    def run(self, ctx: RunContext) -> List[Finding]:
        return _collect(self.name, run_docker_checks(ctx, self.config))


class TerraformModule:
    name = "terraform"

    def __init__(self, config: TerraformConfig = None):
        self.config = config or TerraformConfig()

    def run(self, ctx: RunContext) -> List[Finding]:
        return _collect(self.name, run_terraform_checks(ctx, self.config))


class GitModule:
    name = "git"

    def __init__(self, config: GitConfig = None, client: Optional[GitClient] = None):
        self.config = config or GitConfig()
        self.client = client or GitClient(self.config.repo_path)

    def run(self, ctx: RunContext) -> List[Finding]:
        if not self.client.is_repo(ctx):
            raise DevopsctlError(f"not a git repository: {self.client.repo_path}")
        runner = GitRunner(self.config, client=self.client)
        return _collect(self.name, runner.run_all(ctx))


def build_modules(config: Config) -> list:
    """Modules enabled in the configuration, in doctor order"""
    modules = []
    if config.aws.enabled:
        modules.append(AWSModule(config.aws))
    if config.docker.enabled:
        modules.append(DockerModule(config.docker))
    if config.terraform.enabled:
        modules.append(TerraformModule(config.terraform))
    if config.git.enabled:
        modules.append(GitModule(config.git))
    return modules


def build_engine(config: Config, engine: Optional[Engine] = None) -> Engine:
    engine = engine or Engine()
    for module in build_modules(config):
        engine.register(module)
    return engine
