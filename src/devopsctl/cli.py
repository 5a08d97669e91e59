"""
devopsctl CLI Interface
Command-line interface for the infrastructure hygiene checks
"""

import logging
import sys
from typing import Dict, List, Optional

import click
from botocore.exceptions import BotoCoreError
from rich.console import Console
from rich.markup import escape

from . import __version__
from .checks.aws import run_aws_checks
from .checks.base import RunnerResult
from .checks.docker import run_docker_checks
from .checks.git import GitRunner
from .checks.terraform import run_terraform_checks
from .core.config import Config, default_config, find_config_file, load_config
from .core.context import RunContext
from .core.errors import DevopsctlError
from .core.filters import apply_filters
from .core.framework import Finding, Report
from .core.output import get_reporter, summary_to_json
from .core.provider import AWSProvider
from .core.scoring import compute_summary, exit_code, exit_code_for_findings
from .modules import build_engine

console = Console()
err_console = Console(stderr=True)

OUTPUT_FORMATS = ("table", "json", "markdown")


class CLIState:
    """Options shared by every command"""

    def __init__(self, config: Config, output_format: str, output: Optional[str], quiet: bool):
        self.config = config
        self.output_format = output_format
        self.output = output
        self.quiet = quiet

    def filter(self, findings: List[Finding]) -> List[Finding]:
        return apply_filters(findings, ignore=self.config.ignore.checks, quiet=self.quiet)


def _load_config(path: Optional[str]) -> Config:
    if not path:
        found = find_config_file()
        if found is None:
            return default_config()
        path = str(found)
    try:
        return load_config(path)
    except DevopsctlError as e:
        raise click.ClickException(f"failed to load config: {e}")


def _warn(message: str):
    err_console.print(f"[yellow]warning:[/yellow] {escape(message)}")


def _render(state: CLIState, reports: List[Report], errors: Optional[Dict[str, str]] = None,
            summary: Optional[str] = None):
    """Write reports, failed modules' error lines and an optional summary
    to --output or stdout"""
    errors = errors or {}
    reporter = get_reporter(state.output_format)
    try:
        with click.open_file(state.output or "-", "w", encoding="utf-8") as stream:
            for report in reports:
                reporter.render(stream, report)
                error = errors.get(report.module)
                if error:
                    stream.write(f"  [ERROR] {error}\n")
            if summary is not None:
                stream.write(f"\n{summary}\n")
    except OSError as e:
        raise click.ClickException(f"cannot open output file: {e}")


def _finish_single(state: CLIState, module: str, result: RunnerResult):
    if result.errors:
        _warn(f"some checks encountered errors: {result.error}")

    findings = state.filter(result.findings)
    _render(state, [Report(module=module, findings=findings)])

    code = exit_code_for_findings(findings)
    if code > 0:
        sys.exit(code)


@click.group()
@click.version_option(version=__version__, prog_name="devopsctl")
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='Config file (default is .devopsctl.yaml)')
@click.option('--format', 'output_format', type=click.Choice(OUTPUT_FORMATS),
              help='Output format: table, json or markdown')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write report to file')
@click.option('--quiet', '-q', is_flag=True, help='Only report CRITICAL and HIGH findings')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, config_path, output_format, json_output, output, quiet, verbose):
    """Infrastructure hygiene and DevOps validation toolkit.

    Run checks against AWS, Docker, Terraform and Git to identify
    security issues, misconfigurations and maintenance problems.
    """
    # Configure logging
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Reduce noise from boto3
    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    if output_format is None:
        output_format = "json" if json_output else "table"

    ctx.obj = CLIState(
        config=_load_config(config_path),
        output_format=output_format,
        output=output,
        quiet=quiet,
    )


@cli.group()
def audit():
    """Run audit checks"""


@audit.command("aws")
@click.pass_obj
def audit_aws(state: CLIState):
    """Audit AWS IAM, S3, EC2 security groups and EBS volumes"""
    aws_config = state.config.aws
    try:
        provider = AWSProvider(region=aws_config.region, profile=aws_config.profile)
    except BotoCoreError as e:
        raise click.ClickException(f"failed to initialize AWS clients: {e}")

    result = run_aws_checks(RunContext(), provider, aws_config)
    _finish_single(state, "aws", result)


@audit.command("docker")
@click.option('--file', 'dockerfile', help='Path to Dockerfile (overrides config)')
@click.option('--image', help='Container image to scan with Trivy')
@click.pass_obj
def audit_docker(state: CLIState, dockerfile, image):
    """Run static checks against a Dockerfile and optionally scan an image"""
    docker_config = state.config.docker
    if dockerfile:
        docker_config.dockerfile_path = dockerfile

    try:
        result = run_docker_checks(RunContext(), docker_config, image=image)
    except DevopsctlError as e:
        raise click.ClickException(f"docker audit: {e}")
    _finish_single(state, "docker", result)


@audit.command("git")
@click.option('--repo', help='Path to Git repository (defaults to config, then current directory)')
@click.pass_obj
def audit_git(state: CLIState, repo):
    """Audit a Git repository for size, stale branches and large files"""
    runner = GitRunner(state.config.git, repo_path=repo)
    result = runner.run_all(RunContext())
    _finish_single(state, "git", result)


@cli.group()
def validate():
    """Run validation checks against infrastructure code"""


@validate.command("terraform")
@click.option('--dir', 'tf_dir', help='Path to Terraform directory (defaults to config)')
@click.pass_obj
def validate_terraform(state: CLIState, tf_dir):
    """Validate Terraform configuration"""
    try:
        result = run_terraform_checks(RunContext(), state.config.terraform, tf_dir=tf_dir)
    except DevopsctlError as e:
        raise click.ClickException(str(e))
    _finish_single(state, "terraform", result)


@cli.command()
@click.option('--timeout', type=float, help='Overall deadline in seconds for the run')
@click.pass_obj
def doctor(state: CLIState, timeout):
    """Run all enabled checks and generate a health report"""
    engine = build_engine(state.config)
    run = engine.run_all(RunContext(timeout=timeout))
    if run.error is not None:
        _warn(f"some modules encountered errors: {run.error}")

    # summary and exit code use unfiltered findings
    summary = None
    if state.output_format == "json":
        summary = summary_to_json(compute_summary(run.reports))

    rendered = [Report(module=r.module, findings=[] if r.failed else state.filter(r.findings))
                for r in run.reports]
    _render(state, rendered,
            errors={r.module: r.error for r in run.reports if r.failed}, summary=summary)

    code = exit_code(run.reports)
    if code > 0:
        sys.exit(code)


@cli.command()
def version():
    """Print the version number"""
    console.print(f"devopsctl version {__version__}", markup=False, highlight=False)


def main():
    """Main CLI entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Run interrupted by user[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    main()
