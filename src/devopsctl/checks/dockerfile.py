"""
Dockerfile parser and static checks
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List

from ..core.errors import DevopsctlError
from ..core.framework import Finding
from ..core.severity import Severity
from .base import Check

logger = logging.getLogger(__name__)

RISKY_PORTS = {
    22: "SSH",
    23: "Telnet",
    3306: "MySQL",
    5432: "PostgreSQL",
    6379: "Redis",
    27017: "MongoDB",
}

ROOT_USERS = ("0", "root")


@dataclass
class Instruction:
    """One logical Dockerfile instruction"""
    command: str
    args: str
    line: int


@dataclass
class ParsedDockerfile:
    path: str
    instructions: List[Instruction] = field(default_factory=list)

    def commands(self, command: str) -> List[Instruction]:
        return [instr for instr in self.instructions if instr.command == command]


def parse_lines(lines: Iterable[str], path: str = "Dockerfile") -> ParsedDockerfile:
    """Parse Dockerfile lines into instructions.

    Comments and blank lines are skipped unless they fall inside a
    backslash continuation. A continued instruction is joined into one
    logical line and reported at the line number where it started.
    Parser directives such as `# syntax=` are treated as comments.
    """
    parsed = ParsedDockerfile(path=path)
    accumulated = ""
    start_line = 0

    for line_num, raw in enumerate(lines, start=1):
        trimmed = raw.strip()

        if not accumulated and (not trimmed or trimmed.startswith("#")):
            continue

        if trimmed.endswith("\\"):
            if not accumulated:
                start_line = line_num
            accumulated += trimmed[:-1] + " "
            continue

        if accumulated:
            trimmed = (accumulated + trimmed).strip()
            accumulated = ""
        else:
            start_line = line_num

        if not trimmed:
            continue

        parts = trimmed.split(None, 1)
        args = parts[1].strip() if len(parts) == 2 else ""
        parsed.instructions.append(Instruction(parts[0].upper(), args, start_line))

    # A trailing continuation still counts as an instruction
    trailing = accumulated.strip()
    if trailing:
        parts = trailing.split(None, 1)
        args = parts[1].strip() if len(parts) == 2 else ""
        parsed.instructions.append(Instruction(parts[0].upper(), args, start_line))

    return parsed


def parse_dockerfile(path: str) -> ParsedDockerfile:
    try:
        with open(path, encoding="utf-8") as f:
            return parse_lines(f, path=path)
    except OSError as e:
        raise DevopsctlError(f"cannot open Dockerfile {path!r}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise DevopsctlError(f"cannot decode Dockerfile {path!r}: {e}") from e


def _location(dockerfile: ParsedDockerfile, instr: Instruction) -> str:
    return f"{dockerfile.path}:line{instr.line}"


class DockerfileCheck(Check, ABC):
    """A static check over a parsed Dockerfile"""

    @abstractmethod
    def execute(self, dockerfile: ParsedDockerfile) -> List[Finding]:
        """Execute the check and return findings"""


class LatestTagCheck(DockerfileCheck):
    """FROM with an untagged image or the mutable :latest tag"""

    def __init__(self):
        super().__init__()
        self.check_name = "dockerfile-latest-tag"
        self.severity = Severity.MEDIUM
        self.recommendation = "Pin image to a specific digest or immutable tag (e.g., ubuntu:22.04)"

    def execute(self, dockerfile: ParsedDockerfile) -> List[Finding]:
        findings = []
        for instr in dockerfile.commands("FROM"):
            fields = instr.args.split()
            if not fields:
                continue
            # "FROM ubuntu:latest AS builder" names the image first
            image = fields[0]
            if image.startswith("--platform=") and len(fields) > 1:
                image = fields[1]
            if image == "scratch" or "@" in image:
                continue

            # A colon before the last slash is a registry port, not a tag
            last_segment = image.rsplit("/", 1)[-1]
            if ":" not in last_segment:
                message = f'FROM uses untagged image "{image}" (defaults to :latest) at line {instr.line}'
            elif last_segment.split(":", 1)[1] == "latest":
                message = f'FROM uses mutable :latest tag: "{image}" at line {instr.line}'
            else:
                continue

            findings.append(self.create_finding(
                resource_id=_location(dockerfile, instr),
                message=message,
            ))
        return findings


class RunsAsRootCheck(DockerfileCheck):
    """No USER directive switches away from root"""

    def __init__(self):
        super().__init__()
        self.check_name = "dockerfile-runs-as-root"
        self.severity = Severity.HIGH
        self.recommendation = "Add a USER directive with a non-root user (e.g., USER 1001)"

    def execute(self, dockerfile: ParsedDockerfile) -> List[Finding]:
        for instr in dockerfile.commands("USER"):
            if instr.args.strip() not in ROOT_USERS:
                return []
        return [self.create_finding(
            resource_id=dockerfile.path,
            message="Dockerfile has no USER directive; container will run as root",
        )]


class NoHealthcheckCheck(DockerfileCheck):
    def __init__(self):
        super().__init__()
        self.check_name = "dockerfile-no-healthcheck"
        self.severity = Severity.LOW
        self.recommendation = "Add HEALTHCHECK to allow container orchestrators to monitor service health"

    def execute(self, dockerfile: ParsedDockerfile) -> List[Finding]:
        if dockerfile.commands("HEALTHCHECK"):
            return []
        return [self.create_finding(
            resource_id=dockerfile.path,
            message="Dockerfile has no HEALTHCHECK instruction",
        )]


class NoMultiStageCheck(DockerfileCheck):
    def __init__(self):
        super().__init__()
        self.check_name = "dockerfile-no-multi-stage"
        self.severity = Severity.LOW
        self.recommendation = "Consider multi-stage builds to reduce final image size and exclude build tools"

    def execute(self, dockerfile: ParsedDockerfile) -> List[Finding]:
        if len(dockerfile.commands("FROM")) >= 2:
            return []
        return [self.create_finding(
            resource_id=dockerfile.path,
            message="Dockerfile uses a single-stage build",
        )]


class RiskyExposeCheck(DockerfileCheck):
    """EXPOSE of a well-known sensitive service port"""

    def __init__(self):
        super().__init__()
        self.check_name = "dockerfile-risky-expose"
        self.severity = Severity.MEDIUM

    def execute(self, dockerfile: ParsedDockerfile) -> List[Finding]:
        findings = []
        for instr in dockerfile.commands("EXPOSE"):
            for token in instr.args.split():
                # "22/tcp" -> "22"
                try:
                    port = int(token.split("/")[0])
                except ValueError:
                    continue
                service = RISKY_PORTS.get(port)
                if service is None:
                    continue
                findings.append(self.create_finding(
                    resource_id=_location(dockerfile, instr),
                    message=f"EXPOSE includes risky port {port} ({service}) at line {instr.line}",
                    recommendation=f"Avoid exposing sensitive service port {port} unless intentional",
                ))
        return findings


def default_dockerfile_checks() -> List[DockerfileCheck]:
    return [
        LatestTagCheck(),
        RunsAsRootCheck(),
        NoHealthcheckCheck(),
        NoMultiStageCheck(),
        RiskyExposeCheck(),
    ]
