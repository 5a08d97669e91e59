"""
Docker runner: Dockerfile static checks plus an optional image scan
"""

import logging
from typing import List

from ..core.config import DockerConfig
from ..core.context import RunContext
from .base import RunnerResult, run_checks
from .dockerfile import DockerfileCheck, default_dockerfile_checks, parse_dockerfile
from .trivy import SCAN_TIMEOUT, scan_image

logger = logging.getLogger(__name__)


def run_docker_checks(ctx: RunContext, config: DockerConfig = None,
                      image: str = None, checks: List[DockerfileCheck] = None) -> RunnerResult:
    """Run the Dockerfile checks and, when an image is given, a trivy scan.

    An unreadable Dockerfile raises; a failed scan is recorded as a
    partial error alongside the static findings.
    """
    config = config or DockerConfig()
    image = image if image is not None else config.image
    if checks is None:
        checks = default_dockerfile_checks()

    ctx.check()
    dockerfile = parse_dockerfile(config.dockerfile_path)
    logger.info(f"Parsed {len(dockerfile.instructions)} instructions from {dockerfile.path}")

    named = [(check.check_name, lambda c=check: c.execute(dockerfile)) for check in checks]
    if image:
        named.append(("trivy-image-vuln",
                      lambda: scan_image(image, timeout=ctx.timeout_for(SCAN_TIMEOUT))))
    return run_checks(named, ctx)
