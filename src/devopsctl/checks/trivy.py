"""
Container image vulnerability scan through the trivy CLI
"""

import json
import logging
from typing import List

from ..core.command import is_installed, run_command
from ..core.errors import CommandError
from ..core.framework import Finding

logger = logging.getLogger(__name__)

TRIVY = "trivy"
REPORTED_SEVERITIES = ("HIGH", "CRITICAL")
SCAN_TIMEOUT = 300.0


def parse_trivy_report(image: str, output: str) -> List[Finding]:
    """Turn `trivy image --format json` output into findings.

    Only HIGH and CRITICAL vulnerabilities are kept, whatever trivy was
    asked to report.
    """
    try:
        report = json.loads(output or "{}")
    except json.JSONDecodeError as e:
        raise CommandError("trivy image", f"failed to parse trivy output: {e}") from e

    findings = []
    for target in report.get("Results") or []:
        for vuln in target.get("Vulnerabilities") or []:
            severity = vuln.get("Severity", "")
            if severity not in REPORTED_SEVERITIES:
                continue
            pkg = vuln.get("PkgName", "")
            findings.append(Finding(
                check_name="trivy-image-vuln",
                severity=severity,
                resource_id=f"{image}/{pkg}",
                message=f"{vuln.get('VulnerabilityID', '')}: {vuln.get('Title', '')} ({pkg})",
                recommendation=f'Update package "{pkg}" to a patched version',
            ))
    return findings


def scan_image(image: str, timeout: float = SCAN_TIMEOUT) -> List[Finding]:
    """Scan an image for HIGH/CRITICAL vulnerabilities.

    Returns no findings when trivy is not installed.
    """
    if not is_installed(TRIVY):
        logger.warning("trivy not found on PATH; skipping image scan")
        return []

    result = run_command(
        [TRIVY, "image", "--format", "json",
         "--severity", ",".join(REPORTED_SEVERITIES), "--quiet", image],
        timeout=timeout,
    )
    return parse_trivy_report(image, result.stdout)
