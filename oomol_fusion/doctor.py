"""
Environment validation and diagnostics.

Usage:
    from oomol_fusion.doctor import run_doctor

    report = run_doctor()
    for check in report.failures():
        print(check.severity.value, check.name, check.message)
"""
from __future__ import annotations

import importlib.util
import logging
import platform
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from oomol_fusion.config import Settings, get_settings

logger = logging.getLogger(__name__)

MIN_PYTHON = (3, 9)
REQUIRED_PACKAGES = ("httpx", "pydantic")
OPTIONAL_PACKAGES = {"logfire": "telemetry"}

_validated = False


class Severity(str, Enum):
    ERROR = "error"  # the client cannot work
    WARNING = "warning"  # calls will fail or leak credentials
    INFO = "info"


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    message: str
    details: Optional[Dict[str, Any]] = None
    severity: Severity = Severity.ERROR


@dataclass
class DoctorReport:
    """Outcome of ``run_doctor``. Only failed error-level checks fail it."""

    checks: List[CheckResult] = field(default_factory=list)

    def add_check(self, check: CheckResult) -> None:
        self.checks.append(check)

    def failures(self, severity: Optional[Severity] = None) -> List[CheckResult]:
        return [
            c
            for c in self.checks
            if not c.passed and (severity is None or c.severity == severity)
        ]

    @property
    def errors(self) -> int:
        return len(self.failures(Severity.ERROR))

    @property
    def warnings(self) -> int:
        return len(self.failures(Severity.WARNING))

    @property
    def passed(self) -> bool:
        return self.errors == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "errors": self.errors,
            "warnings": self.warnings,
            "checks": [
                dict(vars(c), severity=Severity(c.severity).value) for c in self.checks
            ],
        }


def check_python_version() -> CheckResult:
    version = platform.python_version()
    ok = sys.version_info[:2] >= MIN_PYTHON
    required = ".".join(map(str, MIN_PYTHON))
    return CheckResult(
        name="python_version",
        passed=ok,
        message=f"Python {version}" if ok else f"Python {version} (requires {required}+)",
        details={"version": version, "required": f"{required}+"},
    )


def check_required_deps() -> CheckResult:
    missing = [pkg for pkg in REQUIRED_PACKAGES if importlib.util.find_spec(pkg) is None]
    if missing:
        return CheckResult(
            name="required_dependencies",
            passed=False,
            message=f"Missing: {', '.join(missing)}",
            details={"missing": missing},
        )
    return CheckResult(
        name="required_dependencies",
        passed=True,
        message=f"All {len(REQUIRED_PACKAGES)} required packages installed",
    )


def check_token(token: Optional[str]) -> CheckResult:
    if not token:
        return CheckResult(
            name="token",
            passed=False,
            message="No token configured (set FUSION_TOKEN or pass token=)",
            severity=Severity.WARNING,
        )
    return CheckResult(name="token", passed=True, message="Token configured")


def check_base_url(base_url: str) -> CheckResult:
    if base_url.startswith("https://"):
        return CheckResult(
            name="base_url", passed=True, message=base_url, severity=Severity.INFO
        )
    return CheckResult(
        name="base_url",
        passed=False,
        message=f"{base_url} is not https; the bearer token is sent in clear text",
        details={"base_url": base_url},
        severity=Severity.WARNING,
    )


def check_optional_deps() -> CheckResult:
    installed = [
        f"{pkg} ({purpose})"
        for pkg, purpose in OPTIONAL_PACKAGES.items()
        if importlib.util.find_spec(pkg)
    ]
    missing = [
        f"{pkg} ({purpose})"
        for pkg, purpose in OPTIONAL_PACKAGES.items()
        if not importlib.util.find_spec(pkg)
    ]
    return CheckResult(
        name="optional_dependencies",
        passed=True,
        message=f"{len(installed)} optional packages installed",
        details={"installed": installed, "available": missing},
        severity=Severity.INFO,
    )


def run_doctor(
    *,
    token: Optional[str] = None,
    base_url: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> DoctorReport:
    """Run all diagnostic checks. Explicit arguments override settings."""
    settings = settings or get_settings()
    report = DoctorReport()

    report.add_check(check_python_version())
    report.add_check(check_required_deps())
    report.add_check(check_token(token or settings.token))
    report.add_check(check_base_url(base_url or settings.base_url))
    report.add_check(check_optional_deps())

    return report


def validate_environment(
    *, token: Optional[str] = None, base_url: Optional[str] = None
) -> None:
    """
    Run the doctor once per process and log failed checks.

    Never raises: problems surface as log warnings, and as errors later when
    the affected call is made.
    """
    global _validated
    if _validated:
        return
    _validated = True
    report = run_doctor(token=token, base_url=base_url)
    for check in report.failures():
        logger.warning("[oomol_fusion] %s: %s", check.name, check.message)
