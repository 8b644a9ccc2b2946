# SPDX-License-Identifier: MIT

"""Data model for compliance operator state and diagnosis output.

Everything here is a read-only view materialized from the cluster at call
time. Nothing is cached or persisted between calls.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from compliance_health.exceptions import UnknownEnumValueError


class _WireEnum(str, Enum):
    """Closed set of values parsed strictly from the API representation."""

    @classmethod
    def from_wire(cls, value: Any, required: bool = False):
        if value is None or value == "":
            if required:
                raise UnknownEnumValueError(cls.__name__, "")
            return None
        try:
            return cls(value)
        except ValueError:
            raise UnknownEnumValueError(cls.__name__, str(value)) from None


class ScanPhase(_WireEnum):
    PENDING = "PENDING"
    LAUNCHING = "LAUNCHING"
    RUNNING = "RUNNING"
    AGGREGATING = "AGGREGATING"
    DONE = "DONE"


class ScanResult(_WireEnum):
    NOT_AVAILABLE = "NOT-AVAILABLE"
    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON-COMPLIANT"
    ERROR = "ERROR"
    INCONSISTENT = "INCONSISTENT"
    NOT_APPLICABLE = "NOT-APPLICABLE"


class CheckStatus(_WireEnum):
    PASS = "PASS"
    FAIL = "FAIL"
    MANUAL = "MANUAL"
    ERROR = "ERROR"
    INFO = "INFO"


class ScanType(_WireEnum):
    NODE = "Node"
    PLATFORM = "Platform"


CHECK_SEVERITIES = ("low", "medium", "high", "unknown")


def _value(member: Enum | None) -> str | None:
    return member.value if member is not None else None


def _isoformat(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts else None


# =====================================================================
# Compliance resources
# =====================================================================

@dataclass(frozen=True)
class ScanStatusSummary:
    name: str
    phase: ScanPhase | None = None
    result: ScanResult | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "phase": _value(self.phase), "result": _value(self.result)}


@dataclass
class ComplianceSuite:
    name: str
    namespace: str = ""
    phase: ScanPhase | None = None
    result: ScanResult | None = None
    error_message: str = ""
    scan_statuses: list[ScanStatusSummary] = field(default_factory=list)
    auto_apply_remediations: bool = False
    schedule: str = ""
    labels: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "phase": _value(self.phase),
            "result": _value(self.result),
            "error_message": self.error_message,
            "scan_statuses": [s.to_dict() for s in self.scan_statuses],
            "auto_apply_remediations": self.auto_apply_remediations,
            "schedule": self.schedule,
        }


@dataclass
class ComplianceScan:
    name: str
    namespace: str = ""
    scan_type: ScanType | None = None
    profile: str = ""
    content: str = ""
    phase: ScanPhase | None = None
    result: ScanResult | None = None
    start_timestamp: datetime | None = None
    error_message: str = ""
    warnings: str = ""
    labels: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "scan_type": _value(self.scan_type),
            "profile": self.profile,
            "content": self.content,
            "phase": _value(self.phase),
            "result": _value(self.result),
            "start_timestamp": _isoformat(self.start_timestamp),
            "error_message": self.error_message,
            "warnings": self.warnings,
        }


@dataclass
class CheckResult:
    name: str
    status: CheckStatus
    severity: str = "unknown"
    description: str = ""
    instructions: str = ""
    rationale: str = ""
    check_id: str = ""
    labels: dict[str, str] = field(default_factory=dict)

    @property
    def severity_level(self) -> str:
        """Severity folded to lower case; anything unrecognized is ``unknown``."""
        level = (self.severity or "").lower()
        return level if level in CHECK_SEVERITIES else "unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "id": self.check_id,
            "status": _value(self.status),
            "severity": self.severity_level,
            "description": self.description,
            # Instructions only mean something for a failed check.
            "instructions": self.instructions if self.status == CheckStatus.FAIL else "",
        }


@dataclass
class Remediation:
    name: str
    apply: bool = False
    application_state: str = ""
    remediation_type: str = ""
    labels: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "apply": self.apply,
            "application_state": self.application_state,
            "type": self.remediation_type,
        }


# =====================================================================
# Pods and events
# =====================================================================

@dataclass(frozen=True)
class PodCondition:
    type: str
    status: str
    reason: str = ""
    message: str = ""


@dataclass(frozen=True)
class ContainerStatus:
    name: str
    restart_count: int = 0
    waiting_reason: str = ""
    waiting_message: str = ""
    last_terminated_reason: str = ""
    last_terminated_exit_code: int | None = None
    image: str = ""


@dataclass
class Pod:
    name: str
    namespace: str = ""
    phase: str = "Unknown"
    reason: str = ""
    message: str = ""
    conditions: list[PodCondition] = field(default_factory=list)
    containers: list[ContainerStatus] = field(default_factory=list)

    def condition(self, cond_type: str) -> PodCondition | None:
        for cond in self.conditions:
            if cond.type == cond_type:
                return cond
        return None

    @property
    def ready(self) -> bool:
        cond = self.condition("Ready")
        return cond is not None and cond.status == "True"

    @property
    def restart_count(self) -> int:
        return sum(c.restart_count for c in self.containers)


@dataclass(frozen=True)
class Event:
    type: str
    reason: str = ""
    message: str = ""
    involved_kind: str = ""
    involved_name: str = ""
    count: int = 1


# =====================================================================
# Diagnosis output
# =====================================================================

class IssueType(str, Enum):
    STUCK_SCAN = "StuckScan"
    FAILED_POD = "FailedPod"
    PERMISSION = "Permission"
    RESOURCE_CONSTRAINT = "ResourceConstraint"
    OUT_OF_MEMORY = "OutOfMemory"
    MISCONFIGURATION = "Misconfiguration"


class IssueSeverity(str, Enum):
    CRITICAL = "Critical"
    WARNING = "Warning"
    INFO = "Info"

    @property
    def sort_order(self) -> int:
        return {IssueSeverity.CRITICAL: 0, IssueSeverity.WARNING: 1, IssueSeverity.INFO: 2}[self]


@dataclass(frozen=True)
class Issue:
    type: IssueType
    severity: IssueSeverity
    description: str
    resources: tuple[str, ...]
    suggestion: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.resources, str):
            raise TypeError("resources must be a sequence of names, not a single string")
        if not self.resources:
            raise ValueError("an issue must name at least one affected resource")
        object.__setattr__(self, "resources", tuple(self.resources))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "resources": list(self.resources),
            "suggestion": self.suggestion,
        }


@dataclass
class DiagnosisResult:
    issues: list[Issue] = field(default_factory=list)
    warnings: list[Issue] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "issues": [i.to_dict() for i in self.issues],
            "warnings": [w.to_dict() for w in self.warnings],
            "suggestions": list(self.suggestions),
        }


# =====================================================================
# Snapshots
# =====================================================================

@dataclass(frozen=True)
class PodSummary:
    name: str
    phase: str
    ready: bool
    restarts: int
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "phase": self.phase,
            "ready": self.ready,
            "restarts": self.restarts,
            "reason": self.reason,
        }


@dataclass
class OperatorHealth:
    is_healthy: bool = True
    operator_pods: list[PodSummary] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_healthy": self.is_healthy,
            "operator_pods": [p.to_dict() for p in self.operator_pods],
            "issues": list(self.issues),
        }


@dataclass
class ComplianceSnapshot:
    suites: list[ComplianceSuite] = field(default_factory=list)
    scans: dict[str, ComplianceScan] = field(default_factory=dict)
    check_results: dict[str, list[CheckResult]] = field(default_factory=dict)
    remediations: dict[str, list[Remediation]] = field(default_factory=dict)
    operator_health: OperatorHealth = field(default_factory=OperatorHealth)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "suites": [s.to_dict() for s in self.suites],
            "scans": {name: s.to_dict() for name, s in self.scans.items()},
            "check_counts": {name: count_checks(r).to_dict() for name, r in self.check_results.items()},
            "remediation_counts": {name: len(r) for name, r in self.remediations.items()},
            "operator_health": self.operator_health.to_dict(),
        }


@dataclass
class SuiteData:
    suite: ComplianceSuite
    scans: list[ComplianceScan] = field(default_factory=list)
    check_results: dict[str, list[CheckResult]] = field(default_factory=dict)
    remediations: dict[str, list[Remediation]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "suite": self.suite.to_dict(),
            "scans": [s.to_dict() for s in self.scans],
            "check_counts": {name: count_checks(r).to_dict() for name, r in self.check_results.items()},
            "remediation_counts": {name: len(r) for name, r in self.remediations.items()},
        }


# =====================================================================
# Aggregates
# =====================================================================

@dataclass(frozen=True)
class CheckCounts:
    passed: int = 0
    failed: int = 0
    manual: int = 0
    error: int = 0
    info: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.manual + self.error + self.info

    def __add__(self, other: CheckCounts) -> CheckCounts:
        return CheckCounts(
            passed=self.passed + other.passed,
            failed=self.failed + other.failed,
            manual=self.manual + other.manual,
            error=self.error + other.error,
            info=self.info + other.info,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "pass": self.passed,
            "fail": self.failed,
            "manual": self.manual,
            "error": self.error,
            "info": self.info,
            "total": self.total,
        }


def count_checks(results: Iterable[CheckResult]) -> CheckCounts:
    tally = Counter(r.status for r in results)
    return CheckCounts(
        passed=tally[CheckStatus.PASS],
        failed=tally[CheckStatus.FAIL],
        manual=tally[CheckStatus.MANUAL],
        error=tally[CheckStatus.ERROR],
        info=tally[CheckStatus.INFO],
    )


def compliance_percentage(counts: CheckCounts) -> float:
    """Share of passing checks among the automatable ones (PASS + FAIL)."""
    automated = counts.passed + counts.failed
    if automated == 0:
        return 0.0
    return 100.0 * counts.passed / automated


def count_scan_results(statuses: Iterable[ScanStatusSummary]) -> list[tuple[ScanResult, int]]:
    """Scan results tallied in the fixed ScanResult order, zero counts dropped."""
    tally = Counter(s.result for s in statuses)
    return [(result, tally[result]) for result in ScanResult if tally[result]]
