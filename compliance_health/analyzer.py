# SPDX-License-Identifier: MIT

"""Root-cause analysis for the compliance operator.

Each rule is a pure function ``(ClusterView) -> list[Issue]``. The Analyzer
fetches a fresh ClusterView, runs every rule in RULES and buckets the
combined output by severity. Rules are independent: the same underlying
problem may legitimately surface as several issue types.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from compliance_health.exceptions import ComplianceError
from compliance_health.models import (
    ComplianceScan,
    DiagnosisResult,
    Event,
    Issue,
    IssueSeverity,
    IssueType,
    Pod,
    ScanPhase,
    ScanResult,
)

logger = logging.getLogger("compliance_health.analyzer")

RUNNING_STUCK_AFTER = timedelta(minutes=30)
LAUNCHING_STUCK_AFTER = timedelta(minutes=10)
RESTART_WARN = 5
IMAGE_PULL_REASONS = {"ImagePullBackOff", "ErrImagePull"}
PERMISSION_KEYWORDS = (
    "Forbidden",
    "Unauthorized",
    "denied",
    "insufficient permissions",
    "cannot create",
    "cannot get",
    "cannot list",
)
NO_ISSUES = "No issues detected. Compliance operator appears to be functioning normally."


@dataclass
class ClusterView:
    """Everything the rules look at, fetched once per analysis run."""

    scans: list[ComplianceScan] = field(default_factory=list)
    scanner_pods: dict[str, list[Pod]] = field(default_factory=dict)
    scan_events: dict[str, list[Event]] = field(default_factory=dict)
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def pods(self):
        for scan in self.scans:
            yield from self.scanner_pods.get(scan.name, [])


def _critical(issue_type, description, resources, suggestion):
    return Issue(issue_type, IssueSeverity.CRITICAL, description, tuple(resources), suggestion)


def _fmt_elapsed(elapsed: timedelta) -> str:
    minutes = int(round(elapsed.total_seconds() / 60))
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes}m" if hours else f"{minutes}m"


# =====================================================================
# Rules
# =====================================================================

def detect_stuck_scans(view: ClusterView) -> list[Issue]:
    issues = []
    for scan in view.scans:
        if scan.start_timestamp is None:
            continue
        elapsed = view.now - scan.start_timestamp
        if scan.phase == ScanPhase.RUNNING and elapsed > RUNNING_STUCK_AFTER:
            issues.append(_critical(
                IssueType.STUCK_SCAN,
                f"Scan '{scan.name}' has been in RUNNING phase for {_fmt_elapsed(elapsed)}",
                [scan.name],
                "Check scanner pod logs and events. The scan may be stuck due to pod failures, "
                "resource constraints, or permission issues.",
            ))
        elif scan.phase == ScanPhase.LAUNCHING and elapsed > LAUNCHING_STUCK_AFTER:
            issues.append(_critical(
                IssueType.STUCK_SCAN,
                f"Scan '{scan.name}' stuck in LAUNCHING phase for {_fmt_elapsed(elapsed)}",
                [scan.name],
                "Check if scanner pods are being created. Look for resource constraints "
                "or ImagePullBackOff errors.",
            ))
    return issues


def detect_scan_errors(view: ClusterView) -> list[Issue]:
    return [
        _critical(
            IssueType.FAILED_POD,
            f"Scan '{scan.name}' completed with ERROR result: {scan.error_message or 'no error message reported'}",
            [scan.name],
            "Review scan logs and error message. Common causes include missing content, "
            "invalid profiles, or scanner pod failures.",
        )
        for scan in view.scans
        if scan.result == ScanResult.ERROR
    ]


def detect_failed_pods(view: ClusterView) -> list[Issue]:
    issues = []
    for pod in view.pods():
        if pod.phase == "Failed":
            issues.append(_critical(
                IssueType.FAILED_POD,
                f"Scanner pod '{pod.name}' failed with reason: {pod.reason or 'unknown'}",
                [pod.name],
                "Check pod logs for error details. The scanner may have encountered an error "
                "during scan execution.",
            ))
        for cs in pod.containers:
            if cs.waiting_reason in IMAGE_PULL_REASONS:
                issues.append(_critical(
                    IssueType.FAILED_POD,
                    f"Pod '{pod.name}' cannot pull image: {cs.waiting_message or cs.waiting_reason}",
                    [pod.name],
                    "Verify image name and registry credentials. Check network connectivity "
                    "to image registry.",
                ))
            elif cs.waiting_reason == "CrashLoopBackOff":
                issues.append(_critical(
                    IssueType.FAILED_POD,
                    f"Pod '{pod.name}' is crash looping (container '{cs.name}')",
                    [pod.name],
                    "Check container logs for crash details. The scanner may be encountering "
                    "a runtime error.",
                ))
        for cs in pod.containers:
            if cs.restart_count > RESTART_WARN:
                issues.append(Issue(
                    IssueType.FAILED_POD, IssueSeverity.WARNING,
                    f"Container '{cs.name}' in pod '{pod.name}' has restarted {cs.restart_count} times",
                    (pod.name,),
                    "Investigate why the container is restarting. Check logs for errors.",
                ))
    return issues


def detect_oom_kills(view: ClusterView) -> list[Issue]:
    return [
        _critical(
            IssueType.OUT_OF_MEMORY,
            f"Container '{cs.name}' in pod '{pod.name}' was killed due to out of memory",
            [pod.name],
            "Increase memory limits for scanner pods in ScanSetting. The scan requires more "
            "memory than allocated.",
        )
        for pod in view.pods()
        for cs in pod.containers
        if cs.last_terminated_reason == "OOMKilled"
    ]


def detect_resource_constraints(view: ClusterView) -> list[Issue]:
    issues = []
    for pod in view.pods():
        if pod.phase != "Pending":
            continue
        cond = pod.condition("PodScheduled")
        if cond is None or cond.status != "False":
            continue
        if "Insufficient" in cond.reason or "Insufficient" in cond.message:
            issues.append(_critical(
                IssueType.RESOURCE_CONSTRAINT,
                f"Pod '{pod.name}' cannot be scheduled: {cond.message or cond.reason}",
                [pod.name],
                "Increase cluster resources or reduce scanner pod resource requests in ScanSetting.",
            ))
    return issues


def detect_permission_issues(view: ClusterView) -> list[Issue]:
    issues = []
    for scan in view.scans:
        for event in view.scan_events.get(scan.name, []):
            if event.type != "Warning":
                continue
            if any(keyword in event.message for keyword in PERMISSION_KEYWORDS):
                resources = [scan.name]
                if event.involved_name:
                    resources.append(event.involved_name)
                issues.append(_critical(
                    IssueType.PERMISSION,
                    f"Permission issue in scan '{scan.name}': {event.message}",
                    resources,
                    "Check ServiceAccount permissions and RBAC configuration. The compliance "
                    "operator may not have sufficient permissions.",
                ))
    return issues


RULES: list[Callable[[ClusterView], list[Issue]]] = [
    detect_stuck_scans,
    detect_scan_errors,
    detect_failed_pods,
    detect_oom_kills,
    detect_resource_constraints,
    detect_permission_issues,
]


def diagnose(view: ClusterView, rules=None) -> DiagnosisResult:
    found: list[Issue] = []
    for rule in rules if rules is not None else RULES:
        found.extend(rule(view))

    result = DiagnosisResult()
    for issue in found:
        if issue.severity == IssueSeverity.CRITICAL:
            result.issues.append(issue)
        else:
            result.warnings.append(issue)
    if not result.issues and not result.warnings:
        result.suggestions.append(NO_ISSUES)
    return result


def analyze_scan_failure(scan: ComplianceScan) -> list[Issue]:
    """Issues for a single finished scan, outside the bulk analysis.

    An ERROR scan is also reported by ``detect_scan_errors``; output from the
    two is not merged.
    """
    if scan.result == ScanResult.ERROR:
        return [_critical(
            IssueType.FAILED_POD,
            f"Scan '{scan.name}' failed: {scan.error_message or 'no error message reported'}",
            [scan.name],
            "Review the error message and check scanner pod logs for more details.",
        )]
    if scan.result == ScanResult.NON_COMPLIANT:
        return [Issue(
            IssueType.MISCONFIGURATION, IssueSeverity.WARNING,
            f"Scan '{scan.name}' found compliance violations",
            (scan.name,),
            "Review failed checks and apply available remediations. Some checks may require "
            "manual remediation.",
        )]
    return []


class Analyzer:
    def __init__(self, client: Any) -> None:
        self.client = client

    def build_view(self) -> ClusterView:
        view = ClusterView(scans=self.client.list_scans())
        for scan in view.scans:
            try:
                view.scanner_pods[scan.name] = self.client.list_scanner_pods(scan.name)
            except ComplianceError as exc:
                logger.debug("skipping pod checks for scan %s: %s", scan.name, exc)
            try:
                view.scan_events[scan.name] = self.client.list_events("ComplianceScan", scan.name)
            except ComplianceError as exc:
                logger.debug("skipping event checks for scan %s: %s", scan.name, exc)
        return view

    def analyze_all(self) -> DiagnosisResult:
        view = self.build_view()
        result = diagnose(view)
        logger.debug("diagnosis: %d critical, %d warnings across %d scans",
                      len(result.issues), len(result.warnings), len(view.scans))
        return result
