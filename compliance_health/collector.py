# SPDX-License-Identifier: MIT

"""Point-in-time snapshot of compliance operator state.

Suites anchor the view, so failing to list them fails the collection.
Per-scan check result and remediation reads are best effort: a scan whose
sub-read fails stays in the snapshot and is only missing from the affected
map.
"""

from __future__ import annotations

import logging
from typing import Any

from compliance_health.exceptions import ComplianceError
from compliance_health.models import (
    ComplianceScan,
    ComplianceSnapshot,
    OperatorHealth,
    PodSummary,
    SuiteData,
)

logger = logging.getLogger("compliance_health.collector")

RESTART_WARN = 5


class Collector:
    def __init__(self, client: Any) -> None:
        self.client = client

    def collect_all(self) -> ComplianceSnapshot:
        snap = ComplianceSnapshot()
        snap.suites = self.client.list_suites()

        for scan in self.client.list_scans():
            snap.scans[scan.name] = scan
        self._collect_scan_children(snap.scans.values(), snap.check_results, snap.remediations)

        snap.operator_health = self.collect_operator_health()
        logger.debug("collected %d suites, %d scans", len(snap.suites), len(snap.scans))
        return snap

    def collect_suite(self, name: str) -> SuiteData:
        data = SuiteData(suite=self.client.get_suite(name))
        data.scans = self.client.list_scans(suite_name=name)
        self._collect_scan_children(data.scans, data.check_results, data.remediations)
        return data

    def _collect_scan_children(self, scans, check_results, remediations):
        for scan in scans:
            _fill(check_results, scan, self.client.list_check_results, "check results")
            _fill(remediations, scan, self.client.list_remediations, "remediations")

    def collect_operator_health(self) -> OperatorHealth:
        health = OperatorHealth()
        pods = self.client.list_operator_pods()
        if not pods:
            health.is_healthy = False
            health.issues.append("No compliance operator pods found")
            return health

        for pod in pods:
            ready = pod.ready
            reason = ""
            if pod.phase != "Running":
                health.is_healthy = False
                reason = pod.phase
                health.issues.append(f"Pod {pod.name} is in phase {pod.phase}")
            if not ready:
                health.is_healthy = False
                health.issues.append(f"Pod {pod.name} is not ready")
            for cs in pod.containers:
                if cs.restart_count > RESTART_WARN:
                    health.issues.append(
                        f"Pod {pod.name} container {cs.name} has restarted {cs.restart_count} times"
                    )
            health.operator_pods.append(PodSummary(
                name=pod.name, phase=pod.phase, ready=ready,
                restarts=pod.restart_count, reason=reason,
            ))
        return health


def _fill(target: dict, scan: ComplianceScan, fetch, what: str) -> None:
    try:
        target[scan.name] = fetch(scan.name)
    except ComplianceError as exc:
        logger.debug("omitting %s for scan %s: %s", what, scan.name, exc)
