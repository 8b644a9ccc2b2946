"""
tests/conftest.py -- Shared fixtures: an in-memory stand-in for ComplianceClient.

FakeClient serves canned suites/scans/pods/events and can be told to fail
specific reads, so collector and analyzer behaviour can be checked without a
cluster.
"""

from __future__ import annotations

import pytest

from compliance_health.exceptions import ResourceNotFoundError, TransportError
from compliance_health.models import (
    ContainerStatus,
    Pod,
    PodCondition,
)


class FakeClient:
    def __init__(self):
        self.suites = []
        self.scans = []
        self.check_results = {}
        self.remediations = {}
        self.operator_pods = []
        self.scanner_pods = {}
        self.events = {}
        self.logs = {}
        self.fail = set()
        self.calls = []

    def _maybe_fail(self, key):
        self.calls.append(key)
        if key in self.fail:
            raise TransportError(key, "connection refused")

    def list_suites(self):
        self._maybe_fail("suites")
        return list(self.suites)

    def get_suite(self, name):
        self._maybe_fail(f"suite:{name}")
        for suite in self.suites:
            if suite.name == name:
                return suite
        raise ResourceNotFoundError("ComplianceSuite", name)

    def list_scans(self, suite_name=None):
        self._maybe_fail("scans")
        if suite_name is None:
            return list(self.scans)
        return [s for s in self.scans if s.labels.get("compliance.openshift.io/suite") == suite_name]

    def get_scan(self, name):
        for scan in self.scans:
            if scan.name == name:
                return scan
        raise ResourceNotFoundError("ComplianceScan", name)

    def list_check_results(self, scan_name=None, status=None):
        self._maybe_fail(f"checks:{scan_name}")
        results = self.check_results.get(scan_name, [])
        if status is not None:
            results = [r for r in results if r.status == status]
        return list(results)

    def list_remediations(self, scan_name=None):
        self._maybe_fail(f"remediations:{scan_name}")
        if scan_name is None:
            return [r for rems in self.remediations.values() for r in rems]
        return list(self.remediations.get(scan_name, []))

    def list_operator_pods(self):
        self._maybe_fail("operator-pods")
        return list(self.operator_pods)

    def list_scanner_pods(self, scan_name):
        self._maybe_fail(f"pods:{scan_name}")
        return list(self.scanner_pods.get(scan_name, []))

    def list_events(self, kind, name):
        self._maybe_fail(f"events:{name}")
        return list(self.events.get(name, []))

    def read_pod_log(self, name, tail_lines=100):
        self._maybe_fail(f"log:{name}")
        return self.logs.get(name, "")


def make_pod(name, phase="Running", ready=True, containers=None, conditions=None, reason=""):
    conds = list(conditions or [])
    if not any(c.type == "Ready" for c in conds):
        conds.append(PodCondition(type="Ready", status="True" if ready else "False"))
    return Pod(
        name=name,
        namespace="openshift-compliance",
        phase=phase,
        reason=reason,
        conditions=conds,
        containers=containers if containers is not None else [ContainerStatus(name="main")],
    )


@pytest.fixture
def fake_client():
    return FakeClient()
