"""Tool dispatch of the compliance_health_check Ansible module, run against FakeClient."""

import importlib.util
from pathlib import Path

import pytest

from compliance_health.exceptions import ResourceNotFoundError
from compliance_health.models import (
    CheckResult,
    CheckStatus,
    ComplianceScan,
    ComplianceSuite,
    Remediation,
    ScanResult,
)
from tests.conftest import make_pod

MODULE_PATH = Path(__file__).resolve().parents[1] / "roles" / "compliance_health" / "library" / "compliance_health_check.py"


@pytest.fixture(scope="module")
def module():
    spec = importlib.util.spec_from_file_location("compliance_health_check", MODULE_PATH)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


@pytest.fixture
def cluster(fake_client):
    fake_client.suites = [ComplianceSuite(name="cis")]
    fake_client.scans = [ComplianceScan(
        name="scan-a", result=ScanResult.NON_COMPLIANT,
        labels={"compliance.openshift.io/suite": "cis"},
    )]
    fake_client.check_results = {"scan-a": [
        CheckResult("c1", CheckStatus.FAIL, severity="High"),
        CheckResult("c2", CheckStatus.FAIL, severity="low"),
        CheckResult("c3", CheckStatus.PASS, severity="high"),
    ]}
    fake_client.remediations = {"scan-a": [Remediation("r1", apply=True), Remediation("r2")]}
    fake_client.operator_pods = [make_pod("compliance-operator-abc")]
    fake_client.scanner_pods = {"scan-a": [make_pod("scan-a-pod")]}
    return fake_client


def test_status_overview(module, cluster):
    data, text = module.run_tool("status_overview", cluster, {})
    assert data["operator_health"]["is_healthy"] is True
    assert "scan-a" in data["scans"]
    assert "# Compliance Operator Status Overview" in text


def test_status_overview_for_one_suite(module, cluster):
    data, text = module.run_tool("status_overview", cluster, {"suite_name": "cis"})
    assert data["suite"]["name"] == "cis"
    assert "### cis" in text


def test_status_overview_for_missing_suite(module, cluster):
    with pytest.raises(ResourceNotFoundError):
        module.run_tool("status_overview", cluster, {"suite_name": "nope"})


def test_scan_details_include_scan_failure_analysis(module, cluster):
    data, _ = module.run_tool("scan_details", cluster, {"scan_name": "scan-a", "include_check_results": True})
    assert data["check_counts"]["fail"] == 2
    assert data["scanner_pods"] == [{"name": "scan-a-pod", "phase": "Running"}]
    assert [i["type"] for i in data["issues"]] == ["Misconfiguration"]


def test_scan_details_survive_check_listing_failure(module, cluster):
    cluster.fail = {"checks:scan-a"}
    data, _ = module.run_tool("scan_details", cluster, {"scan_name": "scan-a", "include_check_results": True})
    assert data["check_counts"] is None


def test_check_results_filters(module, cluster):
    data, _ = module.run_tool("check_results", cluster, {
        "scan_name": "scan-a", "status_filter": "FAIL", "severity_filter": "high",
    })
    assert [r["name"] for r in data["check_results"]] == ["c1"]


def test_remediations_applied_only(module, cluster):
    data, _ = module.run_tool("remediations", cluster, {"scan_name": "scan-a", "applied_only": True})
    assert [r["name"] for r in data["remediations"]] == ["r1"]


def test_logs_without_pods(module, fake_client):
    data, text = module.run_tool("logs", fake_client, {"pod_type": "scanner", "scan_name": "scan-x"})
    assert data["pods"] == []
    assert text == "No scanner pods found for scan scan-x"


def test_diagnose(module, cluster):
    data, text = module.run_tool("diagnose", cluster, {})
    assert data["issues"] == []
    assert data["suggestions"]
    assert "# Compliance Operator Diagnosis" in text


def test_unknown_tool(module, cluster):
    with pytest.raises(ValueError):
        module.run_tool("remediate", cluster, {})
