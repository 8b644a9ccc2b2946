import pytest

from compliance_health.logs import MAX_MATCHES, analyze_log, collect_logs
from tests.conftest import make_pod

SAMPLE = "\n".join([
    "I1018 10:00:00 starting scan",
    "E1018 10:00:01 Failed to fetch content image",
    "E1018 10:00:01 Failed to fetch content image",
    "W1018 10:00:02 deprecated field in ScanSetting",
    "W1018 10:00:03 warning: retry failed",
    "I1018 10:00:04 done",
])


def test_analyze_log_splits_errors_and_warnings():
    errors, warnings = analyze_log(SAMPLE)
    assert errors == [
        "E1018 10:00:01 Failed to fetch content image",
        "W1018 10:00:03 warning: retry failed",
    ]
    assert warnings == [
        "W1018 10:00:02 deprecated field in ScanSetting",
        "W1018 10:00:03 warning: retry failed",
    ]


def test_analyze_log_caps_matches():
    text = "\n".join(f"error number {i}" for i in range(50))
    errors, warnings = analyze_log(text)
    assert len(errors) == MAX_MATCHES
    assert warnings == []


def test_collect_operator_logs(fake_client):
    fake_client.operator_pods = [make_pod("op-1"), make_pod("op-2")]
    fake_client.logs = {"op-1": SAMPLE}
    fake_client.fail = {"log:op-2"}
    entries = collect_logs(fake_client, "operator")
    assert [e.pod for e in entries] == ["op-1", "op-2"]
    assert entries[0].errors
    assert "connection refused" in entries[1].error


def test_collect_logs_without_analysis(fake_client):
    fake_client.operator_pods = [make_pod("op-1")]
    fake_client.logs = {"op-1": SAMPLE}
    (entry,) = collect_logs(fake_client, "operator", analyze=False)
    assert entry.text == SAMPLE
    assert entry.errors == [] and entry.warnings == []


def test_scanner_logs_need_scan_name(fake_client):
    with pytest.raises(ValueError):
        collect_logs(fake_client, "scanner")


def test_unknown_pod_type(fake_client):
    with pytest.raises(ValueError):
        collect_logs(fake_client, "node")
