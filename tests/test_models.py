import pytest

from compliance_health.exceptions import UnknownEnumValueError
from compliance_health.models import (
    CheckCounts,
    CheckResult,
    CheckStatus,
    Issue,
    IssueSeverity,
    IssueType,
    ScanPhase,
    ScanResult,
    ScanStatusSummary,
    compliance_percentage,
    count_checks,
    count_scan_results,
)


def _results(*statuses):
    return [CheckResult(name=f"check-{i}", status=s) for i, s in enumerate(statuses)]


@pytest.mark.parametrize("n", [0, 1, 7])
def test_count_checks_total_matches_input(n):
    statuses = list(CheckStatus) * 2
    results = _results(*statuses[:n])
    counts = count_checks(results)
    assert counts.total == n
    assert counts.total == counts.passed + counts.failed + counts.manual + counts.error + counts.info


def test_count_checks_tallies_each_status():
    counts = count_checks(_results(
        CheckStatus.PASS, CheckStatus.PASS, CheckStatus.FAIL,
        CheckStatus.MANUAL, CheckStatus.ERROR, CheckStatus.INFO,
    ))
    assert counts == CheckCounts(passed=2, failed=1, manual=1, error=1, info=1)
    assert counts.to_dict()["total"] == 6


def test_compliance_percentage():
    assert compliance_percentage(CheckCounts(passed=3, failed=1, manual=2)) == 75.0
    assert compliance_percentage(CheckCounts(passed=0, failed=0)) == 0.0
    assert compliance_percentage(CheckCounts(passed=5, failed=0)) == 100.0
    assert compliance_percentage(CheckCounts(manual=4, info=2)) == 0.0


def test_check_counts_add():
    total = CheckCounts(passed=1, failed=2) + CheckCounts(passed=3, manual=1)
    assert total == CheckCounts(passed=4, failed=2, manual=1)


def test_wire_enums_parse_strictly():
    assert ScanPhase.from_wire("RUNNING") is ScanPhase.RUNNING
    assert ScanResult.from_wire("NON-COMPLIANT") is ScanResult.NON_COMPLIANT
    assert ScanPhase.from_wire("") is None
    assert ScanPhase.from_wire(None) is None
    with pytest.raises(UnknownEnumValueError) as exc_info:
        ScanPhase.from_wire("Running")
    assert "ScanPhase" in str(exc_info.value)
    with pytest.raises(UnknownEnumValueError):
        CheckStatus.from_wire(None, required=True)


def test_scan_results_counted_in_enum_order():
    statuses = [
        ScanStatusSummary("c", result=ScanResult.ERROR),
        ScanStatusSummary("a", result=ScanResult.COMPLIANT),
        ScanStatusSummary("b", result=ScanResult.NON_COMPLIANT),
        ScanStatusSummary("d", result=ScanResult.COMPLIANT),
    ]
    assert count_scan_results(statuses) == [
        (ScanResult.COMPLIANT, 2),
        (ScanResult.NON_COMPLIANT, 1),
        (ScanResult.ERROR, 1),
    ]


def test_issue_requires_a_resource():
    with pytest.raises(ValueError):
        Issue(IssueType.STUCK_SCAN, IssueSeverity.CRITICAL, "stuck", ())
    issue = Issue(IssueType.STUCK_SCAN, IssueSeverity.CRITICAL, "stuck", ["scan-a"])
    assert issue.resources == ("scan-a",)
    assert issue.to_dict()["resources"] == ["scan-a"]


def test_issue_rejects_a_bare_string_of_resources():
    with pytest.raises(TypeError):
        Issue(IssueType.STUCK_SCAN, IssueSeverity.CRITICAL, "stuck", "scan-a")


def test_check_result_needs_a_status():
    with pytest.raises(TypeError):
        CheckResult("b")


def test_check_result_severity_is_case_insensitive():
    assert CheckResult(name="x", status=CheckStatus.PASS, severity="HIGH").severity_level == "high"
    assert CheckResult(name="x", status=CheckStatus.PASS, severity="critical").severity_level == "unknown"


def test_instructions_only_serialized_for_failed_checks():
    failed = CheckResult(name="x", status=CheckStatus.FAIL, instructions="fix it")
    passed = CheckResult(name="y", status=CheckStatus.PASS, instructions="fix it")
    assert failed.to_dict()["instructions"] == "fix it"
    assert passed.to_dict()["instructions"] == ""
