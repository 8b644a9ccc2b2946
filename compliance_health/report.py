# SPDX-License-Identifier: MIT

"""Markdown-ish text rendering of collector and analyzer output.

Pure functions over the data model; nothing here talks to the cluster.
"""

from __future__ import annotations

from compliance_health.logs import PodLog
from compliance_health.models import (
    CheckCounts,
    CheckResult,
    CheckStatus,
    ComplianceScan,
    ComplianceSuite,
    DiagnosisResult,
    Issue,
    OperatorHealth,
    Pod,
    Remediation,
    compliance_percentage,
    count_checks,
    count_scan_results,
)


def _v(member) -> str:
    return member.value if member is not None else "Unknown"


def _suite_counts(suite: ComplianceSuite, check_results: dict[str, list[CheckResult]]) -> CheckCounts:
    counts = CheckCounts()
    for status in suite.scan_statuses:
        if status.name in check_results:
            counts += count_checks(check_results[status.name])
    return counts


def format_suite(suite: ComplianceSuite, check_results: dict[str, list[CheckResult]] | None = None) -> list[str]:
    lines = [
        f"### {suite.name}",
        f"Phase: {_v(suite.phase)}",
        f"Result: {_v(suite.result)}",
    ]
    if suite.error_message:
        lines.append(f"Error: {suite.error_message}")
    if suite.scan_statuses:
        lines.append(f"Scans: {len(suite.scan_statuses)}")
        for result, count in count_scan_results(suite.scan_statuses):
            lines.append(f"  - {result.value}: {count}")
        unreported = sum(1 for s in suite.scan_statuses if s.result is None)
        if unreported:
            lines.append(f"  - (no result yet): {unreported}")
        for s in suite.scan_statuses:
            lines.append(f"  * {s.name}: {_v(s.phase)} ({_v(s.result)})")
    if check_results is not None:
        counts = _suite_counts(suite, check_results)
        automated = counts.passed + counts.failed
        if automated:
            lines.append(
                f"Overall Compliance: {compliance_percentage(counts):.1f}% "
                f"({counts.passed}/{automated} checks passed)"
            )
    return lines


def format_status_overview(
    health: OperatorHealth,
    suites: list[ComplianceSuite],
    check_results: dict[str, list[CheckResult]],
    scan_count: int,
) -> str:
    lines = ["# Compliance Operator Status Overview", "", "## Operator Health"]
    lines.append(f"Status: {'Healthy' if health.is_healthy else 'Unhealthy'}")
    lines.append(f"Operator Pods: {len(health.operator_pods)}")
    for pod in health.operator_pods:
        ready = "ready" if pod.ready else "not ready"
        lines.append(f"  - {pod.name}: {pod.phase}, {ready} (Restarts: {pod.restarts})")
    if health.issues:
        lines.append("Issues:")
        lines.extend(f"  - {issue}" for issue in health.issues)

    lines.extend(["", "## Compliance Suites"])
    if not suites:
        lines.append("No compliance suites found.")
    for suite in suites:
        lines.append("")
        lines.extend(format_suite(suite, check_results))

    totals = CheckCounts()
    for results in check_results.values():
        totals += count_checks(results)
    lines.extend([
        "",
        "## Summary",
        f"- Total Suites: {len(suites)}",
        f"- Total Scans: {scan_count}",
        f"- Total Checks: {totals.total}",
        f"  - Passed: {totals.passed}",
        f"  - Failed: {totals.failed}",
        f"  - Manual: {totals.manual}",
        f"  - Error: {totals.error}",
        f"  - Info: {totals.info}",
    ])
    return "\n".join(lines)


def format_scan_details(
    scan: ComplianceScan,
    pods: list[Pod],
    counts: CheckCounts | None = None,
    issues: list[Issue] | None = None,
) -> str:
    lines = [
        f"# Scan: {scan.name}",
        f"Phase: {_v(scan.phase)}",
        f"Result: {_v(scan.result)}",
        f"Scan Type: {_v(scan.scan_type)}",
        f"Profile: {scan.profile}",
    ]
    if scan.start_timestamp:
        lines.append(f"Started: {scan.start_timestamp.strftime('%Y-%m-%d %H:%M:%S')}")
    if scan.error_message:
        lines.append(f"Error: {scan.error_message}")
    if scan.warnings:
        lines.append(f"Warnings: {scan.warnings}")

    if counts is not None:
        lines.extend([
            "",
            "## Check Results",
            f"- Total: {counts.total}",
            f"- Pass: {counts.passed}",
            f"- Fail: {counts.failed}",
            f"- Manual: {counts.manual}",
            f"- Error: {counts.error}",
            f"- Info: {counts.info}",
        ])
        if counts.passed + counts.failed:
            lines.append(f"Compliance: {compliance_percentage(counts):.1f}%")

    if pods:
        lines.extend(["", f"## Scanner Pods ({len(pods)})"])
        lines.extend(f"- {pod.name} ({pod.phase})" for pod in pods)

    if issues:
        lines.extend(["", "## Findings"])
        for issue in issues:
            lines.append(f"- [{issue.severity.value.upper()}] {issue.description}")
            lines.append(f"    Suggestion: {issue.suggestion}")
    return "\n".join(lines)


def format_check_results(results: list[CheckResult]) -> str:
    lines = [f"# Check Results ({len(results)})", ""]
    if not results:
        lines.append("No check results found.")
        return "\n".join(lines)
    for i, result in enumerate(results, 1):
        lines.append(f"## {i}. {result.name} [{_v(result.status)}] [{result.severity_level.upper()}]")
        if result.description:
            lines.append(f"Description: {result.description}")
        if result.instructions and result.status == CheckStatus.FAIL:
            lines.append("Remediation Instructions:")
            lines.append(result.instructions)
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def format_remediations(remediations: list[Remediation]) -> str:
    lines = [f"# Remediations ({len(remediations)})", ""]
    if not remediations:
        lines.append("No remediations found.")
        return "\n".join(lines)
    applied = sum(1 for r in remediations if r.apply)
    lines.append(f"Applied: {applied} / {len(remediations)}")
    for i, rem in enumerate(remediations, 1):
        lines.append("")
        lines.append(f"## {i}. {rem.name} [{'applied' if rem.apply else 'not applied'}]")
        lines.append(f"Application State: {rem.application_state or 'Unknown'}")
        if rem.remediation_type:
            lines.append(f"Type: {rem.remediation_type}")
    return "\n".join(lines)


def format_logs(pod_type: str, logs: list[PodLog], analyze: bool = True) -> str:
    lines = [f"# Logs: {pod_type}"]
    for entry in logs:
        lines.extend(["", f"## Pod: {entry.pod}"])
        if entry.error:
            lines.append(f"Error fetching logs: {entry.error}")
            continue
        if not entry.text:
            lines.append("No logs available.")
            continue
        if analyze:
            if entry.errors:
                lines.append("### Errors Detected:")
                lines.extend(f"- {e}" for e in entry.errors)
            if entry.warnings:
                lines.append("### Warnings Detected:")
                lines.extend(f"- {w}" for w in entry.warnings)
            if not entry.errors and not entry.warnings:
                lines.append("No obvious errors or warnings detected in logs.")
        lines.extend(["### Raw Logs:", "```", entry.text, "```"])
    return "\n".join(lines)


def format_diagnosis(result: DiagnosisResult) -> str:
    lines = ["# Compliance Operator Diagnosis", ""]
    if not result.issues and not result.warnings:
        lines.append("No critical issues detected.")

    if result.issues:
        lines.append(f"## Critical Issues ({len(result.issues)})")
        for i, issue in enumerate(result.issues, 1):
            lines.extend([
                "",
                f"### {i}. {issue.type.value}",
                f"Severity: {issue.severity.value}",
                f"Description: {issue.description}",
                f"Affected Resources: {', '.join(issue.resources)}",
                f"Suggestion: {issue.suggestion}",
            ])
    if result.warnings:
        lines.extend(["", f"## Warnings ({len(result.warnings)})"])
        for i, warning in enumerate(result.warnings, 1):
            lines.extend([
                "",
                f"### {i}. {warning.description}",
                f"Suggestion: {warning.suggestion}",
            ])
    if result.suggestions:
        lines.extend(["", "## Suggestions"])
        lines.extend(f"- {s}" for s in result.suggestions)
    return "\n".join(lines)
