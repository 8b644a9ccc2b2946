#!/usr/bin/python
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT

"""Compliance Operator status and diagnosis module for Ansible.

Connects to the K8s API from the Ansible control node and reads the state of
the OpenShift Compliance Operator: suites, scans, check results,
remediations, operator/scanner pods, events and logs. One module call runs
one tool and returns both structured data and a text report.

All API calls are read-only (list/get). Zero writes to the cluster.
"""

from __future__ import annotations

DOCUMENTATION = r"""
---
module: compliance_health_check
short_description: Inspect and diagnose the Compliance Operator
version_added: "1.0.0"
description:
  - Reads ComplianceSuite, ComplianceScan, ComplianceCheckResult and
    ComplianceRemediation objects plus operator and scanner pods.
  - C(status_overview) reports operator health, suites and check totals.
  - C(diagnose) correlates scans, pod states and warning events into
    critical issues and warnings with suggested fixes.
  - Completely read-only. All API calls are list/get operations.
options:
  tool:
    description: Which inspection to run.
    type: str
    default: status_overview
    choices: [status_overview, scan_details, check_results, remediations, logs, diagnose]
  kubeconfig:
    description: Path to the kubeconfig file. Falls back to in-cluster config.
    type: path
  context:
    description: Kubeconfig context to use. Defaults to current context.
    type: str
  namespace:
    description:
      - Namespace where the Compliance Operator is installed.
      - Read from C(COMPLIANCE_NAMESPACE) when omitted, else C(openshift-compliance).
    type: str
  suite_name:
    description: Limit C(status_overview) to one suite.
    type: str
  scan_name:
    description:
      - Scan to inspect. Required for C(scan_details) and C(check_results),
        and for C(logs) with O(pod_type=scanner).
      - Scopes C(remediations) when given.
    type: str
  include_check_results:
    description: Add check result counts to C(scan_details).
    type: bool
    default: false
  status_filter:
    description: Only check results with this status.
    type: str
    choices: [PASS, FAIL, MANUAL, ERROR, INFO]
  severity_filter:
    description: Only check results with this severity.
    type: str
    choices: [low, medium, high, unknown]
  applied_only:
    description: Only remediations marked to be applied.
    type: bool
    default: false
  pod_type:
    description: Whose logs to fetch.
    type: str
    default: operator
    choices: [operator, scanner]
  tail_lines:
    description: Number of log lines to fetch per pod.
    type: int
    default: 100
  analyze:
    description: Scan fetched logs for error and warning lines.
    type: bool
    default: true
  request_timeout:
    description: Per-request timeout in seconds for every API call.
    type: float
requirements:
  - kubernetes (Python package)
  - compliance_health (Python package from this repository)
author:
  - compliance-health contributors
"""

EXAMPLES = r"""
- name: Operator health and suite status
  compliance_health_check:
  register: compliance

- name: One suite only
  compliance_health_check:
    suite_name: cis-compliance
  register: compliance

- name: Failed high severity checks of a scan
  compliance_health_check:
    tool: check_results
    scan_name: ocp4-cis
    status_filter: FAIL
    severity_filter: high
  register: failed_checks

- name: Scanner logs for a scan
  compliance_health_check:
    tool: logs
    pod_type: scanner
    scan_name: ocp4-cis-node-worker
    tail_lines: 200

- name: Fail playbook if the operator has critical issues
  compliance_health_check:
    tool: diagnose
  register: diagnosis
  failed_when: diagnosis.data.issues | length > 0
"""

RETURN = r"""
data:
  description: Structured result of the selected tool.
  type: dict
  returned: always
  sample:
    issues:
      - type: "OutOfMemory"
        severity: "Critical"
        description: "Container 'scanner' in pod 'ocp4-cis-node-worker-pod' was killed due to out of memory"
        resources: ["ocp4-cis-node-worker-pod"]
        suggestion: "Increase memory limits for scanner pods in ScanSetting."
    warnings: []
    suggestions: []
report_text:
  description: Human-readable text report.
  type: str
  returned: always
context:
  description: Kubeconfig context the module talked to.
  type: str
  returned: always
"""

import logging
from typing import Any

logger = logging.getLogger("compliance_health_check")

TOOLS = ["status_overview", "scan_details", "check_results", "remediations", "logs", "diagnose"]


# =====================================================================
# Tools
# =====================================================================

def status_overview(client, params: dict[str, Any]) -> tuple[dict[str, Any], str]:
    from compliance_health.collector import Collector
    from compliance_health.report import format_status_overview

    collector = Collector(client)
    suite_name = params.get("suite_name")
    if suite_name:
        suite_data = collector.collect_suite(suite_name)
        health = collector.collect_operator_health()
        data = suite_data.to_dict()
        data["operator_health"] = health.to_dict()
        text = format_status_overview(health, [suite_data.suite], suite_data.check_results, len(suite_data.scans))
        return data, text

    snap = collector.collect_all()
    text = format_status_overview(snap.operator_health, snap.suites, snap.check_results, len(snap.scans))
    return snap.to_dict(), text


def scan_details(client, params: dict[str, Any]) -> tuple[dict[str, Any], str]:
    from compliance_health.analyzer import analyze_scan_failure
    from compliance_health.exceptions import ComplianceError
    from compliance_health.models import count_checks
    from compliance_health.report import format_scan_details

    scan_name = params["scan_name"]
    scan = client.get_scan(scan_name)
    pods = client.list_scanner_pods(scan_name)

    counts = None
    if params.get("include_check_results"):
        try:
            counts = count_checks(client.list_check_results(scan_name))
        except ComplianceError as exc:
            logger.debug("check counts unavailable for %s: %s", scan_name, exc)

    issues = analyze_scan_failure(scan)
    data = {
        "scan": scan.to_dict(),
        "scanner_pods": [{"name": p.name, "phase": p.phase} for p in pods],
        "check_counts": counts.to_dict() if counts else None,
        "issues": [i.to_dict() for i in issues],
    }
    return data, format_scan_details(scan, pods, counts, issues)


def check_results(client, params: dict[str, Any]) -> tuple[dict[str, Any], str]:
    from compliance_health.models import CheckStatus
    from compliance_health.report import format_check_results

    status = CheckStatus.from_wire(params.get("status_filter"))
    results = client.list_check_results(params["scan_name"], status=status)
    severity = (params.get("severity_filter") or "").lower()
    if severity:
        results = [r for r in results if r.severity_level == severity]
    return {"check_results": [r.to_dict() for r in results]}, format_check_results(results)


def remediations(client, params: dict[str, Any]) -> tuple[dict[str, Any], str]:
    from compliance_health.report import format_remediations

    rems = client.list_remediations(params.get("scan_name") or None)
    if params.get("applied_only"):
        rems = [r for r in rems if r.apply]
    return {"remediations": [r.to_dict() for r in rems]}, format_remediations(rems)


def logs(client, params: dict[str, Any]) -> tuple[dict[str, Any], str]:
    from compliance_health.logs import collect_logs
    from compliance_health.report import format_logs

    pod_type = params.get("pod_type") or "operator"
    analyze = params.get("analyze", True)
    entries = collect_logs(
        client, pod_type,
        scan_name=params.get("scan_name"),
        tail_lines=params.get("tail_lines") or 100,
        analyze=analyze,
    )
    if not entries:
        if pod_type == "operator":
            text = "No operator pods found"
        else:
            text = f"No scanner pods found for scan {params.get('scan_name')}"
    else:
        text = format_logs(pod_type, entries, analyze)
    return {"pod_type": pod_type, "pods": [e.to_dict() for e in entries]}, text


def diagnose(client, params: dict[str, Any]) -> tuple[dict[str, Any], str]:
    from compliance_health.analyzer import Analyzer
    from compliance_health.report import format_diagnosis

    result = Analyzer(client).analyze_all()
    return result.to_dict(), format_diagnosis(result)


TOOL_MAP = {
    "status_overview": status_overview,
    "scan_details": scan_details,
    "check_results": check_results,
    "remediations": remediations,
    "logs": logs,
    "diagnose": diagnose,
}


def run_tool(tool: str, client, params: dict[str, Any]) -> tuple[dict[str, Any], str]:
    if tool not in TOOL_MAP:
        raise ValueError(f"unknown tool: {tool}")
    return TOOL_MAP[tool](client, params)


# =====================================================================
# Ansible Module Entry Point
# =====================================================================

def run_module():
    from ansible.module_utils.basic import AnsibleModule, env_fallback

    module = AnsibleModule(
        argument_spec=dict(
            tool=dict(type="str", default="status_overview", choices=TOOLS),
            kubeconfig=dict(type="path", default=None),
            context=dict(type="str", default=None),
            namespace=dict(type="str", default=None, fallback=(env_fallback, ["COMPLIANCE_NAMESPACE"])),
            suite_name=dict(type="str", default=None),
            scan_name=dict(type="str", default=None),
            include_check_results=dict(type="bool", default=False),
            status_filter=dict(type="str", default=None, choices=["PASS", "FAIL", "MANUAL", "ERROR", "INFO"]),
            severity_filter=dict(type="str", default=None, choices=["low", "medium", "high", "unknown"]),
            applied_only=dict(type="bool", default=False),
            pod_type=dict(type="str", default="operator", choices=["operator", "scanner"]),
            tail_lines=dict(type="int", default=100),
            analyze=dict(type="bool", default=True),
            request_timeout=dict(type="float", default=None),
        ),
        required_if=[
            ("tool", "scan_details", ["scan_name"]),
            ("tool", "check_results", ["scan_name"]),
        ],
        supports_check_mode=True,
    )

    # Verify required packages are available
    try:
        from kubernetes import config
        from kubernetes.config.config_exception import ConfigException

        from compliance_health.client import DEFAULT_NAMESPACE, ComplianceClient, build_api_client
        from compliance_health.exceptions import ComplianceError, ResourceNotFoundError
    except ImportError as e:
        module.fail_json(msg=f"Missing Python package ({e}). Install with: pip install compliance-health")
        return

    params = module.params
    namespace = params["namespace"] or DEFAULT_NAMESPACE

    # Connect to cluster
    try:
        api_client = build_api_client(params["kubeconfig"], params["context"])
    except (ConfigException, OSError) as e:
        module.fail_json(msg=f"Failed to connect to Kubernetes cluster: {e}")
        return

    try:
        _, active_ctx = config.list_kube_config_contexts(config_file=params["kubeconfig"])
        context_name = params["context"] or active_ctx.get("name", "unknown")
    except (ConfigException, OSError):
        context_name = params["context"] or "in-cluster"

    client = ComplianceClient(api_client, namespace=namespace, request_timeout=params["request_timeout"])

    try:
        data, report_text = run_tool(params["tool"], client, params)
    except ResourceNotFoundError as e:
        module.fail_json(msg=str(e), context=context_name)
        return
    except (ComplianceError, ValueError) as e:
        module.fail_json(msg=f"{params['tool']} failed: {e}", context=context_name)
        return

    module.exit_json(
        changed=False,
        context=context_name,
        namespace=namespace,
        data=data,
        report_text=report_text,
    )


def main():
    run_module()


if __name__ == "__main__":
    main()
