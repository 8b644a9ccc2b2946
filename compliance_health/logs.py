# SPDX-License-Identifier: MIT

"""Operator and scanner pod logs, with a keyword pass over each line."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from compliance_health.exceptions import ComplianceError

logger = logging.getLogger("compliance_health.logs")

POD_TYPES = ("operator", "scanner")
ERROR_KEYWORDS = ("error", "failed", "fatal", "panic", "exception", "cannot", "unable to")
WARNING_KEYWORDS = ("warning", "warn", "deprecated", "retry")
MAX_MATCHES = 20


@dataclass
class PodLog:
    pod: str
    text: str = ""
    error: str = ""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pod": self.pod,
            "text": self.text,
            "error": self.error,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


def _matching_lines(lines: list[str], keywords: tuple[str, ...]) -> list[str]:
    seen: set[str] = set()
    matched = []
    for line in lines:
        lower = line.lower()
        if line in seen or not any(k in lower for k in keywords):
            continue
        seen.add(line)
        matched.append(line)
        if len(matched) == MAX_MATCHES:
            break
    return matched


def analyze_log(text: str) -> tuple[list[str], list[str]]:
    """Return (error lines, warning lines), each de-duplicated and capped.

    A line can land in both lists, e.g. "warning: retry failed".
    """
    lines = text.split("\n")
    return _matching_lines(lines, ERROR_KEYWORDS), _matching_lines(lines, WARNING_KEYWORDS)


def collect_logs(client: Any, pod_type: str, scan_name: str | None = None,
                 tail_lines: int = 100, analyze: bool = True) -> list[PodLog]:
    """Read logs from every operator pod, or every scanner pod of one scan.

    Listing the pods must succeed. A single pod whose log can't be read is
    reported on its own entry and does not stop the others.
    """
    if pod_type == "operator":
        pods = client.list_operator_pods()
    elif pod_type == "scanner":
        if not scan_name:
            raise ValueError("scan_name is required for scanner pod logs")
        pods = client.list_scanner_pods(scan_name)
    else:
        raise ValueError(f"invalid pod_type: {pod_type} (must be 'operator' or 'scanner')")

    results = []
    for pod in pods:
        entry = PodLog(pod=pod.name)
        try:
            entry.text = client.read_pod_log(pod.name, tail_lines)
        except ComplianceError as exc:
            logger.debug("log read failed for %s: %s", pod.name, exc)
            entry.error = str(exc)
        if analyze and entry.text:
            entry.errors, entry.warnings = analyze_log(entry.text)
        results.append(entry)
    return results
