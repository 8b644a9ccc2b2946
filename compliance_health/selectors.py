# SPDX-License-Identifier: MIT

"""Typed label and field queries.

Selectors are never formatted ad hoc at call sites. Values are validated
against the Kubernetes label-value grammar, so a scan name can't smuggle a
second requirement (``a,b=c``) into a selector.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from compliance_health.exceptions import InvalidSelectorError

API_GROUP = "compliance.openshift.io"
API_VERSION = "v1alpha1"

SUITE_LABEL = f"{API_GROUP}/suite"
SCAN_LABEL = f"{API_GROUP}/scan-name"
CHECK_STATUS_LABEL = f"{API_GROUP}/check-status"
REMEDIATION_TYPE_LABEL = f"{API_GROUP}/remediation-type"

_LABEL_VALUE_RE = re.compile(r"^(([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?$")
_LABEL_KEY_RE = re.compile(
    r"^([a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*/)?"
    r"[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?$"
)
# Field values are not bound by the label grammar but must not contain
# selector separators.
_FIELD_VALUE_RE = re.compile(r"^[^,=!\s]+$")


@dataclass(frozen=True)
class LabelQuery:
    key: str
    value: str

    def __post_init__(self) -> None:
        if not _LABEL_KEY_RE.match(self.key):
            raise InvalidSelectorError(f"invalid label key: {self.key!r}")
        if len(self.value) > 63 or not _LABEL_VALUE_RE.match(self.value):
            raise InvalidSelectorError(f"invalid value for label {self.key}: {self.value!r}")

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


@dataclass(frozen=True)
class FieldQuery:
    path: str
    value: str

    def __post_init__(self) -> None:
        if not _FIELD_VALUE_RE.match(self.value):
            raise InvalidSelectorError(f"invalid value for field {self.path}: {self.value!r}")

    def __str__(self) -> str:
        return f"{self.path}={self.value}"


def render(queries: Iterable[LabelQuery | FieldQuery]) -> str:
    return ",".join(str(q) for q in queries)


def scan_owner(scan_name: str) -> LabelQuery:
    return LabelQuery(SCAN_LABEL, scan_name)


def suite_owner(suite_name: str) -> LabelQuery:
    return LabelQuery(SUITE_LABEL, suite_name)


def check_status(status: str) -> LabelQuery:
    return LabelQuery(CHECK_STATUS_LABEL, status)


OPERATOR_POD = LabelQuery("name", "compliance-operator")
SCANNER_WORKLOAD = LabelQuery("workload", "scanner")


def involved_object(kind: str, name: str) -> tuple[FieldQuery, FieldQuery]:
    return FieldQuery("involvedObject.kind", kind), FieldQuery("involvedObject.name", name)
