# SPDX-License-Identifier: MIT

"""Read-only access to compliance operator resources.

ComplianceSuite, ComplianceScan, ComplianceCheckResult and
ComplianceRemediation are custom resources and are read through
``CustomObjectsApi``; pods, events and logs come from ``CoreV1Api``.
Every call goes straight to the API server. There is no cache and no retry:
a failed read raises ``ResourceNotFoundError`` or ``TransportError`` and the
caller decides what to do with it.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable

import urllib3
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException

from compliance_health import selectors
from compliance_health.exceptions import (
    MalformedResourceError,
    ResourceNotFoundError,
    TransportError,
    UnknownEnumValueError,
)
from compliance_health.models import (
    CheckResult,
    CheckStatus,
    ComplianceScan,
    ComplianceSuite,
    ContainerStatus,
    Event,
    Pod,
    PodCondition,
    Remediation,
    ScanPhase,
    ScanResult,
    ScanStatusSummary,
    ScanType,
)
from compliance_health.selectors import API_GROUP, API_VERSION

logger = logging.getLogger("compliance_health.client")

DEFAULT_NAMESPACE = "openshift-compliance"

# Pod log reads stop after this many bytes, whatever the tail size.
LOG_BUFFER_SIZE = 1024 * 1024

SUITES = "compliancesuites"
SCANS = "compliancescans"
CHECK_RESULTS = "compliancecheckresults"
REMEDIATIONS = "complianceremediations"

_KINDS = {
    SUITES: "ComplianceSuite",
    SCANS: "ComplianceScan",
    CHECK_RESULTS: "ComplianceCheckResult",
    REMEDIATIONS: "ComplianceRemediation",
}


def build_api_client(kubeconfig: str | None = None, context: str | None = None) -> client.ApiClient:
    """Load kubeconfig (falling back to in-cluster config) with transport retries off."""
    configuration = client.Configuration()
    try:
        config.load_kube_config(config_file=kubeconfig, context=context, client_configuration=configuration)
    except ConfigException:
        logger.debug("kubeconfig %s unusable, trying in-cluster config", kubeconfig)
        config.load_incluster_config(client_configuration=configuration)
    configuration.retries = 0
    return client.ApiClient(configuration)


# =====================================================================
# Conversions from API objects
# =====================================================================

def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise MalformedResourceError(f"unparseable timestamp: {value!r}") from None
    # API timestamps are UTC; a value without an offset is read as UTC.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _meta(obj: dict[str, Any]) -> tuple[str, str, dict[str, str]]:
    meta = obj.get("metadata") or {}
    return meta.get("name", ""), meta.get("namespace", ""), dict(meta.get("labels") or {})


def suite_from_object(obj: dict[str, Any]) -> ComplianceSuite:
    name, namespace, labels = _meta(obj)
    spec = obj.get("spec") or {}
    status = obj.get("status") or {}
    return ComplianceSuite(
        name=name,
        namespace=namespace,
        labels=labels,
        phase=ScanPhase.from_wire(status.get("phase")),
        result=ScanResult.from_wire(status.get("result")),
        error_message=status.get("errorMessage", ""),
        scan_statuses=[
            ScanStatusSummary(
                name=s.get("name", ""),
                phase=ScanPhase.from_wire(s.get("phase")),
                result=ScanResult.from_wire(s.get("result")),
            )
            for s in status.get("scanStatuses") or []
        ],
        auto_apply_remediations=bool(spec.get("autoApplyRemediations", False)),
        schedule=spec.get("schedule", ""),
    )


def scan_from_object(obj: dict[str, Any]) -> ComplianceScan:
    name, namespace, labels = _meta(obj)
    spec = obj.get("spec") or {}
    status = obj.get("status") or {}
    return ComplianceScan(
        name=name,
        namespace=namespace,
        labels=labels,
        scan_type=ScanType.from_wire(spec.get("scanType")),
        profile=spec.get("profile", ""),
        content=spec.get("content", ""),
        phase=ScanPhase.from_wire(status.get("phase")),
        result=ScanResult.from_wire(status.get("result")),
        start_timestamp=_parse_time(status.get("startTimestamp")),
        error_message=status.get("errorMessage", ""),
        warnings=status.get("warnings", ""),
    )


def check_result_from_object(obj: dict[str, Any]) -> CheckResult:
    # Check results keep their fields at the top level, not under spec/status.
    name, _, labels = _meta(obj)
    return CheckResult(
        name=name,
        labels=labels,
        check_id=obj.get("id", ""),
        status=CheckStatus.from_wire(obj.get("status"), required=True),
        severity=obj.get("severity") or "unknown",
        description=obj.get("description", ""),
        instructions=obj.get("instructions", ""),
        rationale=obj.get("rationale", ""),
    )


def remediation_from_object(obj: dict[str, Any]) -> Remediation:
    name, _, labels = _meta(obj)
    spec = obj.get("spec") or {}
    status = obj.get("status") or {}
    return Remediation(
        name=name,
        labels=labels,
        apply=bool(spec.get("apply", False)),
        application_state=status.get("applicationState", ""),
        remediation_type=labels.get(selectors.REMEDIATION_TYPE_LABEL, ""),
    )


def pod_from_v1(pod: Any) -> Pod:
    status = pod.status
    containers = []
    for cs in status.container_statuses or []:
        waiting = cs.state.waiting if cs.state else None
        last_term = cs.last_state.terminated if cs.last_state else None
        containers.append(ContainerStatus(
            name=cs.name,
            restart_count=cs.restart_count or 0,
            waiting_reason=(waiting.reason or "") if waiting else "",
            waiting_message=(waiting.message or "") if waiting else "",
            last_terminated_reason=(last_term.reason or "") if last_term else "",
            last_terminated_exit_code=last_term.exit_code if last_term else None,
            image=cs.image or "",
        ))
    return Pod(
        name=pod.metadata.name,
        namespace=pod.metadata.namespace or "",
        phase=status.phase or "Unknown",
        reason=status.reason or "",
        message=status.message or "",
        conditions=[
            PodCondition(type=c.type, status=c.status, reason=c.reason or "", message=c.message or "")
            for c in status.conditions or []
        ],
        containers=containers,
    )


def event_from_v1(event: Any) -> Event:
    obj = event.involved_object
    return Event(
        type=event.type or "",
        reason=event.reason or "",
        message=event.message or "",
        involved_kind=(obj.kind or "") if obj else "",
        involved_name=(obj.name or "") if obj else "",
        count=event.count or 1,
    )


def _api_detail(exc: ApiException) -> str:
    try:
        message = json.loads(exc.body).get("message")
    except (TypeError, ValueError, AttributeError):
        message = None
    return f"({exc.status}) {message or exc.reason}"


# =====================================================================
# Accessor
# =====================================================================

class ComplianceClient:
    """Typed, read-only views of compliance resources in one namespace."""

    def __init__(self, api_client: Any, namespace: str = DEFAULT_NAMESPACE,
                 request_timeout: float | None = None) -> None:
        self.namespace = namespace
        self.request_timeout = request_timeout
        self.custom = client.CustomObjectsApi(api_client)
        self.core = client.CoreV1Api(api_client)

    def _call(self, operation: str, func: Callable[..., Any], *args: Any,
              not_found: tuple[str, str] | None = None, **kwargs: Any) -> Any:
        if self.request_timeout is not None:
            kwargs["_request_timeout"] = self.request_timeout
        logger.debug("%s (namespace=%s)", operation, self.namespace)
        try:
            return func(*args, **kwargs)
        except ApiException as exc:
            if exc.status == 404 and not_found:
                raise ResourceNotFoundError(not_found[0], not_found[1], self.namespace) from exc
            raise TransportError(operation, _api_detail(exc), status=exc.status) from exc
        except (urllib3.exceptions.HTTPError, OSError) as exc:
            raise TransportError(operation, exc) from exc

    # -- custom resources -------------------------------------------------

    def _list_custom(self, plural: str, parser: Callable[[dict], Any],
                     labels: tuple[selectors.LabelQuery, ...] = ()) -> list[Any]:
        kwargs = {"label_selector": selectors.render(labels)} if labels else {}
        what = f"list {plural}" + (f" ({selectors.render(labels)})" if labels else "")
        resp = self._call(what, self.custom.list_namespaced_custom_object,
                          API_GROUP, API_VERSION, self.namespace, plural, **kwargs)
        items = []
        for obj in resp.get("items", []):
            try:
                items.append(parser(obj))
            except (UnknownEnumValueError, MalformedResourceError) as exc:
                name = (obj.get("metadata") or {}).get("name", "?")
                logger.warning("skipping %s %s: %s", _KINDS[plural], name, exc)
        return items

    def _get_custom(self, plural: str, parser: Callable[[dict], Any], name: str) -> Any:
        obj = self._call(f"get {_KINDS[plural]} {name}", self.custom.get_namespaced_custom_object,
                         API_GROUP, API_VERSION, self.namespace, plural, name,
                         not_found=(_KINDS[plural], name))
        return parser(obj)

    def list_suites(self) -> list[ComplianceSuite]:
        return self._list_custom(SUITES, suite_from_object)

    def get_suite(self, name: str) -> ComplianceSuite:
        return self._get_custom(SUITES, suite_from_object, name)

    def list_scans(self, suite_name: str | None = None) -> list[ComplianceScan]:
        """All scans, or only those owned by ``suite_name``."""
        labels = (selectors.suite_owner(suite_name),) if suite_name else ()
        return self._list_custom(SCANS, scan_from_object, labels)

    def get_scan(self, name: str) -> ComplianceScan:
        return self._get_custom(SCANS, scan_from_object, name)

    def list_check_results(self, scan_name: str | None = None,
                           status: CheckStatus | None = None) -> list[CheckResult]:
        labels: tuple[selectors.LabelQuery, ...] = ()
        if scan_name:
            labels += (selectors.scan_owner(scan_name),)
        if status is not None:
            labels += (selectors.check_status(CheckStatus(status).value),)
        return self._list_custom(CHECK_RESULTS, check_result_from_object, labels)

    def get_check_result(self, name: str) -> CheckResult:
        return self._get_custom(CHECK_RESULTS, check_result_from_object, name)

    def list_remediations(self, scan_name: str | None = None) -> list[Remediation]:
        labels = (selectors.scan_owner(scan_name),) if scan_name else ()
        return self._list_custom(REMEDIATIONS, remediation_from_object, labels)

    def get_remediation(self, name: str) -> Remediation:
        return self._get_custom(REMEDIATIONS, remediation_from_object, name)

    # -- pods, events, logs -------------------------------------------------

    def _list_pods(self, labels: tuple[selectors.LabelQuery, ...], what: str) -> list[Pod]:
        resp = self._call(what, self.core.list_namespaced_pod, self.namespace,
                          label_selector=selectors.render(labels))
        return [pod_from_v1(p) for p in resp.items or []]

    def list_operator_pods(self) -> list[Pod]:
        return self._list_pods((selectors.OPERATOR_POD,), "list operator pods")

    def list_scanner_pods(self, scan_name: str) -> list[Pod]:
        return self._list_pods(
            (selectors.scan_owner(scan_name), selectors.SCANNER_WORKLOAD),
            f"list scanner pods for scan {scan_name}",
        )

    def get_pod(self, name: str) -> Pod:
        pod = self._call(f"get pod {name}", self.core.read_namespaced_pod, name, self.namespace,
                         not_found=("Pod", name))
        return pod_from_v1(pod)

    def list_events(self, kind: str, name: str) -> list[Event]:
        fields = selectors.involved_object(kind, name)
        resp = self._call(f"list events for {kind} {name}", self.core.list_namespaced_event,
                          self.namespace, field_selector=selectors.render(fields))
        return [event_from_v1(e) for e in resp.items or []]

    def read_pod_log(self, name: str, tail_lines: int = 100) -> str:
        """Tail of a pod's log, cut at LOG_BUFFER_SIZE bytes.

        A short read is returned as-is; callers must not assume they got the
        full tail.
        """
        operation = f"read logs for pod {name}"
        resp = self._call(operation, self.core.read_namespaced_pod_log, name, self.namespace,
                          tail_lines=tail_lines, _preload_content=False, not_found=("Pod", name))
        try:
            data = resp.read(LOG_BUFFER_SIZE)
        except urllib3.exceptions.HTTPError as exc:
            raise TransportError(operation, exc) from exc
        finally:
            resp.release_conn()
        return data.decode("utf-8", errors="replace")
