import pytest

from compliance_health import selectors
from compliance_health.exceptions import InvalidSelectorError


def test_scan_owner_renders_label_selector():
    query = selectors.scan_owner("ocp4-cis-node-worker")
    assert str(query) == "compliance.openshift.io/scan-name=ocp4-cis-node-worker"


def test_render_joins_requirements():
    rendered = selectors.render((selectors.scan_owner("scan-a"), selectors.SCANNER_WORKLOAD))
    assert rendered == "compliance.openshift.io/scan-name=scan-a,workload=scanner"


@pytest.mark.parametrize("value", ["a,workload=scanner", "a b", "-leading", "x" * 64, "a=b"])
def test_rejects_values_that_would_change_the_selector(value):
    with pytest.raises(InvalidSelectorError):
        selectors.scan_owner(value)


def test_involved_object_field_selector():
    rendered = selectors.render(selectors.involved_object("ComplianceScan", "scan-a"))
    assert rendered == "involvedObject.kind=ComplianceScan,involvedObject.name=scan-a"
    with pytest.raises(InvalidSelectorError):
        selectors.involved_object("ComplianceScan", "scan-a,involvedObject.kind=Pod")
