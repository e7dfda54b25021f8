import pytest

from authnconvert.convert.converter import PolicyConverter
from authnconvert.convert.orchestrator import ConversionOrchestrator
from authnconvert.k8s.kinds import LEGACY_POLICY_KINDS
from authnconvert.k8s.manifests import ManifestInventory
from authnconvert.observers.dispatcher import EventBus
from authnconvert.policy.errors import (
    ConversionFailed,
    DecodeError,
    InventoryError,
    LegacyRbacPresent,
)


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)


def _policy(name, ns="foo", targets=None, peers=None, kind="Policy"):
    spec = {"peers": peers if peers is not None else [{"mtls": {}}]}
    if targets:
        spec["targets"] = [{"name": t} for t in targets]
    meta = {"name": name}
    if ns:
        meta["namespace"] = ns
    return {"apiVersion": "authentication.istio.io/v1alpha1", "kind": kind,
            "metadata": meta, "spec": spec}


def _svc(name, ns="foo"):
    return {"apiVersion": "v1", "kind": "Service",
            "metadata": {"name": name, "namespace": ns}, "spec": {"selector": {"app": name}}}


def _run(objects, cap=None, **kw):
    orch = ConversionOrchestrator(
        ManifestInventory(objects),
        PolicyConverter(),
        bus=EventBus([cap]) if cap else None,
        **kw,
    )
    return orch.run()


def test_all_policies_succeed():
    cap = Capture()
    report = _run([
        _svc("httpbin"),
        _policy("b", targets=["httpbin"]),
        _policy("a"),
        _policy("default", ns="", kind="MeshPolicy"),
    ], cap)
    assert report.ok
    assert [r.policy for r in report.results] == ["foo/a", "foo/b", "/default"]
    assert [r.name for r in report.output] == ["a", "b-httpbin", "default"]
    assert report.output[2].namespace == "istio-system"
    kinds = [e.__class__.__name__ for e in cap.events]
    assert kinds.count("PolicyConverted") == 3
    assert kinds[-1] == "ConversionFinished"
    report.raise_for_status()


def test_one_failure_empties_output_by_default():
    report = _run([
        _svc("httpbin"),
        _policy("good", targets=["httpbin"]),
        _policy("bad", targets=["missing"]),
    ])
    assert not report.ok
    assert [r.policy for r in report.failed] == ["foo/bad"]
    assert len(report.accumulated) == 1
    assert report.output == []
    with pytest.raises(ConversionFailed) as ei:
        report.raise_for_status()
    assert ei.value.report is report


def test_ignore_errors_keeps_successful_policies():
    cap = Capture()
    report = _run([
        _svc("httpbin"),
        _policy("good", targets=["httpbin"]),
        _policy("bad", targets=["httpbin", "missing"]),
    ], cap, ignore_errors=True)
    assert not report.ok
    # the failed policy's partial resources are never accumulated
    assert [r.name for r in report.output] == ["good-httpbin"]
    failed = [e for e in cap.events if e.__class__.__name__ == "PolicyFailed"]
    assert failed[0].policy == "foo/bad"
    assert "missing" in failed[0].errors[0]


def test_legacy_rbac_fails_run_and_is_reported():
    cap = Capture()
    rbac = {"apiVersion": "rbac.istio.io/v1alpha1", "kind": "ServiceRole",
            "metadata": {"name": "viewer", "namespace": "foo"}, "spec": {}}
    report = _run([_policy("a"), rbac], cap)
    assert not report.ok
    assert report.failed == []
    assert [str(r) for r in report.rbac] == ["ServiceRole: foo/viewer"]
    assert isinstance(report.rbac[0], LegacyRbacPresent)
    assert report.output == []
    detected = [e for e in cap.events if e.__class__.__name__ == "LegacyRbacDetected"]
    assert detected[0].resources == ["ServiceRole: foo/viewer"]


def test_legacy_rbac_with_ignore_errors_still_emits():
    rbac = {"apiVersion": "rbac.istio.io/v1alpha1", "kind": "ClusterRbacConfig",
            "metadata": {"name": "default"}, "spec": {"mode": "ON"}}
    report = _run([_policy("a"), rbac], ignore_errors=True)
    assert not report.ok
    assert [r.name for r in report.output] == ["a"]


def test_decode_error_fails_only_that_policy():
    broken = {"apiVersion": "authentication.istio.io/v1alpha1", "kind": "Policy",
              "metadata": {"name": "broken", "namespace": "foo"},
              "spec": {"targets": [{"ports": [{"number": 80}]}]}}
    report = _run([_policy("a"), broken], ignore_errors=True)
    assert [r.policy for r in report.failed] == ["foo/broken"]
    assert isinstance(report.failed[0].summary.errors[0], DecodeError)
    assert [r.name for r in report.output] == ["a"]


def test_strict_decode_aborts_run():
    broken = {"apiVersion": "authentication.istio.io/v1alpha1", "kind": "Policy",
              "metadata": {"namespace": "foo"}, "spec": {}}
    with pytest.raises(DecodeError):
        _run([broken], strict_decode=True)


def test_listing_failure_is_skipped():
    class FlakyInventory(ManifestInventory):
        def list_objects(self, kind):
            if kind == LEGACY_POLICY_KINDS[1]:
                raise InventoryError("404 Not Found")
            return super().list_objects(kind)

    cap = Capture()
    orch = ConversionOrchestrator(FlakyInventory([_policy("a")]), PolicyConverter(),
                                  bus=EventBus([cap]))
    report = orch.run()
    assert report.ok
    assert report.skipped_kinds == ["meshpolicies"]
    assert any(e.__class__.__name__ == "ResourceKindSkipped" for e in cap.events)


def test_rerun_is_idempotent():
    objects = [_svc("httpbin"), _policy("a", targets=["httpbin"]), _policy("b")]
    first = [r.to_manifest() for r in _run(objects).output]
    second = [r.to_manifest() for r in _run(objects).output]
    assert first == second


def test_policy_without_namespace_is_not_promoted_to_mesh_wide():
    unscoped = _policy("default", ns="", peers=[{"mtls": {"mode": "PERMISSIVE"}}])
    mesh = _policy("default", ns="", kind="MeshPolicy")
    report = _run([unscoped, mesh], ignore_errors=True)
    assert not report.ok
    assert [r.policy for r in report.failed] == ["/default"]
    assert isinstance(report.failed[0].summary.errors[0], DecodeError)
    pairs = [(r.namespace, r.name) for r in report.output]
    assert pairs == [("istio-system", "default")]
    assert report.output[0].mode.value == "STRICT"


def test_legacy_rbac_is_logged_as_warning(caplog, monkeypatch):
    import logging
    monkeypatch.setattr(logging.getLogger("authnconvert"), "propagate", True)
    rbac = {"apiVersion": "rbac.istio.io/v1alpha1", "kind": "ServiceRole",
            "metadata": {"name": "viewer", "namespace": "foo"}, "spec": {}}
    with caplog.at_level(logging.DEBUG, logger="authnconvert"):
        _run([rbac])
    records = [r for r in caplog.records if "RBAC resources" in r.getMessage()]
    assert [r.levelno for r in records] == [logging.WARNING]
