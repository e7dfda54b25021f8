import textwrap

import pytest

from authnconvert.k8s.kinds import LEGACY_POLICY_KINDS, LEGACY_RBAC_KINDS
from authnconvert.k8s.manifests import ManifestInventory, parse_manifests
from authnconvert.policy.errors import ClusterError


def test_parse_multi_document_files_and_lists(tmp_path):
    f = tmp_path / "cluster.yaml"
    f.write_text(textwrap.dedent("""
        apiVersion: v1
        kind: Service
        metadata: {name: httpbin, namespace: foo}
        spec:
          selector: {app: httpbin}
        ---
        ---
        apiVersion: v1
        kind: List
        items:
        - apiVersion: authentication.istio.io/v1alpha1
          kind: Policy
          metadata: {name: a, namespace: foo}
          spec: {}
        - apiVersion: rbac.istio.io/v1alpha1
          kind: ServiceRole
          metadata: {name: viewer, namespace: foo}
    """))
    inv = ManifestInventory.from_files([f])
    assert [s["metadata"]["name"] for s in inv.list_services()] == ["httpbin"]
    assert [p["metadata"]["name"] for p in inv.list_objects(LEGACY_POLICY_KINDS[0])] == ["a"]
    assert inv.list_objects(LEGACY_POLICY_KINDS[1]) == []
    assert [r["kind"] for r in inv.list_objects(LEGACY_RBAC_KINDS[3])] == ["ServiceRole"]


def test_same_kind_from_other_group_is_ignored():
    inv = ManifestInventory([
        {"apiVersion": "example.com/v1", "kind": "Policy", "metadata": {"name": "x"}},
    ])
    assert inv.list_objects(LEGACY_POLICY_KINDS[0]) == []


def test_bad_yaml_is_reported(tmp_path):
    f = tmp_path / "bad.yaml"
    f.write_text("kind: [unterminated\n")
    with pytest.raises(ClusterError, match="bad.yaml"):
        parse_manifests([f])
