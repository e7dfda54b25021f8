from pathlib import Path

import yaml

from authnconvert.convert.converter import PolicyConverter
from authnconvert.policy.decoder import decode_policy
from authnconvert.selector.resolver import SelectorResolver, build_selector_index
from authnconvert.utils.serialize import render, render_json, render_yaml

TESTDATA = Path(__file__).parent / "testdata"

JWT_BASIC = {
    "apiVersion": "authentication.istio.io/v1alpha1",
    "kind": "Policy",
    "metadata": {"name": "jwt-basic", "namespace": "foo"},
    "spec": {
        "targets": [{"name": "httpbin"}],
        "peers": [{"mtls": {}}],
        "peerIsOptional": True,
        "origins": [{"jwt": {
            "issuer": "testing@secure.istio.io",
            "jwksUri": "https://raw.githubusercontent.com/istio/istio/release-1.4/security/tools/jwt/samples/jwks.json",
        }}],
        "principalBinding": "USE_ORIGIN",
    },
}

HTTPBIN = {"apiVersion": "v1", "kind": "Service",
           "metadata": {"name": "httpbin", "namespace": "foo"},
           "spec": {"selector": {"app": "httpbin"}}}


def _convert():
    resolver = SelectorResolver(build_selector_index([HTTPBIN]))
    resources, summary = PolicyConverter().convert(decode_policy(JWT_BASIC), resolver)
    assert summary.ok
    return resources


def _strip_creation_timestamp(doc):
    doc["metadata"].pop("creationTimestamp", None)
    return doc


def test_jwt_basic_matches_reference_output():
    expected = [
        _strip_creation_timestamp(d)
        for d in yaml.safe_load_all((TESTDATA / "jwt-basic-output.yaml").read_text())
        if d
    ]
    actual = [d for d in yaml.safe_load_all(render_yaml(_convert())) if d]
    assert actual == expected


def test_rendering_is_byte_identical_across_runs():
    assert render_yaml(_convert()) == render_yaml(_convert())


def test_yaml_documents_are_separated():
    text = render_yaml(_convert())
    assert text.count("\n---\n") == 3
    assert "creationTimestamp" not in text


def test_json_list_rendering():
    body = yaml.safe_load(render_json(_convert()))
    assert body["kind"] == "List"
    assert [i["kind"] for i in body["items"]] == [
        "PeerAuthentication", "RequestAuthentication", "AuthorizationPolicy",
    ]
    assert render(_convert(), "json") == render_json(_convert())


def test_implicit_target_omits_selector():
    policy = dict(JWT_BASIC, spec=dict(JWT_BASIC["spec"], targets=[]))
    resources, _ = PolicyConverter().convert(decode_policy(policy), SelectorResolver({}))
    for doc in yaml.safe_load_all(render_yaml(resources)):
        if doc:
            assert "selector" not in doc["spec"]
            assert doc["metadata"]["name"] == "jwt-basic"
