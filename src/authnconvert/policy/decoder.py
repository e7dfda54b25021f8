# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/policy/decoder.py

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .errors import DecodeError
from .models import (
    MESH_POLICY_KIND,
    PRINCIPAL_BINDING_DEFAULT,
    JwtSpec,
    LegacyPolicy,
    MutualTlsMode,
    PathMatcher,
    PeerMethod,
    PeerMethodKind,
    PrincipalBinding,
    Target,
    TriggerRule,
)

_PATH_MATCH_TYPES = ("exact", "prefix", "suffix", "regex")


def _get(obj: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key; legacy objects use camelCase or snake_case."""
    for k in keys:
        if k in obj and obj[k] is not None:
            return obj[k]
    return default


def _mapping(value: Any, field: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DecodeError(field, "expected a mapping")
    return value


def _sequence(value: Any, field: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError(field, "expected a list")
    return value


def _flag(value: Any, field: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise DecodeError(field, "expected a boolean")
    return value


def _strings(value: Any, field: str) -> List[str]:
    items = _sequence(value, field)
    for i, item in enumerate(items):
        if not isinstance(item, str):
            raise DecodeError(f"{field}[{i}]", "expected a string")
    return items


def _decode_peer(entry: Any, field: str) -> PeerMethod:
    entry = _mapping(entry, field)
    if "mtls" in entry:
        # `mtls: {}` and `mtls: null` both mean STRICT
        mtls = _mapping(entry["mtls"], f"{field}.mtls")
        mode = mtls.get("mode") or MutualTlsMode.STRICT.value
        try:
            return PeerMethod(kind=PeerMethodKind.MUTUAL_TLS, mode=MutualTlsMode(str(mode).upper()))
        except ValueError:
            raise DecodeError(f"{field}.mtls.mode", f"unknown mode {mode!r}") from None
    if "jwt" in entry:
        return PeerMethod(kind=PeerMethodKind.JWT)
    raise DecodeError(field, "expected one of mtls, jwt")


def _decode_matcher(entry: Any, field: str) -> PathMatcher:
    entry = _mapping(entry, field)
    for match_type in _PATH_MATCH_TYPES:
        if match_type in entry:
            return PathMatcher(match_type=match_type, value=str(entry[match_type]))
    raise DecodeError(field, f"expected one of {', '.join(_PATH_MATCH_TYPES)}")


def _decode_trigger_rule(entry: Any, field: str) -> TriggerRule:
    entry = _mapping(entry, field)
    included = _sequence(_get(entry, "includedPaths", "included_paths"), f"{field}.includedPaths")
    excluded = _sequence(_get(entry, "excludedPaths", "excluded_paths"), f"{field}.excludedPaths")
    return TriggerRule(
        included_paths=tuple(
            _decode_matcher(m, f"{field}.includedPaths[{i}]") for i, m in enumerate(included)
        ),
        excluded_paths=tuple(
            _decode_matcher(m, f"{field}.excludedPaths[{i}]") for i, m in enumerate(excluded)
        ),
    )


def _decode_origin(entry: Any, field: str) -> JwtSpec:
    entry = _mapping(entry, field)
    if not isinstance(entry.get("jwt"), dict):
        raise DecodeError(f"{field}.jwt", "expected a mapping")
    jwt = entry["jwt"]
    issuer = jwt.get("issuer")
    if not issuer or not isinstance(issuer, str):
        raise DecodeError(f"{field}.jwt.issuer")
    jwks_uri = _get(jwt, "jwksUri", "jwks_uri", default="")
    if not isinstance(jwks_uri, str):
        raise DecodeError(f"{field}.jwt.jwksUri", "expected a string")
    rules = _sequence(_get(jwt, "triggerRules", "trigger_rules"), f"{field}.jwt.triggerRules")
    return JwtSpec(
        issuer=issuer,
        jwks_uri=jwks_uri,
        audiences=frozenset(_strings(jwt.get("audiences"), f"{field}.jwt.audiences")),
        jwt_headers=tuple(_strings(_get(jwt, "jwtHeaders", "jwt_headers"), f"{field}.jwt.jwtHeaders")),
        jwt_params=tuple(_strings(_get(jwt, "jwtParams", "jwt_params"), f"{field}.jwt.jwtParams")),
        trigger_rules=tuple(
            _decode_trigger_rule(r, f"{field}.jwt.triggerRules[{i}]") for i, r in enumerate(rules)
        ),
    )


def _decode_target(entry: Any, field: str) -> Target:
    entry = _mapping(entry, field)
    name = entry.get("name")
    if not name or not isinstance(name, str):
        raise DecodeError(f"{field}.name")
    raw_ports = _sequence(entry.get("ports"), f"{field}.ports")
    if not raw_ports:
        return Target(service_name=name)
    ports = set()
    for i, p in enumerate(raw_ports):
        p = _mapping(p, f"{field}.ports[{i}]")
        port = _get(p, "number", "name")
        if port is None:
            raise DecodeError(f"{field}.ports[{i}]", "expected number or name")
        ports.add(port)
    return Target(service_name=name, ports=frozenset(ports))


def _decode_binding(value: Optional[str]) -> PrincipalBinding:
    if value is None or value == "":
        return PRINCIPAL_BINDING_DEFAULT
    try:
        return PrincipalBinding(str(value).upper())
    except ValueError:
        raise DecodeError("spec.principalBinding", f"unknown value {value!r}") from None


def decode_policy(obj: Dict[str, Any]) -> LegacyPolicy:
    """
    Decode a generic legacy authentication Policy / MeshPolicy object.

    Optional fields default to False / empty / PRINCIPAL_BINDING_DEFAULT.
    Raises DecodeError naming the first malformed field.
    """
    if not isinstance(obj, dict):
        raise DecodeError("<object>", "expected a mapping")

    meta = _mapping(obj.get("metadata"), "metadata")
    name = meta.get("name")
    if not name or not isinstance(name, str):
        raise DecodeError("metadata.name")

    spec = _mapping(obj.get("spec"), "spec")

    peers = _sequence(spec.get("peers"), "spec.peers")
    origins = _sequence(spec.get("origins"), "spec.origins")
    targets = _sequence(spec.get("targets"), "spec.targets")

    policy = LegacyPolicy(
        name=name,
        namespace=meta.get("namespace") or "",
        kind=obj.get("kind") or "Policy",
        peer_is_optional=_flag(_get(spec, "peerIsOptional", "peer_is_optional"), "spec.peerIsOptional"),
        peer_methods=[_decode_peer(p, f"spec.peers[{i}]") for i, p in enumerate(peers)],
        origin_is_optional=_flag(_get(spec, "originIsOptional", "origin_is_optional"), "spec.originIsOptional"),
        origin_methods=[_decode_origin(o, f"spec.origins[{i}]") for i, o in enumerate(origins)],
        principal_binding=_decode_binding(_get(spec, "principalBinding", "principal_binding")),
        targets=[_decode_target(t, f"spec.targets[{i}]") for i, t in enumerate(targets)],
    )
    if policy.is_mesh_scoped and policy.kind != MESH_POLICY_KIND:
        raise DecodeError("metadata.namespace", f"required for kind {policy.kind}")
    return policy
