# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/policy/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple, Union


# -----------------------------
# Enums
# -----------------------------

class PrincipalBinding(str, Enum):
    USE_PEER = "USE_PEER"
    USE_ORIGIN = "USE_ORIGIN"
    UNSPECIFIED = "UNSPECIFIED"


class PeerMethodKind(str, Enum):
    MUTUAL_TLS = "mtls"
    JWT = "jwt"


class MutualTlsMode(str, Enum):
    STRICT = "STRICT"
    PERMISSIVE = "PERMISSIVE"


# Absent principalBinding behaves like USE_PEER: no extra enforcement resource.
PRINCIPAL_BINDING_DEFAULT = PrincipalBinding.UNSPECIFIED

# Only MeshPolicy objects may omit metadata.namespace.
MESH_POLICY_KIND = "MeshPolicy"


# -----------------------------
# Peer / origin methods
# -----------------------------

@dataclass(frozen=True)
class PeerMethod:
    kind: PeerMethodKind = PeerMethodKind.MUTUAL_TLS
    mode: MutualTlsMode = MutualTlsMode.STRICT


@dataclass(frozen=True)
class PathMatcher:
    match_type: str          # exact | prefix | suffix | regex
    value: str


@dataclass(frozen=True)
class TriggerRule:
    included_paths: Tuple[PathMatcher, ...] = ()
    excluded_paths: Tuple[PathMatcher, ...] = ()


@dataclass(frozen=True)
class JwtSpec:
    issuer: str
    jwks_uri: str = ""
    audiences: FrozenSet[str] = frozenset()
    jwt_headers: Tuple[str, ...] = ()
    jwt_params: Tuple[str, ...] = ()
    trigger_rules: Tuple[TriggerRule, ...] = ()


# -----------------------------
# Targets
# -----------------------------

@dataclass(frozen=True)
class Target:
    service_name: str
    ports: Optional[FrozenSet[Union[int, str]]] = None


# -----------------------------
# Root
# -----------------------------

@dataclass
class LegacyPolicy:
    name: str
    namespace: str = ""
    kind: str = "Policy"
    peer_is_optional: bool = False
    peer_methods: List[PeerMethod] = field(default_factory=list)
    origin_is_optional: bool = False
    origin_methods: List[JwtSpec] = field(default_factory=list)
    principal_binding: PrincipalBinding = PRINCIPAL_BINDING_DEFAULT
    targets: List[Target] = field(default_factory=list)

    @property
    def is_mesh_scoped(self) -> bool:
        return not self.namespace

    @property
    def full_name(self) -> str:
        return f"{self.namespace}/{self.name}"


# (namespace, service name) -> pod label selector; None when the service has none
SelectorIndex = Dict[Tuple[str, str], Optional[Dict[str, str]]]
