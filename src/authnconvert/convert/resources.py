# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/convert/resources.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

API_VERSION = "security.istio.io/v1beta1"
PROVENANCE_ANNOTATION = "security.istio.io/alpha-policy-convert"


class PeerAuthenticationMode(str, Enum):
    STRICT = "STRICT"
    PERMISSIVE = "PERMISSIVE"
    DISABLE = "DISABLE"


class AuthorizationAction(str, Enum):
    DENY = "DENY"


# -----------------------------
# Spec fragments
# -----------------------------

@dataclass(frozen=True)
class JwtRule:
    issuer: str
    jwks_uri: str = ""
    audiences: Tuple[str, ...] = ()
    jwt_headers: Tuple[str, ...] = ()
    jwt_params: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"issuer": self.issuer}
        if self.jwks_uri:
            out["jwksUri"] = self.jwks_uri
        if self.audiences:
            out["audiences"] = list(self.audiences)
        if self.jwt_headers:
            out["fromHeaders"] = [{"name": h} for h in self.jwt_headers]
        if self.jwt_params:
            out["fromParams"] = list(self.jwt_params)
        return out


@dataclass(frozen=True)
class DenyRule:
    requires_request_principal: bool = True

    def to_dict(self) -> Dict[str, Any]:
        if not self.requires_request_principal:
            return {}
        return {"from": [{"source": {"notRequestPrincipals": ["*"]}}]}


# -----------------------------
# Generated resources
# -----------------------------

@dataclass
class _Resource:
    kind: ClassVar[str] = ""

    name: str
    namespace: str
    provenance: str
    selector: Optional[Dict[str, str]] = None

    def _spec(self) -> Dict[str, Any]:
        raise NotImplementedError

    def to_manifest(self) -> Dict[str, Any]:
        spec = self._spec()
        if self.selector:
            spec["selector"] = {"matchLabels": dict(self.selector)}
        return {
            "apiVersion": API_VERSION,
            "kind": self.kind,
            "metadata": {
                "annotations": {PROVENANCE_ANNOTATION: self.provenance},
                "name": self.name,
                "namespace": self.namespace,
            },
            "spec": spec,
        }


@dataclass
class PeerAuthentication(_Resource):
    kind: ClassVar[str] = "PeerAuthentication"

    mode: PeerAuthenticationMode = PeerAuthenticationMode.STRICT

    def _spec(self) -> Dict[str, Any]:
        return {"mtls": {"mode": self.mode.value}}


@dataclass
class RequestAuthentication(_Resource):
    kind: ClassVar[str] = "RequestAuthentication"

    jwt_rules: List[JwtRule] = field(default_factory=list)

    def _spec(self) -> Dict[str, Any]:
        return {"jwtRules": [r.to_dict() for r in self.jwt_rules]}


@dataclass
class AuthorizationPolicy(_Resource):
    kind: ClassVar[str] = "AuthorizationPolicy"

    action: AuthorizationAction = AuthorizationAction.DENY
    rules: List[DenyRule] = field(default_factory=list)

    def _spec(self) -> Dict[str, Any]:
        return {"action": self.action.value, "rules": [r.to_dict() for r in self.rules]}


GeneratedResource = Union[PeerAuthentication, RequestAuthentication, AuthorizationPolicy]
