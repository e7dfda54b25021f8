# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/convert/converter.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from authnconvert.policy.errors import (
    AmbiguousSelector,
    ConversionIssue,
    TargetNotFound,
    TriggerRuleApproximated,
    TriggerRuleRejected,
    UnsupportedConstruct,
)
from authnconvert.policy.models import (
    LegacyPolicy,
    MutualTlsMode,
    PeerMethodKind,
    PrincipalBinding,
    Target,
)
from authnconvert.selector.resolver import SelectorResolver

from .resources import (
    AuthorizationAction,
    AuthorizationPolicy,
    DenyRule,
    GeneratedResource,
    JwtRule,
    PeerAuthentication,
    PeerAuthenticationMode,
    RequestAuthentication,
)

DEFAULT_ROOT_NAMESPACE = "istio-system"

TRIGGER_RULES_APPROXIMATE = "approximate"
TRIGGER_RULES_REJECT = "reject"


@dataclass
class ConversionSummary:
    errors: List[ConversionIssue] = field(default_factory=list)
    warnings: List[ConversionIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def messages(self) -> Tuple[List[str], List[str]]:
        return [str(e) for e in self.errors], [str(w) for w in self.warnings]


class PolicyConverter:
    """
    Convert one legacy authentication policy into v1beta1 security resources.

    Pure given the resolver's index: the same policy always yields the same
    resources and summary. Errors are collected across every target so that
    one pass reports every defect; callers discard `resources` unless
    `summary.ok`.
    """

    def __init__(
        self,
        root_namespace: str = DEFAULT_ROOT_NAMESPACE,
        trigger_rules: str = TRIGGER_RULES_APPROXIMATE,
    ):
        if trigger_rules not in (TRIGGER_RULES_APPROXIMATE, TRIGGER_RULES_REJECT):
            raise ValueError(f"unknown trigger rule handling {trigger_rules!r}")
        self.root_namespace = root_namespace
        self.trigger_rules = trigger_rules

    def convert(
        self,
        policy: LegacyPolicy,
        resolver: SelectorResolver,
    ) -> Tuple[List[GeneratedResource], ConversionSummary]:
        summary = ConversionSummary()
        self._check_policy_shape(policy, summary)
        shape_ok = summary.ok

        namespace = policy.namespace or self.root_namespace
        resources: List[GeneratedResource] = []

        targets: List[Optional[Target]] = list(policy.targets) or [None]
        for target in targets:
            if target is None:
                name = policy.name
                selector = None
                provenance = f"converted from alpha authentication policy {policy.full_name}"
            else:
                selector = self._resolve_target(resolver, namespace, target, summary)
                if selector is None:
                    continue
                name = f"{policy.name}-{target.service_name}"
                provenance = (
                    f"converted from alpha authentication policy {policy.full_name}, "
                    f"service {target.service_name}"
                )
            if shape_ok:
                resources.extend(
                    self._build(policy, name, namespace, selector, provenance)
                )

        return resources, summary

    # -----------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------

    def _check_policy_shape(self, policy: LegacyPolicy, summary: ConversionSummary) -> None:
        if len(policy.peer_methods) > 1:
            summary.errors.append(
                UnsupportedConstruct(
                    f"found {len(policy.peer_methods)} peer methods, "
                    f"at most one mTLS peer method is supported"
                )
            )
        elif any(p.kind is PeerMethodKind.JWT for p in policy.peer_methods):
            summary.errors.append(
                UnsupportedConstruct("peer JWT authentication is not supported")
            )

        for origin in policy.origin_methods:
            if not origin.trigger_rules:
                continue
            if self.trigger_rules == TRIGGER_RULES_REJECT:
                summary.errors.append(
                    TriggerRuleRejected(
                        f"JWT issuer {origin.issuer} uses trigger rules, "
                        f"path-scoped JWT validation has no equivalent"
                    )
                )
            else:
                summary.warnings.append(
                    TriggerRuleApproximated(
                        f"JWT issuer {origin.issuer} uses trigger rules, "
                        f"the converted rule applies to all paths"
                    )
                )

    def _resolve_target(
        self,
        resolver: SelectorResolver,
        namespace: str,
        target: Target,
        summary: ConversionSummary,
    ) -> Optional[Dict[str, str]]:
        if target.ports:
            ports = ", ".join(str(p) for p in sorted(target.ports, key=str))
            summary.errors.append(
                UnsupportedConstruct(
                    f"target {target.service_name} selects ports [{ports}], "
                    f"port-level targets are not supported"
                )
            )
            return None
        try:
            return resolver.resolve(namespace, target.service_name)
        except (TargetNotFound, AmbiguousSelector) as exc:
            summary.errors.append(exc)
            return None

    # -----------------------------------------------------------------
    # Resource derivation
    # -----------------------------------------------------------------

    def _build(
        self,
        policy: LegacyPolicy,
        name: str,
        namespace: str,
        selector: Optional[Dict[str, str]],
        provenance: str,
    ) -> List[GeneratedResource]:
        common = dict(name=name, namespace=namespace, provenance=provenance, selector=selector)
        out: List[GeneratedResource] = []

        mode = mtls_mode(policy)
        if mode is not None:
            out.append(PeerAuthentication(mode=mode, **common))

        rules = jwt_rules(policy)
        if rules:
            out.append(RequestAuthentication(jwt_rules=rules, **common))
            if policy.principal_binding is PrincipalBinding.USE_ORIGIN:
                out.append(
                    AuthorizationPolicy(
                        action=AuthorizationAction.DENY,
                        rules=[DenyRule(requires_request_principal=True)],
                        **common,
                    )
                )
        return out


def mtls_mode(policy: LegacyPolicy) -> Optional[PeerAuthenticationMode]:
    """None when the policy has no peer method (no PeerAuthentication emitted)."""
    if not policy.peer_methods:
        return None
    method = policy.peer_methods[0]
    if policy.peer_is_optional or method.mode is MutualTlsMode.PERMISSIVE:
        return PeerAuthenticationMode.PERMISSIVE
    return PeerAuthenticationMode.STRICT


def jwt_rules(policy: LegacyPolicy) -> List[JwtRule]:
    return [
        JwtRule(
            issuer=o.issuer,
            jwks_uri=o.jwks_uri,
            audiences=tuple(sorted(o.audiences)),
            jwt_headers=o.jwt_headers,
            jwt_params=o.jwt_params,
        )
        for o in policy.origin_methods
    ]
