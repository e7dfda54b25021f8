# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/k8s/kinds.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class ResourceKind:
    group: str
    version: str
    plural: str
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


SERVICE = ResourceKind("", "v1", "services", "Service")

LEGACY_POLICY_KINDS: Tuple[ResourceKind, ...] = (
    ResourceKind("authentication.istio.io", "v1alpha1", "policies", "Policy"),
    ResourceKind("authentication.istio.io", "v1alpha1", "meshpolicies", "MeshPolicy"),
)

LEGACY_RBAC_KINDS: Tuple[ResourceKind, ...] = (
    ResourceKind("rbac.istio.io", "v1alpha1", "rbacconfigs", "RbacConfig"),
    ResourceKind("rbac.istio.io", "v1alpha1", "clusterrbacconfigs", "ClusterRbacConfig"),
    ResourceKind("rbac.istio.io", "v1alpha1", "servicerolebindings", "ServiceRoleBinding"),
    ResourceKind("rbac.istio.io", "v1alpha1", "serviceroles", "ServiceRole"),
)
