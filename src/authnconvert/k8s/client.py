# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/k8s/client.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import yaml
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from authnconvert.convert.converter import DEFAULT_ROOT_NAMESPACE
from authnconvert.policy.errors import ClusterError, InventoryError

from .kinds import ResourceKind

log = logging.getLogger("authnconvert")

ISTIO_NAMESPACE = DEFAULT_ROOT_NAMESPACE
MESH_CONFIG_MAP_NAME = "istio"
MESH_CONFIG_MAP_KEY = "mesh"


class KubeInventory:
    """
    Live-cluster inventory backed by the kubernetes python client.

    Lists are paginated with `limit`/`_continue`; every object is returned as
    a plain dict shaped like the API's JSON.
    """

    def __init__(self, core_api, custom_api, *, page_size: int = 500):
        self.core = core_api
        self.custom = custom_api
        self.page_size = page_size

    @classmethod
    def from_kubeconfig(
        cls,
        kubeconfig: Optional[str] = None,
        context: Optional[str] = None,
        *,
        page_size: int = 500,
    ) -> "KubeInventory":
        if kubeconfig:
            p = Path(kubeconfig)
            if not p.is_file() or p.stat().st_size == 0:
                raise ClusterError(f"kubeconfig ({kubeconfig}) specified but could not be read")
        try:
            config.load_kube_config(config_file=kubeconfig, context=context)
        except config.ConfigException as exc:
            raise ClusterError(f"failed to load kubeconfig: {exc}") from exc
        return cls(client.CoreV1Api(), client.CustomObjectsApi(), page_size=page_size)

    # -----------------------------------------------------------------
    # Mesh configuration
    # -----------------------------------------------------------------

    def ensure_istio_namespace(self) -> None:
        try:
            self.core.read_namespace(ISTIO_NAMESPACE)
        except ApiException as exc:
            raise ClusterError(f"could not find {ISTIO_NAMESPACE} namespace") from exc

    def discover_root_namespace(self) -> str:
        """Read rootNamespace from the mesh config, defaulting to istio-system."""
        try:
            cm = self.core.read_namespaced_config_map(MESH_CONFIG_MAP_NAME, ISTIO_NAMESPACE)
        except ApiException as exc:
            if exc.status == 404:
                log.info(
                    "could not find mesh config %s, using %s as default root namespace",
                    MESH_CONFIG_MAP_NAME, ISTIO_NAMESPACE,
                )
                return ISTIO_NAMESPACE
            raise ClusterError(f"failed to get meshconfig: {exc.reason}") from exc

        data = cm.data or {}
        if MESH_CONFIG_MAP_KEY not in data:
            raise ClusterError(f"missing config map key {MESH_CONFIG_MAP_KEY!r}")
        try:
            mesh = yaml.safe_load(data[MESH_CONFIG_MAP_KEY]) or {}
        except yaml.YAMLError as exc:
            raise ClusterError(f"failed parsing mesh config: {exc}") from exc

        root = mesh.get("rootNamespace") if isinstance(mesh, dict) else None
        if isinstance(root, str) and root:
            log.info("found root namespace: %s", root)
            return root
        log.info("root namespace not set, using %s as default", ISTIO_NAMESPACE)
        return ISTIO_NAMESPACE

    # -----------------------------------------------------------------
    # Listing
    # -----------------------------------------------------------------

    def list_services(self) -> Iterator[Dict[str, Any]]:
        token = None
        while True:
            kwargs: Dict[str, Any] = {"limit": self.page_size}
            if token:
                kwargs["_continue"] = token
            try:
                resp = self.core.list_service_for_all_namespaces(**kwargs)
            except ApiException as exc:
                raise ClusterError(f"failed to list services: {exc.reason}") from exc
            for svc in resp.items:
                yield {
                    "metadata": {"name": svc.metadata.name, "namespace": svc.metadata.namespace},
                    "spec": {"selector": (svc.spec.selector if svc.spec else None)},
                }
            token = getattr(resp.metadata, "_continue", None)
            if not token:
                return

    def list_objects(self, kind: ResourceKind) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        token = None
        while True:
            kwargs: Dict[str, Any] = {"limit": self.page_size}
            if token:
                kwargs["_continue"] = token
            try:
                resp = self.custom.list_cluster_custom_object(
                    kind.group, kind.version, kind.plural, **kwargs
                )
            except ApiException as exc:
                raise InventoryError(f"{exc.status} {exc.reason}") from exc
            for obj in resp.get("items") or []:
                obj.setdefault("kind", kind.kind)
                items.append(obj)
            token = (resp.get("metadata") or {}).get("continue")
            if not token:
                return items
