# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/k8s/manifests.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List

import yaml

from authnconvert.policy.errors import ClusterError

from .kinds import SERVICE, ResourceKind

log = logging.getLogger("authnconvert")


def parse_manifests(paths: Iterable[str | Path]) -> List[Dict[str, Any]]:
    """Load every document from multi-document YAML files, unwrapping v1 Lists."""
    objects: List[Dict[str, Any]] = []
    for path in paths:
        path = Path(path)
        try:
            with path.open() as f:
                docs = list(yaml.safe_load_all(f))
        except OSError as exc:
            raise ClusterError(f"could not read {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ClusterError(f"failed to parse {path}: {exc}") from exc
        for doc in docs:
            if not isinstance(doc, dict):
                continue
            if str(doc.get("kind", "")).endswith("List"):
                objects.extend(i for i in doc.get("items") or [] if isinstance(i, dict))
            else:
                objects.append(doc)
        log.debug("Loaded %s", path)
    return objects


class ManifestInventory:
    """Offline inventory over objects read from YAML files."""

    def __init__(self, objects: Iterable[Dict[str, Any]]):
        self.objects = list(objects)

    @classmethod
    def from_files(cls, paths: Iterable[str | Path]) -> "ManifestInventory":
        return cls(parse_manifests(paths))

    def _matching(self, kind: ResourceKind) -> List[Dict[str, Any]]:
        out = []
        for obj in self.objects:
            if obj.get("kind") != kind.kind:
                continue
            api_version = obj.get("apiVersion") or ""
            if api_version and api_version != kind.api_version:
                continue
            out.append(obj)
        return out

    def list_services(self) -> List[Dict[str, Any]]:
        return self._matching(SERVICE)

    def list_objects(self, kind: ResourceKind) -> List[Dict[str, Any]]:
        return self._matching(kind)
