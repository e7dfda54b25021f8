# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/selector/resolver.py

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping

from authnconvert.policy.errors import AmbiguousSelector, TargetNotFound
from authnconvert.policy.models import SelectorIndex

log = logging.getLogger("authnconvert")


def build_selector_index(services: Iterable[Mapping[str, Any]]) -> SelectorIndex:
    """
    Index Service objects by (namespace, name) -> spec.selector.

    Services without a selector (headless / ExternalName) are kept with a
    None selector so the resolver can tell them apart from missing services.
    """
    index: SelectorIndex = {}
    for svc in services:
        meta = svc.get("metadata") or {}
        spec = svc.get("spec") or {}
        name = meta.get("name", "")
        if not name:
            continue
        selector = spec.get("selector") or None
        index[(meta.get("namespace") or "", name)] = dict(selector) if selector else None
    log.debug("Indexed %d services", len(index))
    return index


class SelectorResolver:
    """Exact (namespace, service) lookup against a pre-built SelectorIndex."""

    def __init__(self, index: SelectorIndex):
        self._index = index

    def resolve(self, namespace: str, service_name: str) -> Dict[str, str]:
        key = (namespace, service_name)
        if key not in self._index:
            raise TargetNotFound(namespace, service_name)
        selector = self._index[key]
        if not selector:
            raise AmbiguousSelector(namespace, service_name)
        return dict(selector)
