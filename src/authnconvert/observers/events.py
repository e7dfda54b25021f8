# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str                 # ISO timestamp
    run_id: str             # correlates all events in a single conversion run
    context: Optional[str]  # kube-context, None for offline runs

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(context: Optional[str], run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "context": context,
    }


# ---------------------------------------------------------------------
# Per-policy lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PolicyConverted(BaseEvent):
    policy: str             # namespace/name
    resources: List[str]    # Kind/name of every generated resource
    warnings: List[str]

@dataclass(frozen=True)
class PolicyFailed(BaseEvent):
    policy: str
    errors: List[str]
    warnings: List[str]

@dataclass(frozen=True)
class PolicyDecodeFailed(BaseEvent):
    policy: str
    error: str


# ---------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ResourceKindSkipped(BaseEvent):
    kind: str
    error: str

@dataclass(frozen=True)
class LegacyRbacDetected(BaseEvent):
    resources: List[str]


# ---------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ConversionFinished(BaseEvent):
    converted: int
    failed: int
    rbac: int
    emitted: int
    ok: bool
