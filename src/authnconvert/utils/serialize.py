# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/utils/serialize.py

import json
from dataclasses import is_dataclass, asdict
from enum import Enum
from typing import Any, Iterable

import yaml


def to_jsonable(obj: Any) -> Any:
    if hasattr(obj, "to_manifest"):
        return obj.to_manifest()

    if is_dataclass(obj):
        return to_jsonable(asdict(obj))

    if isinstance(obj, dict):
        return {k: to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]

    if isinstance(obj, (set, frozenset)):
        return sorted(to_jsonable(v) for v in obj)

    if isinstance(obj, Enum):
        return obj.value

    return obj


def render_yaml(resources: Iterable[Any]) -> str:
    """One YAML document per resource, each terminated by a `---` separator."""
    out = []
    for r in resources:
        doc = yaml.safe_dump(to_jsonable(r), default_flow_style=False, sort_keys=True)
        out.append(doc + "\n---\n")
    return "".join(out)


def render_json(resources: Iterable[Any]) -> str:
    body = {"apiVersion": "v1", "kind": "List", "items": [to_jsonable(r) for r in resources]}
    return json.dumps(body, indent=2, sort_keys=True) + "\n"


def render(resources: Iterable[Any], fmt: str = "yaml") -> str:
    if fmt == "json":
        return render_json(resources)
    return render_yaml(resources)
