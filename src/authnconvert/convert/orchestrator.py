# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/convert/orchestrator.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol

from authnconvert.k8s.kinds import LEGACY_POLICY_KINDS, LEGACY_RBAC_KINDS, ResourceKind
from authnconvert.observers.dispatcher import EventBus
from authnconvert.observers.events import (
    ConversionFinished,
    LegacyRbacDetected,
    PolicyConverted,
    PolicyDecodeFailed,
    PolicyFailed,
    ResourceKindSkipped,
    new_ctx,
)
from authnconvert.policy.decoder import decode_policy
from authnconvert.policy.errors import (
    ConversionFailed,
    DecodeError,
    InventoryError,
    LegacyRbacPresent,
)
from authnconvert.selector.resolver import SelectorResolver, build_selector_index

from .converter import ConversionSummary, PolicyConverter
from .resources import GeneratedResource

log = logging.getLogger("authnconvert")

RBAC_MIGRATION_DOC = (
    "https://istio.io/latest/blog/2019/v1beta1-authorization-policy/"
    "#migration-from-the-v1alpha1-policy"
)


class Inventory(Protocol):
    """Source of cluster objects; implemented for live clusters and YAML files."""

    def list_services(self) -> Iterable[Dict[str, Any]]: ...

    def list_objects(self, kind: ResourceKind) -> List[Dict[str, Any]]: ...


@dataclass
class PolicyResult:
    policy: str
    resources: List[GeneratedResource]
    summary: ConversionSummary

    @property
    def ok(self) -> bool:
        return self.summary.ok


@dataclass
class RunReport:
    """Accumulated outcome of one conversion run."""
    results: List[PolicyResult] = field(default_factory=list)
    rbac: List[LegacyRbacPresent] = field(default_factory=list)
    skipped_kinds: List[str] = field(default_factory=list)
    accumulated: List[GeneratedResource] = field(default_factory=list)
    ignore_errors: bool = False

    @property
    def failed(self) -> List[PolicyResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failed and not self.rbac

    @property
    def output(self) -> List[GeneratedResource]:
        """Resources that may reach the caller: all or nothing unless ignore_errors."""
        if self.ok or self.ignore_errors:
            return list(self.accumulated)
        return []

    def raise_for_status(self) -> None:
        if not self.ok:
            raise ConversionFailed(self)


def _object_name(obj: Dict[str, Any]) -> str:
    meta = obj.get("metadata") or {}
    return f"{meta.get('namespace') or ''}/{meta.get('name') or ''}"


def _sorted(objects: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(objects, key=lambda o: ((o.get("metadata") or {}).get("namespace") or "",
                                          (o.get("metadata") or {}).get("name") or ""))


class ConversionOrchestrator:
    """
    Drive decode + convert over every legacy policy in an inventory.

    Output is all-or-nothing for the whole run: a single failed policy, or any
    legacy RBAC resource, empties `RunReport.output` unless ignore_errors.
    """

    def __init__(
        self,
        inventory: Inventory,
        converter: PolicyConverter,
        *,
        ignore_errors: bool = False,
        strict_decode: bool = False,
        bus: Optional[EventBus] = None,
        run_ctx: Optional[dict] = None,
    ):
        self.inventory = inventory
        self.converter = converter
        self.ignore_errors = ignore_errors
        self.strict_decode = strict_decode
        self.bus = bus or EventBus()
        self.ctx = run_ctx or new_ctx(context=None)

    def run(self) -> RunReport:
        report = RunReport(ignore_errors=self.ignore_errors)
        resolver = SelectorResolver(build_selector_index(self.inventory.list_services()))

        for kind in LEGACY_POLICY_KINDS:
            for obj in self._list(kind, report):
                report.results.append(self._convert_one(obj, resolver, report))

        report.rbac = self.find_legacy_rbac(report)
        self._finish(report)
        return report

    def find_legacy_rbac(self, report: Optional[RunReport] = None) -> List[LegacyRbacPresent]:
        """Enumerate legacy RBAC objects; these are never converted."""
        found: List[LegacyRbacPresent] = []
        for kind in LEGACY_RBAC_KINDS:
            for obj in self._list(kind, report, quiet=True):
                meta = obj.get("metadata") or {}
                found.append(
                    LegacyRbacPresent(obj.get("kind") or kind.kind,
                                      meta.get("namespace") or "", meta.get("name") or "")
                )
        if found:
            bullets = "".join(f"\n\t* {r}" for r in found)
            log.warning(
                "FAILED  found %d RBAC resources, this tool only supports converting "
                "authentication policy, check %s for converting RBAC resources manually: %s",
                len(found), RBAC_MIGRATION_DOC, bullets,
            )
            self.bus.emit(LegacyRbacDetected(resources=[str(r) for r in found], **self.ctx))
        return found

    # -----------------------------------------------------------------

    def _list(self, kind: ResourceKind, report: Optional[RunReport], quiet: bool = False):
        try:
            return _sorted(self.inventory.list_objects(kind))
        except InventoryError as exc:
            if quiet:
                log.debug("skipped resource %s: %s", kind.plural, exc)
            else:
                log.warning("skipped resource %s: %s", kind.plural, exc)
            if report is not None:
                report.skipped_kinds.append(kind.plural)
            self.bus.emit(ResourceKindSkipped(kind=kind.plural, error=str(exc), **self.ctx))
            return []

    def _convert_one(self, obj: Dict[str, Any], resolver: SelectorResolver,
                     report: RunReport) -> PolicyResult:
        name = _object_name(obj)
        try:
            policy = decode_policy(obj)
        except DecodeError as exc:
            if self.strict_decode:
                raise
            log.error("FAILED  decoding policy %s: %s", name, exc)
            self.bus.emit(PolicyDecodeFailed(policy=name, error=str(exc), **self.ctx))
            return PolicyResult(policy=name, resources=[], summary=ConversionSummary(errors=[exc]))

        resources, summary = self.converter.convert(policy, resolver)
        errors, warnings = summary.messages()
        for w in warnings:
            log.warning("WARNING converting policy %s: %s", name, w)

        if summary.ok:
            log.info("SUCCESS converting policy %s", name)
            report.accumulated.extend(resources)
            self.bus.emit(PolicyConverted(
                policy=name,
                resources=[f"{r.kind}/{r.name}" for r in resources],
                warnings=warnings,
                **self.ctx,
            ))
        else:
            bullets = "".join(f"\n\t* {e}" for e in errors)
            log.error("FAILED  converting policy %s, found %d errors: %s", name, len(errors), bullets)
            self.bus.emit(PolicyFailed(policy=name, errors=errors, warnings=warnings, **self.ctx))
        return PolicyResult(policy=name, resources=resources, summary=summary)

    def _finish(self, report: RunReport) -> None:
        if not report.ok:
            if self.ignore_errors:
                log.warning(
                    "Found errors but ignored with --ignore-errors, "
                    "the converted policies may not work as expected"
                )
            else:
                log.error(
                    "conversion failed, found errors during conversion, "
                    "please fix errors and re-run the tool again"
                )
        self.bus.emit(ConversionFinished(
            converted=len(report.results) - len(report.failed),
            failed=len(report.failed),
            rbac=len(report.rbac),
            emitted=len(report.output),
            ok=report.ok,
            **self.ctx,
        ))
