# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/policy/errors.py


class ConversionIssue(Exception):
    """Base class for everything recorded in a ConversionSummary."""

    @property
    def kind(self) -> str:
        return self.__class__.__name__


class DecodeError(ConversionIssue, ValueError):
    """Raised when a legacy policy object is missing or has a malformed field."""

    def __init__(self, field: str, reason: str = "missing or malformed"):
        self.field = field
        self.reason = reason
        super().__init__(f"invalid legacy policy field {field}: {reason}")


class TargetNotFound(ConversionIssue, LookupError):
    def __init__(self, namespace: str, service_name: str):
        self.namespace = namespace
        self.service_name = service_name
        super().__init__(
            f"could not find service {service_name} in namespace {namespace}"
        )


class AmbiguousSelector(ConversionIssue, LookupError):
    def __init__(self, namespace: str, service_name: str):
        self.namespace = namespace
        self.service_name = service_name
        super().__init__(
            f"service {namespace}/{service_name} has no pod selector "
            f"(headless or external service), cannot derive workload selector"
        )


class UnsupportedConstruct(ConversionIssue):
    pass


class TriggerRuleRejected(ConversionIssue):
    pass


class TriggerRuleApproximated(ConversionIssue):
    pass


class LegacyRbacPresent(ConversionIssue):
    def __init__(self, kind: str, namespace: str, name: str):
        self.resource_kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(f"{kind}: {namespace}/{name}")


class ClusterError(RuntimeError):
    """Cluster access or mesh configuration problem; aborts the run."""


class ConversionFailed(RuntimeError):
    """Raised when a run collected errors and best-effort mode is off."""

    def __init__(self, report):
        self.report = report
        super().__init__(
            "conversion failed, found errors during conversion, "
            "please fix errors and re-run the tool again"
        )


class InventoryError(RuntimeError):
    """Listing one kind of object failed (e.g. its CRD is not installed)."""
