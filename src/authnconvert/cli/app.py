# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/authnconvert/cli/app.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from authnconvert.config.loader import load_settings
from authnconvert.config.models import ConverterSettings
from authnconvert.convert.converter import DEFAULT_ROOT_NAMESPACE, PolicyConverter
from authnconvert.convert.orchestrator import ConversionOrchestrator, Inventory, RunReport
from authnconvert.k8s.client import KubeInventory
from authnconvert.k8s.manifests import ManifestInventory
from authnconvert.logging.log import init_logging
from authnconvert.observers.dispatcher import EventBus
from authnconvert.observers.events import new_ctx
from authnconvert.observers.jsonfile import JsonFileObserver
from authnconvert.observers.logger import LoggerObserver
from authnconvert.policy.errors import ClusterError, ConversionFailed, DecodeError
from authnconvert.utils.serialize import render

log = logging.getLogger("authnconvert")

EXIT_CONVERSION_FAILED = 1
EXIT_USAGE = 2


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(
    help="Convert legacy Istio authentication policies to PeerAuthentication, "
         "RequestAuthentication and AuthorizationPolicy resources."
)

KubeconfigOpt = typer.Option(None, "--kubeconfig", help="Path to kubeconfig")
ContextOpt = typer.Option(None, "--context", help="Kubeconfig context to use")
RootNsOpt = typer.Option(None, "--root-namespace", help="Namespace for mesh-wide resources")
IgnoreErrorsOpt = typer.Option(
    None, "--ignore-errors",
    help="Emit resources of successfully converted policies even when others failed",
)
TriggerRulesOpt = typer.Option(
    None, "--trigger-rules",
    help="How to handle JWT trigger rules: approximate (warn) or reject (error)",
)
StrictDecodeOpt = typer.Option(None, "--strict-decode", help="Abort on the first malformed policy")
ConfigOpt = typer.Option(None, "--config", help="Settings YAML file")
OutputOpt = typer.Option(None, "--output", "-o", help="Write output here instead of stdout")
FormatOpt = typer.Option(None, "--format", help="yaml or json")
EventsOpt = typer.Option(None, "--events-file", help="Append lifecycle events as JSON lines")
LogDirOpt = typer.Option(None, "--log-dir", help="Also write a full debug log here")
VerboseOpt = typer.Option(False, "--verbose", "-v")


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def _settings(config: Optional[Path], **overrides) -> ConverterSettings:
    try:
        return load_settings(config, overrides)
    except (FileNotFoundError, ValidationError) as exc:
        log.error("invalid settings: %s", exc)
        raise typer.Exit(code=EXIT_USAGE)


def _bus(logger: logging.Logger, events_file: Optional[Path]) -> EventBus:
    observers = [LoggerObserver(logger)]
    if events_file:
        observers.append(JsonFileObserver(events_file))
    return EventBus(observers=observers)


def _write(text: str, output: Optional[Path]) -> None:
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text)
        log.info("wrote %s", output)
    else:
        typer.echo(text, nl=False)


def run_conversion(
    inventory: Inventory,
    settings: ConverterSettings,
    *,
    root_namespace: str,
    bus: EventBus,
    run_ctx: dict,
    output: Optional[Path],
) -> RunReport:
    """Convert everything in *inventory* and write whatever the run allows."""
    orchestrator = ConversionOrchestrator(
        inventory,
        PolicyConverter(root_namespace=root_namespace, trigger_rules=settings.trigger_rules),
        ignore_errors=settings.ignore_errors,
        strict_decode=settings.strict_decode,
        bus=bus,
        run_ctx=run_ctx,
    )
    try:
        report = orchestrator.run()
    except DecodeError as exc:
        log.error("failed to convert resource to authentication policy: %s", exc)
        raise typer.Exit(code=EXIT_CONVERSION_FAILED)

    resources = report.output
    if resources:
        _write(render(resources, settings.output_format), output)

    try:
        report.raise_for_status()
    except ConversionFailed as exc:
        log.error("%s", exc)
        raise typer.Exit(code=EXIT_CONVERSION_FAILED)
    return report


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def convert(
    kubeconfig: Optional[Path] = KubeconfigOpt,
    context: Optional[str] = ContextOpt,
    root_namespace: Optional[str] = RootNsOpt,
    ignore_errors: Optional[bool] = IgnoreErrorsOpt,
    trigger_rules: Optional[str] = TriggerRulesOpt,
    strict_decode: Optional[bool] = StrictDecodeOpt,
    config: Optional[Path] = ConfigOpt,
    output: Optional[Path] = OutputOpt,
    fmt: Optional[str] = FormatOpt,
    events_file: Optional[Path] = EventsOpt,
    log_dir: Optional[Path] = LogDirOpt,
    verbose: bool = VerboseOpt,
):
    """
    Convert legacy policies found in a live cluster.
    """
    logger, run_id, _ = init_logging(base_dir=log_dir, verbose=verbose)
    settings = _settings(
        config,
        kubeconfig=str(kubeconfig) if kubeconfig else None,
        kube_context=context,
        root_namespace=root_namespace,
        ignore_errors=ignore_errors,
        trigger_rules=trigger_rules,
        strict_decode=strict_decode,
        output_format=fmt,
    )

    try:
        inventory = KubeInventory.from_kubeconfig(
            settings.kubeconfig, settings.kube_context, page_size=settings.page_size
        )
        inventory.ensure_istio_namespace()
        root = settings.root_namespace or inventory.discover_root_namespace()
        run_conversion(
            inventory,
            settings,
            root_namespace=root,
            bus=_bus(logger, events_file),
            run_ctx=new_ctx(context=settings.kube_context, run_id=run_id),
            output=output,
        )
    except ClusterError as exc:
        log.error("%s", exc)
        raise typer.Exit(code=EXIT_USAGE)


@app.command("convert-files")
def convert_files(
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, readable=True,
                                       help="YAML files with legacy policies and Services"),
    root_namespace: Optional[str] = RootNsOpt,
    ignore_errors: Optional[bool] = IgnoreErrorsOpt,
    trigger_rules: Optional[str] = TriggerRulesOpt,
    strict_decode: Optional[bool] = StrictDecodeOpt,
    config: Optional[Path] = ConfigOpt,
    output: Optional[Path] = OutputOpt,
    fmt: Optional[str] = FormatOpt,
    events_file: Optional[Path] = EventsOpt,
    log_dir: Optional[Path] = LogDirOpt,
    verbose: bool = VerboseOpt,
):
    """
    Convert legacy policies read from local manifests (no cluster access).
    """
    logger, run_id, _ = init_logging(base_dir=log_dir, verbose=verbose)
    settings = _settings(
        config,
        root_namespace=root_namespace,
        ignore_errors=ignore_errors,
        trigger_rules=trigger_rules,
        strict_decode=strict_decode,
        output_format=fmt,
    )
    try:
        inventory = ManifestInventory.from_files(files)
    except ClusterError as exc:
        log.error("%s", exc)
        raise typer.Exit(code=EXIT_USAGE)

    run_conversion(
        inventory,
        settings,
        root_namespace=settings.root_namespace or DEFAULT_ROOT_NAMESPACE,
        bus=_bus(logger, events_file),
        run_ctx=new_ctx(context=None, run_id=run_id),
        output=output,
    )


@app.command("report-rbac")
def report_rbac(
    files: Optional[List[Path]] = typer.Argument(None, exists=True, dir_okay=False, readable=True),
    kubeconfig: Optional[Path] = KubeconfigOpt,
    context: Optional[str] = ContextOpt,
    verbose: bool = VerboseOpt,
):
    """
    List legacy RBAC resources that need manual migration.
    """
    logger, run_id, _ = init_logging(verbose=verbose)
    try:
        if files:
            inventory = ManifestInventory.from_files(files)
        else:
            inventory = KubeInventory.from_kubeconfig(
                str(kubeconfig) if kubeconfig else None, context
            )
    except ClusterError as exc:
        log.error("%s", exc)
        raise typer.Exit(code=EXIT_USAGE)

    orchestrator = ConversionOrchestrator(
        inventory,
        PolicyConverter(),
        bus=_bus(logger, None),
        run_ctx=new_ctx(context=context, run_id=run_id),
    )
    found = orchestrator.find_legacy_rbac()
    for r in found:
        typer.echo(str(r))
    if found:
        raise typer.Exit(code=EXIT_CONVERSION_FAILED)
    log.info("no legacy RBAC resources found")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
