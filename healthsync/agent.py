"""healthsync sync agent: producer-side composition root and CLI.

Examples::

    healthsync-agent sync --export export.json
    healthsync-agent history --export export.json
    healthsync-agent watch --export export.json       # SIGUSR1 forces a run

Server URL, API key and owner come from the environment / .env (see
``healthsync.config.Settings``) and can be overridden per invocation.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import uuid
from pathlib import Path
from typing import Sequence

from healthsync.config import Settings, configure_logging, get_settings
from healthsync.sync.adapters.json_export import JsonExportSource
from healthsync.sync.anchors import RemoteAnchorStore
from healthsync.sync.client import IngestionClient
from healthsync.sync.config_loader import ConfigValidationError, SyncPlan, get_sync_plan
from healthsync.sync.orchestrator import SyncOrchestrator, SyncRunReport
from healthsync.sync.scheduler import SyncScheduler

logger = logging.getLogger("healthsync.agent")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="healthsync-agent",
        description="Incrementally sync a health-data export to a healthsync server.",
    )
    parser.add_argument(
        "command",
        choices=["sync", "history", "watch"],
        help="sync: one incremental run; history: full historical import; "
        "watch: periodic runs until interrupted",
    )
    parser.add_argument("--export", required=True, type=Path, help="Path to the JSON export file")
    parser.add_argument("--owner", type=uuid.UUID, default=None, help="Owner UUID (default: settings)")
    parser.add_argument("--api-url", default=None, help="Server base URL (default: settings)")
    parser.add_argument(
        "--config", type=Path, default=None, help="Path to sync_config.yaml (default: bundled)"
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    return parser


def build_orchestrator(
    plan: SyncPlan,
    export: Path,
    client: IngestionClient,
    owner: uuid.UUID,
) -> SyncOrchestrator:
    return SyncOrchestrator(
        source=JsonExportSource(export),
        client=client,
        anchors=RemoteAnchorStore(client, owner),
        plan=plan,
        owner=owner,
    )


def print_report(report: SyncRunReport | None) -> None:
    if report is None:
        print("A sync run is already in progress; trigger ignored.")
        return
    if report.error:
        print(f"Sync aborted: {report.error}")
        return
    for o in report.outcomes:
        if o.error:
            line = f"error: {o.error}"
        elif o.was_empty:
            line = "nothing new"
        else:
            line = (
                f"{o.status.value if o.status else '-'}: {o.synced} synced, "
                f"{o.skipped} skipped, {o.updated} updated, {o.record_errors} rejected"
            )
        print(f"  {o.data_type:<50} {line}")
    print("Sync complete." if report.ok else "Sync finished with errors.")


async def _watch(orchestrator: SyncOrchestrator, interval: int) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass
    wake = getattr(signal, "SIGUSR1", None)
    background: set[asyncio.Task] = set()

    def _wake() -> None:
        task = loop.create_task(orchestrator.trigger("background"))
        background.add(task)
        task.add_done_callback(background.discard)

    if wake is not None:
        # Background wake-ups post into the same trigger as periodic runs.
        loop.add_signal_handler(wake, _wake)
    await SyncScheduler(orchestrator, interval).run_forever(stop)


async def run(args: argparse.Namespace, settings: Settings) -> int:
    config_path = args.config or (
        Path(settings.sync_config_path) if settings.sync_config_path else None
    )
    plan = get_sync_plan(config_path)
    owner = args.owner or uuid.UUID(settings.default_owner_id)
    base_url = args.api_url or settings.api_base_url

    async with IngestionClient(base_url, settings.api_key, settings.client_timeout_seconds) as client:
        orchestrator = build_orchestrator(plan, args.export, client, owner)
        if args.command == "watch":
            await _watch(orchestrator, plan.poll_interval_seconds)
            return 0
        if args.command == "history":
            report = await orchestrator.import_history()
        else:
            report = await orchestrator.trigger("manual")

    print_report(report)
    return 0 if report is not None and report.ok else 1


def main(argv: Sequence[str] | None = None) -> int:
    args = create_parser().parse_args(argv)
    settings = get_settings()
    configure_logging("DEBUG" if args.verbose else settings.log_level)
    try:
        return asyncio.run(run(args, settings))
    except (ConfigValidationError, FileNotFoundError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
