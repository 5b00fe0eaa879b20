"""Command-line driver for the blue-green deployment coordinator.

A thin caller over :class:`~bluegreen.services.coordinator.DeploymentCoordinator`.

Entry point
-----------
The ``main()`` function is registered as a console script in
``pyproject.toml``::

    [project.scripts]
    bluegreen = "bluegreen.cli:main"

Usage examples::

    bluegreen deploy v1.4.2
    bluegreen deploy v1.4.2 --push-command "./deploy.sh {environment} {version}"
    bluegreen status
    bluegreen --pointer-file /srv/deploy/active-environment.json rollback

Configuration comes from ``DEPLOY_*`` environment variables (a ``.env`` file
in the working directory is loaded first) or from ``--config FILE`` (JSON).
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
import time
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from bluegreen.infrastructure.artifacts import (
    ArtifactPusher,
    CommandArtifactPusher,
    SimulatedArtifactPusher,
)
from bluegreen.infrastructure.config import DeploymentConfig, load_config_from_json
from bluegreen.infrastructure.event_bus import AsyncEventBus
from bluegreen.infrastructure.pointer_store import JsonFilePointerStore
from bluegreen.presentation.console import DeploymentConsole
from bluegreen.services.coordinator import DeploymentCoordinator
from bluegreen.services.health import HealthVerifier
from bluegreen.services.recorder import DeploymentRecorder

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="bluegreen",
        description="Blue-green deployment coordinator.",
    )
    parser.add_argument(
        "--version",
        dest="show_version",
        action="store_true",
        default=False,
        help="Show the coordinator version and exit.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON configuration file.  Defaults to DEPLOY_* environment variables.",
    )
    parser.add_argument(
        "--pointer-file",
        type=str,
        default=None,
        help="Override the active-environment pointer file.",
    )
    parser.add_argument(
        "--no-auto-rollback",
        action="store_true",
        default=False,
        help="Keep a failed verification open instead of aborting it.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # -- deploy ------------------------------------------------------------
    deploy_parser = subparsers.add_parser(
        "deploy",
        help="Deploy a version and switch traffic to it.",
        description=(
            "Run start -> push -> verify -> switch -> finalize against the "
            "inactive environment."
        ),
    )
    deploy_parser.add_argument(
        "version",
        nargs="?",
        default=None,
        help="Version to deploy. (default: v<epoch millis>)",
    )
    deploy_parser.add_argument(
        "--push-command",
        type=str,
        default=None,
        help=(
            "Command that ships the artifact; {environment}, {version} and "
            "{deployment_id} are substituted.  Without it the push is simulated."
        ),
    )
    deploy_parser.add_argument(
        "--simulate-seconds",
        type=float,
        default=5.0,
        help="Duration of the simulated push. (default: 5.0)",
    )
    deploy_parser.add_argument(
        "--audit-log",
        type=str,
        default=None,
        help="Write the JSON event history of the run to this file.",
    )

    # -- status ------------------------------------------------------------
    subparsers.add_parser(
        "status",
        help="Show the active environment.",
        description="Print the currently active and inactive environments.",
    )

    # -- rollback ----------------------------------------------------------
    subparsers.add_parser(
        "rollback",
        help="Revert a switched deployment.",
        description=(
            "Restore the pointer of a switched, not yet finalized deployment. "
            "Sessions live in the coordinator process, so this fails when no "
            "such session exists."
        ),
    )

    return parser


# =========================================================================
# Wiring
# =========================================================================

def _load_config(args: argparse.Namespace) -> DeploymentConfig:
    if args.config:
        config = load_config_from_json(Path(args.config).read_text(encoding="utf-8"))
    else:
        config = DeploymentConfig.from_env()

    overrides: dict[str, Any] = {}
    if args.pointer_file:
        overrides["pointer_path"] = args.pointer_file
    if args.no_auto_rollback:
        overrides["auto_rollback"] = False
    if overrides:
        config = dataclasses.replace(config, **overrides)
        config.validate()
    return config


def _build_pusher(args: argparse.Namespace) -> ArtifactPusher:
    push_command = getattr(args, "push_command", None)
    if push_command:
        return CommandArtifactPusher(push_command)
    return SimulatedArtifactPusher(duration=getattr(args, "simulate_seconds", 5.0))


def _build_coordinator(
    args: argparse.Namespace,
    config: DeploymentConfig,
    bus: AsyncEventBus,
) -> DeploymentCoordinator:
    store = JsonFilePointerStore(config.pointer_path, config.environments)
    verifier = HealthVerifier(config, event_bus=bus)
    return DeploymentCoordinator(
        config,
        pointer_store=store,
        verifier=verifier,
        pusher=_build_pusher(args),
        event_bus=bus,
    )


# =========================================================================
# Subcommand handlers
# =========================================================================

async def _cmd_deploy(args: argparse.Namespace, config: DeploymentConfig) -> int:
    """Handle the ``deploy`` subcommand."""
    console = DeploymentConsole()
    bus = AsyncEventBus()
    recorder = DeploymentRecorder(bus)
    bus.subscribe_all(console.on_event)
    coordinator = _build_coordinator(args, config, bus)

    version = args.version or f"v{int(time.time() * 1000)}"
    try:
        await coordinator.start_deployment()
        await coordinator.deploy_to_inactive_environment(version)

        if not await coordinator.verify_deployment():
            print("Deployment verification failed", file=sys.stderr)
            deployment = coordinator.last_deployment
            if deployment is not None:
                console.print_health_attempts(recorder.health_attempts(deployment.deployment_id))
            return 1

        await coordinator.switch_traffic()
        await coordinator.finalize_deployment()
    finally:
        if args.audit_log:
            path = recorder.write(args.audit_log)
            logger.info("Audit log written to %s", path)

    deployment = coordinator.last_deployment
    if deployment is not None:
        console.print_deployment(deployment)
    return 0


async def _cmd_status(args: argparse.Namespace, config: DeploymentConfig) -> int:
    """Handle the ``status`` subcommand."""
    store = JsonFilePointerStore(config.pointer_path, config.environments)
    active = store.get_current_active_environment()
    DeploymentConsole().print_status(active, config.environments.other(active))
    return 0


async def _cmd_rollback(args: argparse.Namespace, config: DeploymentConfig) -> int:
    """Handle the ``rollback`` subcommand."""
    bus = AsyncEventBus()
    console = DeploymentConsole()
    bus.subscribe_all(console.on_event)
    coordinator = _build_coordinator(args, config, bus)
    await coordinator.revert_completed_switch()
    print("Deployment rolled back")
    return 0


# =========================================================================
# Main entry point
# =========================================================================

def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.show_version:
        from bluegreen import __version__
        print(f"bluegreen {__version__}")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    load_dotenv()

    handlers: dict[str, Any] = {
        "deploy": _cmd_deploy,
        "status": _cmd_status,
        "rollback": _cmd_rollback,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        config = _load_config(args)
        exit_code = asyncio.run(handler(args, config))
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 130
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)
