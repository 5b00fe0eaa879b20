"""Rich-based console output for the deployment CLI.

:class:`DeploymentConsole` renders the pointer status, a deployment summary
and the health-check attempts of a session, and can be subscribed to an
event bus to print progress lines as phases run.
"""

from __future__ import annotations

import sys
import time
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bluegreen.domain.entities import Deployment
from bluegreen.domain.enums import DeploymentStatus, HealthOutcome
from bluegreen.domain.events import (
    DeploymentCreated,
    DeploymentFailed,
    DeploymentReleased,
    DeploymentStatusChanged,
    DomainEvent,
    HealthCheckAttempted,
    TrafficSwitched,
)
from bluegreen.domain.values import HealthCheckAttempt

_STATUS_STYLES = {
    DeploymentStatus.COMPLETED: "bold green",
    DeploymentStatus.ROLLED_BACK: "yellow",
    DeploymentStatus.FAILED: "bold red",
    DeploymentStatus.VERIFICATION_FAILED: "bold red",
    DeploymentStatus.SWITCH_FAILED: "bold red",
    DeploymentStatus.FINALIZATION_FAILED: "bold red",
    DeploymentStatus.ROLLBACK_FAILED: "bold red",
}

_OUTCOME_STYLES = {
    HealthOutcome.HEALTHY: "green",
    HealthOutcome.UNHEALTHY: "yellow",
    HealthOutcome.ERROR: "red",
}


def _fmt_time(ts: float) -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(ts))


class DeploymentConsole:
    """Console presentation for deployments.

    Parameters
    ----------
    file:
        Output stream.  Defaults to ``sys.stdout`` at construction time.
    """

    def __init__(self, file: Any = None) -> None:
        self._console = Console(file=file or sys.stdout, highlight=False)

    @property
    def console(self) -> Console:
        return self._console

    # -- public API --------------------------------------------------------

    def print_status(self, active: str, inactive: str) -> None:
        """Print which environment currently serves traffic."""
        self._console.print(f"Current active environment: [bold green]{active}[/bold green]")
        self._console.print(f"Inactive environment: {inactive}")

    def print_deployment(self, deployment: Deployment) -> None:
        """Print a summary table of a deployment session."""
        table = Table(
            title=f"Deployment {deployment.deployment_id}",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Field", style="bold")
        table.add_column("Value")

        style = _STATUS_STYLES.get(deployment.status, "")
        status_text = f"[{style}]{deployment.status.value}[/{style}]" if style else deployment.status.value
        table.add_row("Version", deployment.version or "-")
        table.add_row("Status", status_text)
        table.add_row("Active at start", deployment.active_env_at_start)
        table.add_row("Inactive at start", deployment.inactive_env_at_start)
        table.add_row("Traffic switched", "yes" if deployment.traffic_switched else "no")
        table.add_row("Created", _fmt_time(deployment.created_at))
        table.add_row("Updated", _fmt_time(deployment.updated_at))
        if deployment.error:
            table.add_row("Error", f"[red]{escape(deployment.error)}[/red]")
        table.add_row(
            "History",
            " -> ".join(status.value for status in deployment.statuses),
        )
        self._console.print(table)

    def print_health_attempts(self, attempts: list[HealthCheckAttempt]) -> None:
        """Print one row per health-check attempt."""
        if not attempts:
            self._console.print("No health checks recorded.")
            return
        table = Table(title="Health checks", show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right")
        table.add_column("Outcome")
        table.add_column("HTTP", justify="right")
        table.add_column("Detail")
        for a in attempts:
            style = _OUTCOME_STYLES[a.outcome]
            table.add_row(
                str(a.attempt_number),
                f"[{style}]{a.outcome.value}[/{style}]",
                str(a.status_code) if a.status_code is not None else "-",
                escape(a.detail),
            )
        self._console.print(table)

    # -- live progress -----------------------------------------------------

    def on_event(self, event: DomainEvent) -> None:
        """Event-bus handler printing one progress line per relevant event."""
        line = self.describe(event)
        if line:
            self._console.print(line)

    @staticmethod
    def describe(event: DomainEvent) -> str:
        """Return a one-line description of *event*, or ``""`` to skip it."""
        if isinstance(event, DeploymentCreated):
            return (
                f"Deployment started: {event.deployment_id} "
                f"(active={event.active_environment}, target={event.inactive_environment})"
            )
        if isinstance(event, DeploymentStatusChanged) and event.status is DeploymentStatus.DEPLOYED:
            return "Deployed to inactive environment"
        if isinstance(event, DeploymentStatusChanged) and event.status is DeploymentStatus.VERIFIED:
            return "Deployment verified"
        if isinstance(event, HealthCheckAttempted) and event.attempt is not None:
            a = event.attempt
            return (
                f"  health check {a.attempt_number}/{event.max_attempts}: "
                f"{a.outcome.value}{f' ({escape(a.detail)})' if a.detail else ''}"
            )
        if isinstance(event, TrafficSwitched):
            verb = "Traffic restored" if event.revert else "Traffic switched"
            return f"{verb}: {event.from_environment} -> {event.to_environment}"
        if isinstance(event, DeploymentFailed) and event.phase is not None:
            return f"[red]Phase {event.phase.value} failed:[/red] {escape(event.error_message)}"
        if isinstance(event, DeploymentReleased) and event.final_status is not None:
            return (
                f"Deployment {event.final_status.value} "
                f"(active environment: {event.active_environment or 'unknown'})"
            )
        return ""
