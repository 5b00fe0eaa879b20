"""Presentation layer: rich console output for the deployment CLI."""

from bluegreen.presentation.console import DeploymentConsole

__all__ = ["DeploymentConsole"]
