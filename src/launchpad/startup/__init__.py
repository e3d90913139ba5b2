"""Launchpad Startup System.

Container startup sequencing: dependency wait, environment preparation,
cache priming, permission normalisation and process handoff.
"""

from __future__ import annotations

from launchpad.startup.config_schema import Environment, LaunchpadConfig
from launchpad.startup.control_plane import ArtisanControlPlane, FrameworkControlPlane
from launchpad.startup.health_checks import DependencyWaiter, RetryPolicy
from launchpad.startup.orchestrator import StartupSequencer
from launchpad.startup.progress_reporter import StartupProgressReporter

__all__ = [
    "ArtisanControlPlane",
    "DependencyWaiter",
    "Environment",
    "FrameworkControlPlane",
    "LaunchpadConfig",
    "RetryPolicy",
    "StartupProgressReporter",
    "StartupSequencer",
]
