"""Launchpad test suite.

- startup/: sequencer steps, configuration, health checks, control plane
- core/: exceptions and logging
- fakes/: in-memory doubles for the framework control plane
"""

from __future__ import annotations
