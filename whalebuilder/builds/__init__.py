"""Build orchestration module.

This module handles:
- Outer mode: container lifecycle on the host
- Inner mode: dependency installation and dpkg-buildpackage
- Artifact discovery and copying
"""

from whalebuilder.builds.service import execute, make_runner

__all__ = ["execute", "make_runner"]
