"""API version constants.

This module provides a single source of truth for contract versioning.
"""

from __future__ import annotations

from typing import Final


API_VERSION: Final[str] = "v1"

# Bumped whenever the closed set of agent names changes.
AGENT_NAMES_VERSION: Final[str] = "1"
