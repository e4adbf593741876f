from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class _RunConfig:
    """
    User-controlled parameters for loading signups and running the allocation.
    """

    strict_prefs: bool
    sanity_checks: bool
    progress: bool
    unranked_penalty: int = 10
