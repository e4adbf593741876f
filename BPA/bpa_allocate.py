#!/usr/bin/env python3
"""
CLI entrypoint wrapper for the block program allocation.
"""

from __future__ import annotations

if __package__ is None:
    from pathlib import Path
    import sys

    sys.path.append(str(Path(__file__).resolve().parents[1]))
    from BPA.bpa_api import allocate_programs, run_program_allocation
    from BPA.bpa_cli import main
else:
    from .bpa_api import allocate_programs, run_program_allocation
    from .bpa_cli import main

__all__ = ["allocate_programs", "run_program_allocation"]


if __name__ == "__main__":
    raise SystemExit(main())
