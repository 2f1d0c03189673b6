"""varsupport: per-read support statistics for a single SNV/InDel in an indexed BAM.

Public API is intentionally small; most users should use the CLI:

    varsupport sample.bam --var "2:29474101C>A"

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
