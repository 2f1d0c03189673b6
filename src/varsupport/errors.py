"""Exception types raised by varsupport.

Parse and contig errors abort a run. ``ObservationError`` is scoped to a single
read: the pipeline logs it and counts the read as unknown.
"""

from __future__ import annotations

from typing import Optional


class VariantParseError(ValueError):
    """Raised when a variant string or a base sequence cannot be parsed."""

    def __init__(self, message: str, *, text: Optional[str] = None) -> None:
        super().__init__(message)
        self.text = text


class ContigLookupError(LookupError):
    """Raised when a chromosome name is absent from the alignment header."""

    def __init__(self, chrom: str, *, known: Optional[list[str]] = None) -> None:
        msg = f"Chromosome '{chrom}' not found in alignment header."
        if known:
            preview = ", ".join(known[:5])
            if len(known) > 5:
                preview += ", ..."
            msg += f" Known contigs: {preview}. Use --contig-style to remap chr1/1 naming."
        super().__init__(msg)
        self.chrom = chrom
        self.known = list(known or [])


class ObservationError(RuntimeError):
    """Raised when the aligned-base stream of one read cannot be extracted."""

    def __init__(self, message: str, *, qname: Optional[str] = None) -> None:
        super().__init__(message)
        self.qname = qname
