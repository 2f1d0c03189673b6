from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence, Tuple

from .errors import VariantParseError
from .seq import Base, Bases, Ordering, compare, format_bases, parse_bases

_VARIANT_RE = re.compile(
    r"^(?P<chrom>(?:chr)?[\w.\-]+):(?P<pos>\d+)(?P<refs>[ATCGN]+|-)>(?P<alts>[ATCGN]+|-)$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Variant:
    """A single SNV/InDel to evaluate against reads.

    Coordinates are 1-based, as written by users (``chr1:12345AT>G``).

    Attributes
    ----------
    chrom:
        Contig name as present in the BAM header (possibly after remapping).
    pos:
        1-based position of the first reference base.
    refs:
        Expected reference bases; empty for a pure insertion (``-``).
    alts:
        Expected alternate bases; empty for an abbreviated deletion (``-``).
    """

    chrom: str
    pos: int
    refs: Bases
    alts: Bases

    def __post_init__(self) -> None:
        if self.pos < 1:
            raise VariantParseError(f"Variant position must be >= 1, got {self.pos}.")
        if not self.refs and not self.alts:
            raise VariantParseError("Variant needs a reference or an alternate allele; both are empty.")

    @classmethod
    def parse(cls, text: str) -> "Variant":
        """Parse ``CHROM:POSREF>ALT``, e.g. ``2:29474101C>A`` or ``chr1:12345AT>-``."""
        m = _VARIANT_RE.fullmatch(text)
        if m is None:
            raise VariantParseError(
                f"Cannot parse variant '{text}'. Expected CHROM:POSREF>ALT, e.g. 'chr1:12345AT>-'.",
                text=text,
            )
        return cls(
            chrom=m.group("chrom"),
            pos=int(m.group("pos")),
            refs=parse_bases(m.group("refs")),
            alts=parse_bases(m.group("alts")),
        )

    @property
    def end(self) -> int:
        """1-based inclusive end; pure insertions cover the anchor plus one base."""
        if self.refs:
            return self.pos + len(self.refs) - 1
        return self.pos + 1

    @property
    def is_abbr_deletion(self) -> bool:
        return len(self.alts) == 0

    @property
    def ref_str(self) -> str:
        return format_bases(self.refs)

    @property
    def alt_str(self) -> str:
        return format_bases(self.alts)

    def ref_cmp(self, observed: Sequence[Base]) -> Ordering:
        return compare(self.refs, observed)

    def alt_cmp(self, observed: Sequence[Base]) -> Ordering:
        return compare(self.alts, observed)

    def region(self) -> Tuple[int, int]:
        """0-based half-open interval for ``AlignmentFile.fetch``."""
        return self.pos - 1, self.end

    def with_chrom(self, chrom: str) -> "Variant":
        return Variant(chrom=chrom, pos=self.pos, refs=self.refs, alts=self.alts)

    def __str__(self) -> str:
        return f"{self.chrom}:{self.pos}{self.ref_str}>{self.alt_str}"
