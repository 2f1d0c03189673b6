from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .seq import Base, Support


class Edit(Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    INSERTION = "insertion"
    DELETION = "deletion"


@dataclass(frozen=True)
class AlignedObservation:
    """One aligned position of a read.

    Coordinates are 0-based. Insertions have no ``ref_pos``/``ref_base``;
    deletions have no ``query_pos``/``query_base``.
    """

    ref_base: Optional[Base]
    query_base: Optional[Base]
    edit: Edit
    ref_pos: Optional[int]
    query_pos: Optional[int]

    @property
    def is_seq_match(self) -> bool:
        return self.edit is Edit.MATCH


class Bucket(Enum):
    """Summary counter a classified read lands in."""

    REFERENCE = "reference"
    PROPER = "proper"
    MARGIN = "margin"
    LOWQ = "lowq"
    EXCESSIVE = "excessive"
    ALLELES = "alleles"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Thresholds:
    """Read-quality thresholds for full alternate support.

    min_mapq:
        Reads below this mapping quality count as ``lowq``.
    min_margin:
        Minimum base distance between the variant and the read's aligned
        start/end (soft clips excluded) for ``proper`` support.
    """

    min_mapq: int = 30
    min_margin: int = 10


@dataclass(frozen=True)
class ReadVerdict:
    """Per-read classification result."""

    qname: str
    support: Support
    bucket: Optional[Bucket]
    mapq: int
    front: Optional[int]
    end: Optional[int]
