"""Turn pysam reads into aligned-base observation streams.

Reference bases come from the MD tag via ``get_aligned_pairs(with_seq=True)``;
reads without MD cannot be evaluated and raise ``ObservationError``.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple

import pysam

from .errors import ObservationError
from .models import AlignedObservation, Edit
from .seq import Base
from .variant import Variant

logger = logging.getLogger(__name__)


def read_covers_variant(read: pysam.AlignedSegment, variant: Variant) -> bool:
    """True if the read's aligned span overlaps ``[variant.pos, variant.end]`` (1-based)."""
    if read.is_unmapped or read.reference_end is None:
        return False
    start1 = int(read.reference_start) + 1
    end1 = int(read.reference_end)  # 0-based exclusive == 1-based inclusive
    return not (start1 > variant.end or end1 < variant.pos)


def _base_or_none(ch: Optional[str], qname: str) -> Optional[Base]:
    if ch is None:
        return None
    try:
        return Base(ch.upper())
    except ValueError:
        raise ObservationError(f"Read '{qname}' has unparsable base '{ch}'.", qname=qname) from None


def _iter_pairs(
    pairs: List[Tuple[Optional[int], Optional[int], Optional[str]]],
    seq: str,
    qstart: int,
    qend: int,
    qname: str,
) -> Iterator[AlignedObservation]:
    for qpos, rpos, rch in pairs:
        if qpos is None and rpos is None:
            # padding
            continue
        if rpos is None:
            # soft clips also come back as query-only pairs
            if qpos < qstart or qpos >= qend:
                continue
            yield AlignedObservation(
                ref_base=None,
                query_base=_base_or_none(seq[qpos], qname),
                edit=Edit.INSERTION,
                ref_pos=None,
                query_pos=qpos,
            )
        elif qpos is None:
            yield AlignedObservation(
                ref_base=_base_or_none(rch, qname),
                query_base=None,
                edit=Edit.DELETION,
                ref_pos=rpos,
                query_pos=None,
            )
        else:
            ref_base = _base_or_none(rch, qname)
            query_base = _base_or_none(seq[qpos], qname)
            yield AlignedObservation(
                ref_base=ref_base,
                query_base=query_base,
                edit=Edit.MATCH if ref_base == query_base else Edit.MISMATCH,
                ref_pos=rpos,
                query_pos=qpos,
            )


def aligned_observations(read: pysam.AlignedSegment) -> Iterator[AlignedObservation]:
    """Return a lazy observation stream over the aligned part of ``read``.

    Raises ObservationError up front when the read lacks a CIGAR, a query
    sequence or an MD tag. Bad bases raise later, while the stream is consumed.
    """
    qname = str(read.query_name)
    if read.is_unmapped or read.cigartuples is None:
        raise ObservationError(f"Read '{qname}' has no alignment.", qname=qname)
    seq = read.query_sequence
    if seq is None:
        raise ObservationError(f"Read '{qname}' has no query sequence.", qname=qname)
    if not read.has_tag("MD"):
        raise ObservationError(
            f"Read '{qname}' has no MD tag; run 'samtools calmd' to add it.", qname=qname
        )
    try:
        pairs = read.get_aligned_pairs(with_seq=True)
    except ValueError as e:
        raise ObservationError(f"Read '{qname}': {e}", qname=qname) from e

    return _iter_pairs(
        pairs,
        seq,
        int(read.query_alignment_start),
        int(read.query_alignment_end),
        qname,
    )
