from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple, Union

import pysam

from .errors import ObservationError
from .models import AlignedObservation, Bucket, Edit, ReadVerdict, Thresholds
from .observations import aligned_observations, read_covers_variant
from .quality import refine
from .seq import Base, Ordering, Support, format_bases
from .summary import bucket_for
from .variant import Variant

logger = logging.getLogger(__name__)

ObservationSource = Union[
    Iterable[AlignedObservation], Callable[[], Iterable[AlignedObservation]]
]


@dataclass
class Walk:
    """Sequences reconstructed from one read around a variant.

    front:
        Observations skipped before the anchor (distance from alignment start).
    last_query_pos:
        Query coordinate of the last consumed observation that had one.
    """

    observed_ref: List[Base] = field(default_factory=list)
    observed_alt: List[Base] = field(default_factory=list)
    front: int = 0
    last_query_pos: Optional[int] = None


def _require(base: Optional[Base], what: str, obs: AlignedObservation) -> Base:
    if base is None:
        raise ObservationError(
            f"Missing {what} base for {obs.edit.value} at ref_pos={obs.ref_pos} query_pos={obs.query_pos}."
        )
    return base


def walk_observations(
    observations: Iterable[AlignedObservation], variant: Variant
) -> Optional[Walk]:
    """Reconstruct the observed ref/alt sequences at ``variant``.

    Returns None when the stream ends before reaching the variant anchor.

    The walk stops once either sequence reaches the expected length, but only
    when the next observation is a plain match: a run of mismatches, insertions
    or deletions is always consumed whole.
    """
    anchor0 = variant.pos - 1
    it = iter(observations)
    walk = Walk()

    current: Optional[AlignedObservation] = None
    for obs in it:
        if obs.ref_pos is not None and obs.ref_pos >= anchor0:
            current = obs
            break
        walk.front += 1
    if current is None:
        return None

    first = True
    while current is not None:
        peeked = next(it, None)
        if current.query_pos is not None:
            walk.last_query_pos = current.query_pos

        if first:
            first = False
            if variant.is_abbr_deletion:
                logger.debug("Skipping anchor base of abbreviated deletion %s", variant)
                current = peeked
                continue

        if current.edit is Edit.INSERTION:
            walk.observed_alt.append(_require(current.query_base, "query", current))
        elif current.edit is Edit.DELETION:
            walk.observed_ref.append(_require(current.ref_base, "reference", current))
        else:
            walk.observed_alt.append(_require(current.query_base, "query", current))
            walk.observed_ref.append(_require(current.ref_base, "reference", current))

        if peeked is not None and not peeked.is_seq_match:
            current = peeked
            continue

        if len(walk.observed_ref) >= len(variant.refs) or len(walk.observed_alt) >= len(variant.alts):
            break
        current = peeked

    return walk


def decide(
    variant: Variant,
    observed_ref: List[Base],
    observed_alt: List[Base],
    *,
    qname: str = "?",
) -> Support:
    """Map observed sequences to a Support verdict; first matching rule wins."""
    ref_cmp = variant.ref_cmp(observed_ref)
    alt_cmp = variant.alt_cmp(observed_alt)
    equal = list(observed_ref) == list(observed_alt)

    if ref_cmp is Ordering.NUL:
        logger.error(
            "Read '%s' ref %s does not accord with variant ref %s.",
            qname,
            format_bases(observed_ref),
            variant.ref_str,
        )
        return Support.OTH
    if ref_cmp is Ordering.EQU and alt_cmp is Ordering.EQU:
        return Support.ALT
    if ref_cmp is Ordering.EQU and equal:
        return Support.REF
    # Approximation: bases past the expected window are assumed to match the genome.
    if ref_cmp is Ordering.SUB and equal:
        return Support.REE
    if equal:
        return Support.REP
    if ref_cmp is Ordering.SUB and alt_cmp is Ordering.EQU:
        return Support.ALE
    if alt_cmp is Ordering.SUB:
        return Support.ALE
    if alt_cmp is Ordering.SUP:
        return Support.ALP
    return Support.OTH


def _classify(
    observations: ObservationSource,
    read_is_mapped: bool,
    read_covers: bool,
    variant: Variant,
    *,
    qname: str = "?",
) -> Tuple[Support, Optional[Walk]]:
    if not read_is_mapped or not read_covers:
        return Support.NUL, None

    try:
        stream = observations() if callable(observations) else observations
        walk = walk_observations(stream, variant)
    except ObservationError as e:
        logger.warning("Cannot extract aligned bases for read '%s': %s", qname, e)
        return Support.UNK, None

    if walk is None:
        return Support.NUL, None

    support = decide(variant, walk.observed_ref, walk.observed_alt, qname=qname)
    logger.debug(
        "Read '%s' at %s: ref=%s alt=%s -> %s",
        qname,
        variant,
        format_bases(walk.observed_ref),
        format_bases(walk.observed_alt),
        support,
    )
    return support, walk


def classify(
    observations: ObservationSource,
    read_is_mapped: bool,
    read_covers_variant: bool,
    variant: Variant,
) -> Support:
    """Classify one read's evidence for ``variant``.

    ``observations`` may be an iterable or a zero-argument callable producing
    one; a callable is only invoked for mapped reads overlapping the variant.
    """
    support, _ = _classify(observations, read_is_mapped, read_covers_variant, variant)
    return support


def classify_read(
    read: pysam.AlignedSegment,
    variant: Variant,
    thresholds: Thresholds,
) -> ReadVerdict:
    """Classify a pysam read and refine full alternate support."""
    qname = str(read.query_name)
    support, walk = _classify(
        lambda: aligned_observations(read),
        not read.is_unmapped,
        read_covers_variant(read, variant),
        variant,
        qname=qname,
    )
    mapq = int(read.mapping_quality)

    front: Optional[int] = None
    end: Optional[int] = None
    refinement: Optional[Bucket] = None
    if walk is not None:
        front = walk.front
        last = walk.last_query_pos if walk.last_query_pos is not None else 0
        end = int(read.query_alignment_end) - last
        if support is Support.ALT:
            refinement = refine(mapq, front, end, thresholds)

    return ReadVerdict(
        qname=qname,
        support=support,
        bucket=bucket_for(support, refinement),
        mapq=mapq,
        front=front,
        end=end,
    )
