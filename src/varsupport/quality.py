from __future__ import annotations

from .models import Bucket, Thresholds


def refine(mapq: int, front: int, end: int, thresholds: Thresholds) -> Bucket:
    """Split full alternate support into lowq / margin / proper.

    front:
        Aligned bases between the read's alignment start and the variant.
    end:
        Aligned bases between the last consumed base and the aligned query end.
    """
    if mapq < thresholds.min_mapq:
        return Bucket.LOWQ
    if front < thresholds.min_margin or end < thresholds.min_margin:
        return Bucket.MARGIN
    return Bucket.PROPER
