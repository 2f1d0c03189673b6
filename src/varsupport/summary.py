from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import Dict, Optional

import numpy as np

from .models import Bucket
from .seq import Support

logger = logging.getLogger(__name__)

_FREQ_DECIMALS = 4


def bucket_for(support: Support, refinement: Optional[Bucket] = None) -> Optional[Bucket]:
    """Summary bucket for a verdict; None for reads that are not counted (Nul).

    ``refinement`` only applies to Alt and must be one of proper/margin/lowq.
    Alt without a refinement counts as proper.
    """
    if support.any_ref():
        return Bucket.REFERENCE
    if support is Support.ALT:
        if refinement is None:
            return Bucket.PROPER
        if refinement not in (Bucket.PROPER, Bucket.MARGIN, Bucket.LOWQ):
            raise ValueError(f"Invalid refinement for Alt support: {refinement}")
        return refinement
    if support is Support.ALE:
        return Bucket.EXCESSIVE
    if support in (Support.ALP, Support.OTH):
        return Bucket.ALLELES
    if support is Support.UNK:
        return Bucket.UNKNOWN
    return None


@dataclass
class Summary:
    """Per-variant read support counters.

    Frequencies divide by ``total_count()``; with no counted reads every
    frequency is NaN rather than a made-up zero.
    """

    reference: int = 0
    proper: int = 0
    margin: int = 0
    lowq: int = 0
    excessive: int = 0
    alleles: int = 0
    unknown: int = 0

    def add(self, bucket: Optional[Bucket]) -> None:
        if bucket is None:
            return
        setattr(self, bucket.value, getattr(self, bucket.value) + 1)

    def accumulate(self, support: Support, refinement: Optional[Bucket] = None) -> Optional[Bucket]:
        bucket = bucket_for(support, refinement)
        self.add(bucket)
        return bucket

    def count(self, bucket: Bucket) -> int:
        return int(getattr(self, bucket.value))

    def total_count(self) -> int:
        return sum(getattr(self, f.name) for f in fields(self))

    def alt_count(self) -> int:
        return self.proper + self.margin + self.lowq + self.excessive

    def ref_count(self) -> int:
        return self.reference

    def _freq(self, count: int) -> float:
        total = self.total_count()
        if total == 0:
            return float("nan")
        # half away from zero, so 1/32 gives 0.0313
        scale = 10.0**_FREQ_DECIMALS
        return float(np.floor(count / total * scale + 0.5) / scale)

    def freq(self, bucket: Bucket) -> float:
        return self._freq(self.count(bucket))

    def alt_freq(self) -> float:
        return self._freq(self.alt_count())

    def ref_freq(self) -> float:
        return self._freq(self.ref_count())

    def proper_freq(self) -> float:
        return self._freq(self.proper)

    def margin_freq(self) -> float:
        return self._freq(self.margin)

    def lowq_freq(self) -> float:
        return self._freq(self.lowq)

    def frequencies(self) -> Dict[str, float]:
        out = {b.value: self.freq(b) for b in Bucket}
        out["alt"] = self.alt_freq()
        return out

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)
