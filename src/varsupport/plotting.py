from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Dict, List, Mapping

import matplotlib.pyplot as plt

from .models import Bucket

logger = logging.getLogger(__name__)

_BUCKET_LABELS = {
    Bucket.REFERENCE: "Reference",
    Bucket.PROPER: "Alt (proper)",
    Bucket.MARGIN: "Alt (margin)",
    Bucket.LOWQ: "Alt (low MAPQ)",
    Bucket.EXCESSIVE: "Alt (excessive)",
    Bucket.ALLELES: "Other alleles",
    Bucket.UNKNOWN: "Unknown",
}


def plot_bucket_counts(
    *,
    counts: Mapping[str, int],
    out_png: str | Path,
    title: str = "Read support",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    labels = [_BUCKET_LABELS[b] for b in Bucket]
    values = [int(counts.get(b.value, 0)) for b in Bucket]

    plt.figure()
    plt.bar(labels, values)
    plt.ylabel("Read count")
    plt.title(title)
    plt.xticks(rotation=25, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_alt_frequencies(
    *,
    alt_freqs: Dict[str, float],
    out_png: str | Path,
    title: str = "Alternate allele frequency per variant",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    # NaN (no coverage) plotted as 0 and flagged in the label
    labels: List[str] = []
    values: List[float] = []
    for spec, f in alt_freqs.items():
        if math.isnan(f):
            labels.append(f"{spec} (no reads)")
            values.append(0.0)
        else:
            labels.append(spec)
            values.append(f)

    plt.figure(figsize=(max(6.4, 0.6 * len(labels)), 4.8))
    plt.bar(labels, values)
    plt.ylim(0.0, 1.0)
    plt.ylabel("Alt frequency")
    plt.title(title)
    plt.xticks(rotation=30, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
