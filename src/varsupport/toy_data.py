from __future__ import annotations

import random
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pysam

from .utils import ensure_outdir, write_json

TOY_CONTIG = "2"
TOY_CONTIG_LENGTH = 30_000_000
TOY_WINDOW_START = 29_474_000  # 0-based genomic coordinate of toy reference window[0]
TOY_SNV = "2:29474101C>A"
TOY_DELETION = "2:29474151T>-"


def md_tag(ref: str, query: str, cigartuples: Sequence[Tuple[int, int]]) -> str:
    """Build the SAM MD string for ``query`` aligned to ``ref``.

    ``ref`` must start at the read's reference_start.
    """
    parts: List[str] = []
    run = 0
    r = 0
    q = 0
    for op, length in cigartuples:
        if op in (0, 7, 8):  # M, =, X
            for i in range(length):
                rb = ref[r + i].upper()
                if rb == query[q + i].upper():
                    run += 1
                else:
                    parts.append(str(run))
                    parts.append(rb)
                    run = 0
            r += length
            q += length
        elif op in (1, 4):  # I, S
            q += length
        elif op == 2:  # D
            parts.append(str(run))
            parts.append("^" + ref[r : r + length].upper())
            run = 0
            r += length
        elif op == 3:  # N
            r += length
    parts.append(str(run))
    return "".join(parts)


def make_read(
    name: str,
    ref: str,
    start0: int,
    query: str,
    *,
    cigartuples: Optional[Sequence[Tuple[int, int]]] = None,
    mapq: int = 60,
    ref_offset: int = 0,
    with_md: bool = True,
) -> pysam.AlignedSegment:
    """Build an aligned read against ``ref`` (whose first base sits at ``ref_offset``)."""
    cigar = list(cigartuples) if cigartuples is not None else [(0, len(query))]
    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = query
    a.flag = 0
    a.reference_id = 0
    a.reference_start = start0
    a.mapping_quality = mapq
    a.cigartuples = cigar
    a.query_qualities = pysam.qualitystring_to_array("I" * len(query))
    if with_md:
        a.set_tag("MD", md_tag(ref[start0 - ref_offset :], query, cigar))
    return a


def _with_substitution(seq: str, rel: int, base: str) -> str:
    return seq[:rel] + base + seq[rel + 1 :]


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create an indexed BAM over a small synthetic reference window for quick demos/tests.

    The BAM holds reads around ``TOY_SNV`` and ``TOY_DELETION``:

    - SNV: 2 reference reads, 1 proper, 1 margin and 1 low-MAPQ alternate read,
      1 read without MD tag (unknown).
    - Deletion: 2 proper alternate reads and 1 reference read.

    Returns
    -------
    dict
        Paths to the generated files and the two variant specs.
    """
    outdir_p = ensure_outdir(outdir)

    rng = random.Random(7)
    window = [rng.choice("ACGT") for _ in range(220)]
    window[100] = "C"  # SNV 2:29474101C>A
    window[150] = "G"  # deletion anchor
    window[151] = "T"  # deleted base of 2:29474151T>-
    ref = "".join(window)

    def g(i: int) -> int:
        return TOY_WINDOW_START + i

    def ref_read(name: str, i: int, n: int, **kw) -> pysam.AlignedSegment:
        return make_read(name, ref, g(i), ref[i : i + n], ref_offset=TOY_WINDOW_START, **kw)

    def alt_read(name: str, i: int, n: int, **kw) -> pysam.AlignedSegment:
        query = _with_substitution(ref[i : i + n], 100 - i, "A")
        return make_read(name, ref, g(i), query, ref_offset=TOY_WINDOW_START, **kw)

    def del_read(name: str, i: int) -> pysam.AlignedSegment:
        query = ref[i:151] + ref[152:192]
        cigar = [(0, 151 - i), (2, 1), (0, 40)]
        return make_read(name, ref, g(i), query, cigartuples=cigar, ref_offset=TOY_WINDOW_START)

    reads = [
        ref_read("snv_ref_1", 60, 60),
        ref_read("snv_ref_2", 85, 50),
        alt_read("snv_alt_proper", 80, 60),
        alt_read("snv_alt_lowq", 70, 60, mapq=10),
        alt_read("snv_alt_margin", 95, 50),
        ref_read("snv_no_md", 90, 40, with_md=False),
        del_read("del_alt_1", 110),
        del_read("del_alt_2", 112),
        ref_read("del_ref_1", 120, 60),
    ]
    reads.sort(key=lambda r: r.reference_start)

    bam_path = outdir_p / "toy.bam"
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": TOY_CONTIG, "LN": TOY_CONTIG_LENGTH}],
    }
    with pysam.AlignmentFile(str(bam_path), "wb", header=header) as bam:
        for r in reads:
            bam.write(r)

    pysam.index(str(bam_path))

    summary = {
        "bam": str(bam_path),
        "snv": TOY_SNV,
        "deletion": TOY_DELETION,
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
