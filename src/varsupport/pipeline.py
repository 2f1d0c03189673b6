from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TextIO

import pysam
from tqdm import tqdm

from .classifier import classify_read
from .models import ReadVerdict, Thresholds
from .summary import Summary
from .utils import open_textmaybe_gzip
from .validation import check_alignment_index, resolve_contig
from .variant import Variant

logger = logging.getLogger(__name__)

READS_TSV_COLUMNS = ["variant", "qname", "support", "bucket", "mapq", "front", "end"]


def _new_counts() -> Dict[str, int]:
    return {
        "reads_total": 0,
        "reads_classified": 0,
        "reads_skipped_duplicates": 0,
        "reads_skipped_secondary": 0,
        "reads_skipped_supplementary": 0,
        "reads_not_counted": 0,
    }


@dataclass
class VariantRun:
    """Result of evaluating one variant spec."""

    spec: str
    variant: Variant
    summary: Summary = field(default_factory=Summary)
    counts: Dict[str, int] = field(default_factory=_new_counts)


def summarize_reads(
    reads: Iterable[pysam.AlignedSegment],
    variant: Variant,
    thresholds: Thresholds,
    *,
    summary: Optional[Summary] = None,
    counts: Optional[Dict[str, int]] = None,
    skip_duplicates: bool = False,
    skip_secondary: bool = False,
    skip_supplementary: bool = False,
    on_verdict: Optional[Callable[[ReadVerdict], None]] = None,
) -> Summary:
    """Classify reads against ``variant`` and accumulate them into a Summary.

    Reads must come in non-decreasing start order (as from ``fetch``); iteration
    stops at the first read starting after the variant end.
    """
    if summary is None:
        summary = Summary()
    if counts is None:
        counts = _new_counts()

    for read in reads:
        if not read.is_unmapped and int(read.reference_start) + 1 > variant.end:
            break
        counts["reads_total"] += 1

        if skip_secondary and read.is_secondary:
            counts["reads_skipped_secondary"] += 1
            continue
        if skip_supplementary and read.is_supplementary:
            counts["reads_skipped_supplementary"] += 1
            continue
        if skip_duplicates and read.is_duplicate:
            counts["reads_skipped_duplicates"] += 1
            continue

        verdict = classify_read(read, variant, thresholds)
        if verdict.bucket is None:
            counts["reads_not_counted"] += 1
        else:
            counts["reads_classified"] += 1
        summary.add(verdict.bucket)

        if on_verdict is not None:
            on_verdict(verdict)

    return summary


def _write_verdict(fh: TextIO, spec: str, v: ReadVerdict) -> None:
    fh.write(
        f"{spec}\t{v.qname}\t{v.support}\t{v.bucket.value if v.bucket is not None else '.'}\t"
        f"{v.mapq}\t{'.' if v.front is None else v.front}\t{'.' if v.end is None else v.end}\n"
    )


def summarize_variant(
    bam: pysam.AlignmentFile,
    spec: str,
    variant: Variant,
    thresholds: Thresholds,
    *,
    contig_style: str = "none",
    skip_duplicates: bool = False,
    skip_secondary: bool = False,
    skip_supplementary: bool = False,
    reads_fh: Optional[TextIO] = None,
    progress: bool = True,
) -> VariantRun:
    """Fetch reads around ``variant`` from an open alignment file and summarize them."""
    chrom = resolve_contig(variant.chrom, bam.references, contig_style)
    if chrom != variant.chrom:
        variant = variant.with_chrom(chrom)
    run = VariantRun(spec=spec, variant=variant)

    start0, stop0 = variant.region()
    logger.info("Fetching reads over %s:%d-%d for %s", chrom, start0, stop0, spec)

    on_verdict = None
    if reads_fh is not None:
        fh = reads_fh

        def on_verdict(v: ReadVerdict) -> None:
            _write_verdict(fh, spec, v)

    # summarize_reads may stop before the fetch iterator is exhausted
    with tqdm(bam.fetch(chrom, start0, stop0), unit="read", desc=spec, leave=False, disable=not progress) as it:
        summarize_reads(
            it,
            variant,
            thresholds,
            summary=run.summary,
            counts=run.counts,
            skip_duplicates=skip_duplicates,
            skip_secondary=skip_secondary,
            skip_supplementary=skip_supplementary,
            on_verdict=on_verdict,
        )

    s = run.summary
    logger.info(
        "Variant %s total %d; Ref %d(%s); Proper alt %d(%s); Margin alt %d(%s); Lowq alt %d(%s)",
        spec,
        s.total_count(),
        s.reference,
        s.ref_freq(),
        s.proper,
        s.proper_freq(),
        s.margin,
        s.margin_freq(),
        s.lowq,
        s.lowq_freq(),
    )
    if s.total_count() == 0:
        logger.warning("No reads cover variant %s; frequencies are NaN.", spec)
    return run


def parse_variants(specs: Sequence[str]) -> Dict[str, Variant]:
    """Parse specs in order, dropping repeats. Raises VariantParseError."""
    out: Dict[str, Variant] = {}
    for spec in specs:
        if spec in out:
            logger.info("Duplicate variant %s ignored.", spec)
            continue
        out[spec] = Variant.parse(spec)
        logger.info("Variant %s parsed as %r", spec, out[spec])
    return out


def summarize_bam(
    *,
    bam_path: str | Path,
    specs: Sequence[str],
    thresholds: Thresholds,
    contig_style: str = "none",
    skip_duplicates: bool = False,
    skip_secondary: bool = False,
    skip_supplementary: bool = False,
    reads_tsv: Optional[str | Path] = None,
    progress: bool = True,
) -> Dict[str, VariantRun]:
    """Main workhorse: evaluate every variant spec against one indexed BAM/CRAM."""
    t0 = time.time()
    variants = parse_variants(specs)
    check_alignment_index(bam_path)

    reads_fh: Optional[TextIO] = None
    if reads_tsv is not None:
        reads_fh = open_textmaybe_gzip(reads_tsv, "wt")
        reads_fh.write("\t".join(READS_TSV_COLUMNS) + "\n")

    runs: Dict[str, VariantRun] = {}
    logger.info("Reading alignment file %s", bam_path)
    try:
        with pysam.AlignmentFile(str(bam_path)) as bam:
            for spec, variant in variants.items():
                runs[spec] = summarize_variant(
                    bam,
                    spec,
                    variant,
                    thresholds,
                    contig_style=contig_style,
                    skip_duplicates=skip_duplicates,
                    skip_secondary=skip_secondary,
                    skip_supplementary=skip_supplementary,
                    reads_fh=reads_fh,
                    progress=progress,
                )
    finally:
        if reads_fh is not None:
            reads_fh.close()

    logger.info("Processed %d variant(s) in %.2fs", len(runs), time.time() - t0)
    return runs


def summaries_to_json(runs: Dict[str, VariantRun]) -> object:
    """One variant: the Summary counters; several: spec -> counters."""
    if len(runs) == 1:
        return next(iter(runs.values())).summary.to_dict()
    return {spec: run.summary.to_dict() for spec, run in runs.items()}


def runs_table(runs: Dict[str, VariantRun]) -> List[Dict[str, object]]:
    """Flat rows (counts + frequencies) for reports."""
    rows: List[Dict[str, object]] = []
    for spec, run in runs.items():
        s = run.summary
        row: Dict[str, object] = {"variant": spec, "chrom": run.variant.chrom, "pos": run.variant.pos}
        row.update(s.to_dict())
        row["total"] = s.total_count()
        row["alt"] = s.alt_count()
        row["alt_freq"] = s.alt_freq()
        row["ref_freq"] = s.ref_freq()
        row["proper_freq"] = s.proper_freq()
        row["margin_freq"] = s.margin_freq()
        row["lowq_freq"] = s.lowq_freq()
        row.update(run.counts)
        rows.append(row)
    return rows
