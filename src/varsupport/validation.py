from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Sequence

from .errors import ContigLookupError

logger = logging.getLogger(__name__)


_UCSC_PREFIX = "chr"
_INDEX_SUFFIXES = (".bai", ".csi", ".crai")


def check_alignment_index(aln_path: str | Path) -> None:
    """Ensure a BAM/CRAM has an index; raise ValueError with fix instructions."""
    aln = Path(aln_path)
    for suffix in _INDEX_SUFFIXES:
        if aln.with_suffix(aln.suffix + suffix).exists() or aln.with_suffix(suffix).exists():
            return
    raise ValueError("Alignment file is not indexed. Run: samtools index " + str(aln))


def detect_contig_style(contigs: Iterable[str]) -> str:
    """Infer contig style: 'ucsc' if most contigs start with 'chr', else 'ensembl'."""
    names = [c for c in contigs if c]
    if not names:
        return "unknown"
    chr_like = [c for c in names if c.startswith(_UCSC_PREFIX)]
    if len(chr_like) >= max(1, int(0.5 * len(names))):
        return "ucsc"
    return "ensembl"


def remap_contig(contig: str, style: str) -> str:
    """Remap a contig name to the requested style (ucsc or ensembl)."""
    if style == "ucsc":
        if contig.startswith(_UCSC_PREFIX):
            return contig
        if contig == "MT":
            return "chrM"
        return f"{_UCSC_PREFIX}{contig}"
    if style == "ensembl":
        if contig.startswith(_UCSC_PREFIX):
            core = contig[len(_UCSC_PREFIX) :]
            if core == "M":
                return "MT"
            return core
        return contig
    return contig


def resolve_contig(chrom: str, references: Sequence[str], style: str = "none") -> str:
    """Return the header name for ``chrom``.

    style:
        ``none`` requires an exact match; ``ucsc``/``ensembl`` remap to that
        naming first; ``auto`` remaps to the style detected from the header.
    """
    refs: List[str] = list(references)
    if chrom in refs:
        return chrom
    if style == "none":
        raise ContigLookupError(chrom, known=refs)

    target = style
    if style == "auto":
        target = detect_contig_style(refs)
    remapped = remap_contig(chrom, target)
    if remapped in refs:
        logger.warning("Contig '%s' not in header; using '%s' (%s style).", chrom, remapped, target)
        return remapped
    raise ContigLookupError(chrom, known=refs)
