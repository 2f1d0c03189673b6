from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

from . import __version__
from .models import Thresholds
from .pipeline import VariantRun, runs_table, summaries_to_json, summarize_bam
from .plotting import plot_alt_frequencies, plot_bucket_counts
from .report import render_report
from .toy_data import make_toy_data
from .utils import dumps_json, ensure_outdir, safe_filename, write_json


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _non_negative_int(v: str) -> int:
    try:
        i = int(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected an integer, got: {v}") from None
    if i < 0:
        raise argparse.ArgumentTypeError(f"Expected a non-negative integer, got: {v}")
    return i


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    msg = f"{err.__class__.__name__}: {err}"

    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="varsupport",
        description=(
            "varsupport: per-read support stats for SNVs/InDels from an indexed BAM, "
            "based on CIGAR and MD tag."
        ),
        epilog="Run 'varsupport make-toy-data --outdir DIR' to generate a demo BAM with two variants.",
    )
    p.add_argument("--version", action="version", version=f"varsupport {__version__}")

    p.add_argument("bam", type=_path_exists, help="Input BAM/CRAM (sorted, indexed, with MD tags).")
    p.add_argument(
        "--var",
        required=True,
        action="append",
        metavar="SPEC",
        help="Input genome variant, e.g. 'chr1:12345AT>-'. Repeat for several variants.",
    )
    p.add_argument("--mapq", type=_non_negative_int, default=30, help="Minimum read mapping quality.")
    p.add_argument(
        "--margin",
        type=_non_negative_int,
        default=10,
        help=(
            "Minimum margin base distance for alt support. "
            "Margin stands for read start/end, softclip start/end etc."
        ),
    )
    p.add_argument(
        "--contig-style",
        choices=["none", "ucsc", "ensembl", "auto"],
        default="none",
        help="Remap variant contig names (chr1 vs 1) when they are missing from the BAM header.",
    )

    # Read filters
    p.add_argument("--skip-duplicates", action="store_true", help="Skip reads flagged as duplicates.")
    p.add_argument("--skip-secondary", action="store_true", help="Skip secondary alignments.")
    p.add_argument("--skip-supplementary", action="store_true", help="Skip supplementary alignments.")

    # Outputs
    p.add_argument(
        "--reads-tsv",
        default=None,
        help="Write per-read verdicts to this TSV (gzip if it ends with .gz).",
    )
    p.add_argument(
        "--outdir",
        default=None,
        help="Also write summary.json, plots and report.html into this directory.",
    )
    p.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")
    return p


def _write_outdir(
    outdir: Path,
    *,
    bam_path: str,
    runs: Dict[str, VariantRun],
    thresholds: Thresholds,
    reads_tsv: Optional[str],
) -> Path:
    outdir = ensure_outdir(outdir)
    write_json(outdir / "summary.json", summaries_to_json(runs))

    rows = runs_table(runs)
    plots_dir = outdir / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)

    bucket_plots: Dict[str, str] = {}
    for spec, run in runs.items():
        png = plots_dir / f"buckets_{safe_filename(spec)}.png"
        plot_bucket_counts(counts=run.summary.to_dict(), out_png=png, title=spec)
        bucket_plots[spec] = str(Path("plots") / png.name)

    alt_png = plots_dir / "alt_freq.png"
    plot_alt_frequencies(alt_freqs={r["variant"]: r["alt_freq"] for r in rows}, out_png=alt_png)

    return render_report(
        outdir=outdir,
        version=__version__,
        bam_path=bam_path,
        rows=rows,
        min_mapq=thresholds.min_mapq,
        min_margin=thresholds.min_margin,
        plots={"alt_freq": str(Path("plots") / alt_png.name), "buckets": bucket_plots},
        reads_tsv=reads_tsv,
    )


def cmd_run(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve() if args.outdir else None
    log_path = outdir / "logs" / "varsupport.log" if outdir is not None else None
    _setup_logging(args.verbose, logfile=log_path)

    logger = logging.getLogger("varsupport")
    logger.info("varsupport %s", __version__)

    try:
        thresholds = Thresholds(min_mapq=int(args.mapq), min_margin=int(args.margin))
        runs = summarize_bam(
            bam_path=args.bam,
            specs=args.var,
            thresholds=thresholds,
            contig_style=args.contig_style,
            skip_duplicates=bool(args.skip_duplicates),
            skip_secondary=bool(args.skip_secondary),
            skip_supplementary=bool(args.skip_supplementary),
            reads_tsv=args.reads_tsv,
            progress=not bool(args.no_progress),
        )

        if outdir is not None:
            report_path = _write_outdir(
                outdir,
                bam_path=args.bam,
                runs=runs,
                thresholds=thresholds,
                reads_tsv=args.reads_tsv,
            )
            logger.info("Report written: %s", report_path)

        print(dumps_json(summaries_to_json(runs)))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def build_toy_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="varsupport make-toy-data",
        description="Generate a tiny indexed BAM (with MD tags) for demos/tests.",
    )
    p.add_argument("--outdir", required=True, help="Output directory for toy data.")
    p.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")
    return p


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    try:
        summary = make_toy_data(outdir=outdir)
    except Exception as e:
        return _handle_error(e)
    print(dumps_json(summary))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    if argv and argv[0] == "make-toy-data":
        return cmd_make_toy_data(build_toy_parser().parse_args(argv[1:]))

    parser = build_parser()
    args = parser.parse_args(argv)
    return cmd_run(args)


if __name__ == "__main__":
    raise SystemExit(main())
