from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>varsupport Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>varsupport Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<table>
  <tr><th>Alignment file</th><td><code>{{ bam_path }}</code></td></tr>
  <tr><th>Min MAPQ</th><td>{{ min_mapq }}</td></tr>
  <tr><th>Min margin</th><td>{{ min_margin }}</td></tr>
  <tr><th>Variants</th><td>{{ rows | length }}</td></tr>
  {% if reads_tsv %}
  <tr><th>Per-read verdicts</th><td><code>{{ reads_tsv }}</code></td></tr>
  {% endif %}
</table>

<h2>Support per variant</h2>
<table>
  <tr>
    <th>Variant</th><th>Total</th><th>Reference</th><th>Proper</th><th>Margin</th>
    <th>Low MAPQ</th><th>Excessive</th><th>Other alleles</th><th>Unknown</th>
    <th>Alt freq</th><th>Ref freq</th>
  </tr>
  {% for r in rows %}
  <tr>
    <td><code>{{ r.variant }}</code></td><td>{{ r.total }}</td><td>{{ r.reference }}</td>
    <td>{{ r.proper }}</td><td>{{ r.margin }}</td><td>{{ r.lowq }}</td><td>{{ r.excessive }}</td>
    <td>{{ r.alleles }}</td><td>{{ r.unknown }}</td>
    <td>{{ fmt(r.alt_freq) }}</td><td>{{ fmt(r.ref_freq) }}</td>
  </tr>
  {% endfor %}
</table>

<h2>Plots</h2>
{% if plots.alt_freq %}
<div class="card">
  <h3>Alternate allele frequency</h3>
  <img src="{{ plots.alt_freq }}" alt="alt frequencies">
</div>
{% endif %}
<div class="grid" style="margin-top:16px;">
  {% for r in rows %}
  <div class="card">
    <h3>{{ r.variant }}</h3>
    <img src="{{ plots.buckets[r.variant] }}" alt="support buckets">
  </div>
  {% endfor %}
</div>

<h2>Interpretation notes</h2>
<ul>
  <li>Proper alt support requires MAPQ &ge; {{ min_mapq }} and at least {{ min_margin }} aligned bases on both sides.</li>
  <li>Excess reference bases are assumed to match the genome reference.</li>
  <li>Partial alternate support is counted with other alleles.</li>
  <li>Variants without covering reads report frequencies as n/a.</li>
</ul>

<hr>
<p class="small">varsupport {{ version }}</p>
</body>
</html>"""
)


def _fmt_freq(v: Any) -> str:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return "n/a"
    if f != f:  # NaN
        return "n/a"
    return f"{f:.4f}"


def render_report(
    *,
    outdir: str | Path,
    version: str,
    bam_path: str,
    rows: List[Dict[str, Any]],
    min_mapq: int,
    min_margin: int,
    plots: Dict[str, Any],
    reads_tsv: Optional[str] = None,
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    plots = dict(plots)
    plots.setdefault("buckets", {})

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        bam_path=bam_path,
        rows=rows,
        min_mapq=min_mapq,
        min_margin=min_margin,
        plots=plots,
        reads_tsv=reads_tsv,
        fmt=_fmt_freq,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    return out_path
