from __future__ import annotations

import gzip
import json
from pathlib import Path
from typing import Any, TextIO


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


def dumps_json(obj: Any) -> str:
    return json.dumps(obj, indent=2)


def write_json(path: str | Path, obj: Any) -> None:
    with open(path, "wt", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True)


def safe_filename(text: str) -> str:
    """Turn a variant spec like ``chr1:123AT>-`` into a file-name friendly token."""
    out = []
    for ch in text:
        if ch.isalnum() or ch in "._-":
            out.append(ch)
        elif ch == ">":
            out.append("_to_")
        else:
            out.append("_")
    return "".join(out)
