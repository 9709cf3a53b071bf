from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any

from .density import ExpectedDensity


def ensure_dir(p: str | Path) -> Path:
    path = Path(p)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _finite_or_none(x: float) -> float | None:
    return float(x) if math.isfinite(x) else None


def write_json(obj: Any, path: str | Path) -> None:
    path = Path(path)
    ensure_dir(path.parent)
    path.write_text(json.dumps(obj, indent=2, sort_keys=True, allow_nan=False))


def expected_summary(result: ExpectedDensity, names: dict[int, str] | None = None) -> dict[str, Any]:
    """JSON-friendly description of a finalized expected density (curve excluded).

    Non-finite numbers are written as null.
    """

    names = names or {}

    def key(idx: int) -> str:
        return names.get(idx, str(idx))

    return {
        "normalization": result.normalization,
        "grid_size": int(result.grid_size),
        "is_frag": bool(result.is_frag),
        "n_distances": result.max_num_bins,
        "scale_factors": {key(i): _finite_or_none(f) for i, f in result.scale_factors.items()},
        "observed_totals": {key(i): _finite_or_none(t) for i, t in result.chromosome_totals.items()},
    }
