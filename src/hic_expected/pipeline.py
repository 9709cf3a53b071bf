from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .accumulator import ExpectedValueAccumulator
from .chromosomes import read_chrom_sizes, read_fragment_counts
from .contacts import read_contacts_cooler, read_contacts_tsv
from .density import MIN_COUNT
from .lookup import ExpectedValueFunction
from .reporting import ensure_dir, expected_summary, write_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOutputs:
    out_dir: Path
    expected_path: Path
    meta_path: Path
    expected: ExpectedValueFunction


def run_expected(
    *,
    contacts: str | Path,
    out_dir: str | Path,
    grid_size: int | None = None,
    chrom_sizes: str | Path | None = None,
    fragments: str | Path | None = None,
    normalization: str = "NONE",
    unit: str | None = None,
    min_count: float = MIN_COUNT,
) -> PipelineOutputs:
    """Compute the expected density for a contact file and write it to out_dir.

    Inputs:
      - .cool: chromosomes and grid size come from the file
      - .tsv/.txt: needs chrom_sizes and grid_size

    With ``fragments`` (name -> fragment count table) lengths and grid_size are in
    restriction fragments.

    Writes expected.npy (the density curve) and meta.json (scale factors, totals, settings).
    """

    out_dir = ensure_dir(out_dir)
    contacts = Path(contacts)

    if contacts.suffix.lower() == ".cool":
        cool = read_contacts_cooler(contacts)
        if grid_size is not None and int(grid_size) != cool.binsize:
            raise ValueError(f"grid_size={grid_size} does not match the Cooler bin size {cool.binsize}")
        chromosomes = cool.chromosomes
        table = cool.contacts
        grid_size = cool.binsize
    else:
        if chrom_sizes is None or grid_size is None:
            raise ValueError("TSV contacts need both chrom_sizes and grid_size")
        chromosomes = read_chrom_sizes(chrom_sizes)
        table = read_contacts_tsv(contacts, chromosomes)

    fragment_counts = read_fragment_counts(fragments) if fragments is not None else None

    acc = ExpectedValueAccumulator(
        chromosomes,
        int(grid_size),
        normalization,
        fragment_counts=fragment_counts,
    )
    kept = acc.add_observations(table.chrom_idx, table.bin1, table.bin2, table.weight)
    logger.info("Accumulated %d of %d contacts from %s", kept, len(table), contacts)

    result = acc.finalize(min_count=min_count)
    expected = ExpectedValueFunction.from_density(result, unit=unit)

    expected_path = out_dir / "expected.npy"
    meta_path = out_dir / "meta.json"
    np.save(expected_path, np.asarray(result.density))

    meta = expected_summary(result, names={c.index: c.name for c in chromosomes})
    meta.update(
        {
            "contacts": str(contacts),
            "chrom_sizes": None if chrom_sizes is None else str(chrom_sizes),
            "fragments": None if fragments is None else str(fragments),
            "unit": expected.unit,
            "min_count": float(min_count),
            "n_contacts": int(len(table)),
            "n_kept": int(kept),
        }
    )
    write_json(meta, meta_path)

    return PipelineOutputs(
        out_dir=Path(out_dir),
        expected_path=expected_path,
        meta_path=meta_path,
        expected=expected,
    )
