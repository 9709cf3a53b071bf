from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from .chromosomes import ChromosomeMeta
from .contacts import ContactTable
from .reporting import ensure_dir, write_json


def make_synthetic_genome(
    n_chroms: int = 3,
    *,
    base_length: int = 2_000_000,
) -> list[ChromosomeMeta]:
    """Chromosomes chr1..chrN with decreasing lengths (base_length, base_length/2, ...)."""
    return [
        ChromosomeMeta(index=i + 1, name=f"chr{i + 1}", length=int(base_length // (i + 1)))
        for i in range(int(n_chroms))
    ]


def make_synthetic_contacts(
    chromosomes: list[ChromosomeMeta],
    binsize: int,
    *,
    n_contacts: int = 50_000,
    alpha: float = 1.0,
    seed: int = 0,
) -> ContactTable:
    """Sample intra-chromosomal contacts with power-law distance decay P(d) ~ (d + 1)^-alpha.

    Contacts are split between chromosomes in proportion to their length.
    """

    rng = np.random.default_rng(int(seed))
    lengths = np.asarray([c.length for c in chromosomes], dtype=np.float64)
    per_chrom = rng.multinomial(int(n_contacts), lengths / lengths.sum())

    chrom_idx = []
    bin1 = []
    bin2 = []
    for chrom, n in zip(chromosomes, per_chrom):
        n_bins = int(chrom.length // binsize)
        if n_bins == 0 or n == 0:
            continue
        d = np.arange(n_bins, dtype=np.float64)
        # pairs available at distance d times the decay
        p = (n_bins - d) * (d + 1.0) ** (-float(alpha))
        dist = rng.choice(n_bins, size=int(n), p=p / p.sum())
        start = rng.integers(0, n_bins - dist)
        chrom_idx.append(np.full(int(n), chrom.index, dtype=np.int64))
        bin1.append(start.astype(np.int64))
        bin2.append((start + dist).astype(np.int64))

    if not chrom_idx:
        empty = np.zeros(0, dtype=np.int64)
        return ContactTable(empty, empty, empty, np.zeros(0, dtype=np.float64))

    c = np.concatenate(chrom_idx)
    return ContactTable(
        chrom_idx=c,
        bin1=np.concatenate(bin1),
        bin2=np.concatenate(bin2),
        weight=np.ones(c.shape[0], dtype=np.float64),
    )


def synth_dataset(
    out_dir: str | Path,
    *,
    n_chroms: int = 3,
    base_length: int = 2_000_000,
    binsize: int = 10_000,
    n_contacts: int = 50_000,
    seed: int = 0,
) -> dict[str, Path]:
    """Write chrom.sizes and a contacts TSV (chrom, bin1, bin2, weight)."""

    out_dir = ensure_dir(out_dir)
    chromosomes = make_synthetic_genome(n_chroms, base_length=base_length)
    table = make_synthetic_contacts(chromosomes, binsize, n_contacts=n_contacts, seed=seed)

    sizes_path = out_dir / "chrom.sizes"
    pd.DataFrame(
        {"name": [c.name for c in chromosomes], "length": [c.length for c in chromosomes]}
    ).to_csv(sizes_path, sep="\t", header=False, index=False)

    names = {c.index: c.name for c in chromosomes}
    contacts_path = out_dir / "contacts.tsv"
    pd.DataFrame(
        {
            "chrom": [names[int(i)] for i in table.chrom_idx],
            "bin1": table.bin1,
            "bin2": table.bin2,
            "weight": table.weight,
        }
    ).to_csv(contacts_path, sep="\t", header=False, index=False)

    meta = {
        "n_chroms": int(n_chroms),
        "base_length": int(base_length),
        "binsize": int(binsize),
        "n_contacts": int(len(table)),
        "seed": int(seed),
        "contacts_format": "TSV (chrom, bin1, bin2, weight), bins relative to chrom start",
    }
    write_json(meta, out_dir / "meta.json")

    return {
        "chrom_sizes": sizes_path,
        "contacts": contacts_path,
        "meta": out_dir / "meta.json",
    }
