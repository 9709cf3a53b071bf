from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd

from .chromosomes import ChromosomeMeta


@dataclass(frozen=True)
class ContactTable:
    """Contacts as parallel arrays, bins relative to the start of each chromosome."""

    chrom_idx: np.ndarray
    bin1: np.ndarray
    bin2: np.ndarray
    weight: np.ndarray

    def __len__(self) -> int:
        return int(self.chrom_idx.shape[0])


@dataclass(frozen=True)
class CoolerContacts:
    contacts: ContactTable
    chromosomes: list[ChromosomeMeta]
    binsize: int


def read_contacts_tsv(path: str | Path, chromosomes: Iterable[ChromosomeMeta]) -> ContactTable:
    """Read a contact table with columns: chrom, bin1, bin2, weight (optional).

    Chromosome names are mapped to chromosome indices; names not in
    ``chromosomes`` get index -1 so that the accumulator skips them.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))

    df = pd.read_csv(path, sep="\t", header=None, comment="#")
    if df.shape[1] < 3:
        raise ValueError(f"Contact table must have at least three columns: chrom, bin1, bin2 ({path})")
    df = df.iloc[:, :4].copy()
    df.columns = ["chrom", "bin1", "bin2", "weight"][: df.shape[1]]
    if "weight" not in df.columns:
        df["weight"] = 1.0

    index = {c.name: int(c.index) for c in chromosomes}
    chrom_idx = df["chrom"].astype(str).map(index).fillna(-1).to_numpy(dtype=np.int64)

    bin1 = df["bin1"].to_numpy(dtype=np.int64)
    bin2 = df["bin2"].to_numpy(dtype=np.int64)
    if bin1.min(initial=0) < 0 or bin2.min(initial=0) < 0:
        raise ValueError("Bin indices must be non-negative")

    # Unparseable weights become NaN and are dropped by the accumulator.
    weight = pd.to_numeric(df["weight"], errors="coerce").to_numpy(dtype=np.float64)

    return ContactTable(chrom_idx=chrom_idx, bin1=bin1, bin2=bin2, weight=weight)


def read_contacts_cooler(path: str | Path) -> CoolerContacts:
    """Read the intra-chromosomal pixels of a Cooler file (.cool).

    Notes:
      - This is an *optional* feature: it requires the third-party `cooler` package.
      - Chromosome indices start at 1, following the file's chromosome order.
    """

    try:
        import cooler  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError(
            "Reading .cool files requires the optional dependency 'cooler'. "
            "Install with: pip install 'hic-expected-engine[hic]' (or pip install cooler)."
        ) from e

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))

    c = cooler.Cooler(str(path))
    if c.binsize is None:
        raise ValueError(f"Cooler {path} has variable-width bins; a fixed bin size is required")

    chromsizes = c.chromsizes
    chromosomes = [
        ChromosomeMeta(index=i + 1, name=str(name), length=int(length))
        for i, (name, length) in enumerate(chromsizes.items())
    ]

    bins = c.bins()[["chrom"]][:]
    chrom_codes = pd.Categorical(bins["chrom"], categories=list(chromsizes.index)).codes
    offsets = np.asarray([c.offset(name) for name in chromsizes.index], dtype=np.int64)

    pixels = c.pixels()[:]
    b1 = pixels["bin1_id"].to_numpy(dtype=np.int64)
    b2 = pixels["bin2_id"].to_numpy(dtype=np.int64)
    w = pixels["count"].to_numpy(dtype=np.float64)

    code1 = chrom_codes[b1]
    cis = code1 == chrom_codes[b2]
    code = code1[cis].astype(np.int64)

    contacts = ContactTable(
        chrom_idx=code + 1,
        bin1=b1[cis] - offsets[code],
        bin2=b2[cis] - offsets[code],
        weight=w[cis],
    )
    return CoolerContacts(contacts=contacts, chromosomes=chromosomes, binsize=int(c.binsize))
