from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

import numpy as np
import pandas as pd

# Name of the synthetic whole-genome entry found in chromosome catalogs.
WHOLE_GENOME = "All"


class ChromosomeLengthError(ValueError):
    """A chromosome length could not be resolved from the supplied metadata.

    Usually means the fragment map (or chrom.sizes file) belongs to a different
    reference genome than the contact data.
    """


@dataclass(frozen=True)
class ChromosomeMeta:
    """One chromosome of the genome: integer index, name and length in bp."""

    index: int
    name: str
    length: int

    @property
    def is_whole_genome(self) -> bool:
        return self.name.lower() == WHOLE_GENOME.lower()


def resolve_lengths(
    chromosomes: Iterable[ChromosomeMeta],
    *,
    fragment_counts: Mapping[str, int] | None = None,
) -> dict[int, int]:
    """Map chromosome index -> length in the active unit.

    In fragment mode the length is the chromosome's restriction fragment count
    looked up by name; otherwise it is the length in base pairs. The whole-genome
    entry is skipped.

    Raises:
        ChromosomeLengthError: if any length is missing, non-finite or not positive.
    """

    lengths: dict[int, int] = {}
    for chrom in chromosomes:
        if chrom is None or chrom.is_whole_genome:
            continue
        if fragment_counts is not None:
            if chrom.name not in fragment_counts:
                raise ChromosomeLengthError(
                    f"Chromosome {chrom.name!r} is missing from the fragment map. "
                    "Check that the fragment file and the chromosome sizes come from the same genome."
                )
            value = fragment_counts[chrom.name]
        else:
            value = chrom.length

        if value is None or not math.isfinite(float(value)) or value <= 0:
            raise ChromosomeLengthError(
                f"Chromosome {chrom.name!r} has no usable length (got {value!r})"
            )
        lengths[int(chrom.index)] = int(value)
    return lengths


def _read_two_column(path: str | Path, value_name: str) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))
    df = pd.read_csv(
        path,
        sep="\t",
        header=None,
        usecols=[0, 1],
        names=["name", value_name],
        dtype={"name": str, value_name: np.int64},
        comment="#",
    )
    if df.empty:
        raise ValueError(f"Table is empty: {path}")
    if df["name"].duplicated().any():
        dup = df.loc[df["name"].duplicated(), "name"].iloc[0]
        raise ValueError(f"Duplicate chromosome {dup!r} in {path}")
    return df


def read_chrom_sizes(path: str | Path) -> list[ChromosomeMeta]:
    """Read a UCSC-style chrom.sizes table (name, length).

    Indices follow file order starting at 1; index 0 is reserved for the
    whole-genome entry, as in .hic chromosome catalogs.
    """

    df = _read_two_column(path, "length")
    return [
        ChromosomeMeta(index=i + 1, name=str(name), length=int(length))
        for i, (name, length) in enumerate(zip(df["name"], df["length"]))
    ]


def read_fragment_counts(path: str | Path) -> dict[str, int]:
    """Read a (name, fragment count) table."""
    df = _read_two_column(path, "fragments")
    return {str(n): int(c) for n, c in zip(df["name"], df["fragments"])}
