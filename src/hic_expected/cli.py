from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .density import MIN_COUNT
from .pipeline import run_expected
from .synth import synth_dataset

LOGGING_FORMAT = "[%(asctime)s | %(levelname)s] %(name)10s : %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="hic-expected")
    p.add_argument(
        "--log_level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    ps = sub.add_parser("synth", help="Generate a small synthetic genome + contact table")
    ps.add_argument("--out_dir", type=str, default="data/synthetic")
    ps.add_argument("--n_chroms", type=int, default=3)
    ps.add_argument("--base_length", type=int, default=2_000_000)
    ps.add_argument("--binsize", type=int, default=10_000)
    ps.add_argument("--n_contacts", type=int, default=50_000)
    ps.add_argument("--seed", type=int, default=0)

    pr = sub.add_parser("run", help="Compute the expected density and per-chromosome scale factors")
    pr.add_argument("--contacts", type=str, required=True, help=".tsv (chrom, bin1, bin2, weight) or .cool")
    pr.add_argument("--out_dir", type=str, required=True)
    pr.add_argument("--chrom_sizes", type=str, default=None)
    pr.add_argument("--grid_size", type=int, default=None)
    pr.add_argument("--fragments", type=str, default=None, help="Fragment counts table (name, count)")
    pr.add_argument("--normalization", type=str, default="NONE")
    pr.add_argument("--unit", type=str, default=None)
    pr.add_argument("--min_count", type=float, default=MIN_COUNT)

    return p


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(format=LOGGING_FORMAT, level=getattr(logging, args.log_level))

    if args.cmd == "synth":
        paths = synth_dataset(
            out_dir=args.out_dir,
            n_chroms=int(args.n_chroms),
            base_length=int(args.base_length),
            binsize=int(args.binsize),
            n_contacts=int(args.n_contacts),
            seed=int(args.seed),
        )
        print("Wrote:")
        for k, v in paths.items():
            print(f"  {k}: {Path(v).as_posix()}")
        return

    if args.cmd == "run":
        out = run_expected(
            contacts=args.contacts,
            out_dir=args.out_dir,
            grid_size=args.grid_size,
            chrom_sizes=args.chrom_sizes,
            fragments=args.fragments,
            normalization=str(args.normalization),
            unit=args.unit,
            min_count=float(args.min_count),
        )
        print("Expected values:", out.expected.expected_values_array.shape[0], f"({out.expected.unit})")
        print("Wrote outputs to:", out.out_dir.as_posix())
        return

    raise SystemExit(f"Unknown command: {args.cmd}")


if __name__ == "__main__":
    main()
