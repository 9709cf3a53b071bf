import json

import numpy as np
import pandas as pd
import pytest

from hic_expected.contacts import read_contacts_cooler
from hic_expected.pipeline import run_expected

cooler = pytest.importorskip("cooler")


def _make_cool(path):
    bins = pd.DataFrame(
        {
            "chrom": ["chr1", "chr1", "chr1", "chr2", "chr2"],
            "start": [0, 100, 200, 0, 100],
            "end": [100, 200, 300, 100, 200],
        }
    )
    # (2, 3) joins chr1 and chr2
    pixels = pd.DataFrame(
        {
            "bin1_id": [0, 1, 2, 3],
            "bin2_id": [2, 1, 3, 4],
            "count": [5, 3, 7, 4],
        }
    )
    cooler.create_cooler(str(path), bins, pixels)
    return path


def test_read_contacts_cooler_keeps_cis_pixels(tmp_path):
    cool = read_contacts_cooler(_make_cool(tmp_path / "x.cool"))

    assert cool.binsize == 100
    assert [(c.index, c.name, c.length) for c in cool.chromosomes] == [(1, "chr1", 300), (2, "chr2", 200)]
    t = cool.contacts
    np.testing.assert_array_equal(t.chrom_idx, [1, 1, 2])
    np.testing.assert_array_equal(t.bin1, [0, 1, 0])
    np.testing.assert_array_equal(t.bin2, [2, 1, 1])
    np.testing.assert_allclose(t.weight, [5.0, 3.0, 4.0])


def test_run_expected_on_cooler(tmp_path):
    path = _make_cool(tmp_path / "x.cool")
    out = run_expected(contacts=path, out_dir=tmp_path / "out")

    meta = json.loads(out.meta_path.read_text())
    assert meta["grid_size"] == 100
    assert meta["n_kept"] == 3
    assert meta["observed_totals"] == {"chr1": 8.0, "chr2": 4.0}
    assert np.load(out.expected_path).shape == (3,)


def test_run_expected_cooler_grid_size_mismatch(tmp_path):
    path = _make_cool(tmp_path / "x.cool")
    with pytest.raises(ValueError, match="bin size"):
        run_expected(contacts=path, out_dir=tmp_path / "out", grid_size=50)
