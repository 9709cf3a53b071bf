import numpy as np
import pytest

from hic_expected.chromosomes import ChromosomeMeta
from hic_expected.contacts import read_contacts_tsv


CHROMS = [ChromosomeMeta(1, "chr1", 1000), ChromosomeMeta(2, "chr2", 2000)]


def test_read_contacts_tsv(tmp_path):
    p = tmp_path / "contacts.tsv"
    p.write_text("chr1\t0\t3\t2.5\nchr2\t4\t4\t1\nchrM\t0\t1\t7\nchr1\t2\t1\tnan\n")

    t = read_contacts_tsv(p, CHROMS)
    assert len(t) == 4
    np.testing.assert_array_equal(t.chrom_idx, [1, 2, -1, 1])
    np.testing.assert_array_equal(t.bin1, [0, 4, 0, 2])
    np.testing.assert_array_equal(t.bin2, [3, 4, 1, 1])
    assert t.weight[0] == 2.5
    assert np.isnan(t.weight[3])


def test_read_contacts_tsv_default_weight(tmp_path):
    p = tmp_path / "contacts.tsv"
    p.write_text("chr1\t0\t3\nchr2\t1\t5\n")
    t = read_contacts_tsv(p, CHROMS)
    np.testing.assert_array_equal(t.weight, [1.0, 1.0])


def test_read_contacts_tsv_rejects_negative_bins(tmp_path):
    p = tmp_path / "contacts.tsv"
    p.write_text("chr1\t-1\t3\t1\n")
    with pytest.raises(ValueError):
        read_contacts_tsv(p, CHROMS)
