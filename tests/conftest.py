import numpy as np
import pytest

from fastcoinc.types import CellData, Config


def _write_candidates(path, rows, marker=True):
    with open(path, "w") as fh:
        for r in rows:
            fh.write(" ".join(str(v) for v in r) + "\n")
        if marker:
            fh.write("%DONE\n")
    return str(path)


@pytest.fixture
def write_candidates(tmp_path):
    """Factory: write rows (fileid, f, ra, dec, f1dot, 2F) to tmp_path/name."""
    def _factory(name, rows, marker=True):
        return _write_candidates(tmp_path / name, rows, marker=marker)
    return _factory


@pytest.fixture
def make_config(tmp_path):
    def _factory(**kw):
        base = dict(
            output_file=str(tmp_path / "out" / "cells.txt"),
            delta_freq=0.01,
            delta_spin=1e-10,
            delta_ra=0.01,
            delta_dec=0.01,
            input_files=[str(tmp_path / "dummy")],
        )
        base.update(kw)
        return Config(**base)
    return _factory


@pytest.fixture
def make_cells():
    """Factory: CellData from per-cell lists, with no members."""
    def _factory(freq_idx, n_candidates, significance, dec_idx=None, ra_idx=None):
        n = len(freq_idx)
        n_cand = np.asarray(n_candidates, dtype=np.int64)
        offsets = np.concatenate([[0], np.cumsum(n_cand)]).astype(np.int64)
        return CellData(
            freq_idx=np.asarray(freq_idx, dtype=np.int64),
            dec_idx=np.asarray(dec_idx if dec_idx is not None else np.zeros(n), dtype=np.int64),
            ra_idx=np.asarray(ra_idx if ra_idx is not None else np.arange(n), dtype=np.int64),
            spin_idx=np.zeros(n, dtype=np.int64),
            n_candidates=n_cand,
            member_offsets=offsets,
            members=np.zeros(int(offsets[-1]), dtype=np.int64),
            mean_frequency=np.asarray(freq_idx, dtype=np.float64) * 0.005,
            mean_declination=np.zeros(n),
            mean_right_ascension=np.ones(n),
            mean_spin_down=np.zeros(n),
            significance=np.asarray(significance, dtype=np.float64),
        )
    return _factory
