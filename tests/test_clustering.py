import numpy as np
import pytest

from fastcoinc.clustering import build_cells, significance_term, sort_replicas
from fastcoinc.grid import replicate_candidates
from fastcoinc.types import CandidateList, GridOrigin


ORIGIN = GridOrigin(0.0, 0.0, 0.0, 0.0, 0)


def _replicas(make_config, freq, stat, file_id, **cfg_kw):
    n = len(freq)
    cands = CandidateList(
        frequency=np.asarray(freq, dtype=np.float64),
        right_ascension=np.full(n, 0.1),
        declination=np.full(n, 0.1),
        spin_down=np.zeros(n),
        detection_statistic=np.asarray(stat, dtype=np.float64),
        source_file_id=np.asarray(file_id, dtype=np.int32),
    )
    kw = dict(delta_freq=1.0, delta_spin=1.0, delta_ra=1.0, delta_dec=1.0, kappa=0.0)
    kw.update(cfg_kw)
    return replicate_candidates(cands, ORIGIN, make_config(**kw))


class TestSignificanceTerm:

    def test_zero_at_zero(self):
        assert significance_term(0.0) == 0.0

    def test_strictly_increasing(self):
        s = significance_term([0.0, 0.5, 1.0, 10.0, 100.0])
        assert np.all(np.diff(s) > 0)

    def test_value(self):
        assert significance_term(2.0) == pytest.approx(1.0 - np.log(2.0))


class TestBuildCells:

    def test_one_member_per_source(self, make_config):
        rep = _replicas(make_config, [10.2, 10.2, 10.2], [5.0, 9.0, 7.0], [0, 0, 0])
        cells = build_cells(rep, 0.0)

        assert len(cells) == 16
        np.testing.assert_array_equal(cells.n_candidates, 1)
        for c in range(len(cells)):
            (j,) = cells.members_of(c)
            assert rep.detection_statistic[j] == 9.0

    def test_distinct_sources_accumulate(self, make_config):
        rep = _replicas(make_config, [10.2, 10.2, 10.2, 10.2],
                        [5.0, 9.0, 7.0, 3.0], [0, 0, 0, 1])
        cells = build_cells(rep, 0.0)

        assert len(cells) == 16
        np.testing.assert_array_equal(cells.n_candidates, 2)
        expected = significance_term(9.0) + significance_term(3.0)
        np.testing.assert_allclose(cells.significance, expected)
        for c in range(len(cells)):
            files = sorted(int(rep.source_file_id[j]) for j in cells.members_of(c))
            assert files == [0, 1]

    def test_mean_over_members(self, make_config):
        rep = _replicas(make_config, [0.9, 1.1], [4.0, 6.0], [0, 1])
        cells = build_cells(rep, 0.0)

        shared = cells.n_candidates == 2
        assert shared.any()
        np.testing.assert_array_equal(cells.freq_idx[shared], 2)
        np.testing.assert_allclose(cells.mean_frequency[shared], 1.0)
        np.testing.assert_allclose(cells.mean_declination[shared], 0.1)

        single = ~shared
        assert set(cells.freq_idx[single]) == {1, 3}

    def test_cells_are_unique(self, make_config):
        rep = _replicas(make_config, [0.9, 1.1, 3.7], [4.0, 6.0, 1.0], [0, 1, 2])
        cells = build_cells(rep, 0.0)
        keys = set(zip(cells.freq_idx, cells.dec_idx, cells.ra_idx, cells.spin_idx))
        assert len(keys) == len(cells)
        assert cells.member_offsets[-1] == cells.members.size
        assert int(cells.n_candidates.sum()) == cells.members.size

    def test_threshold_is_strict(self, make_config):
        rep = _replicas(make_config, [10.2], [10.0], [0])
        assert len(build_cells(rep, 10.0)) == 0
        assert len(build_cells(rep, float(np.nextafter(10.0, 0.0)))) == 16

    def test_zero_statistic_skipped_at_default_threshold(self, make_config):
        rep = _replicas(make_config, [10.2, 10.2], [0.0, 2.0], [0, 1])
        cells = build_cells(rep, 0.0)
        np.testing.assert_array_equal(cells.n_candidates, 1)

    def test_sort_order_is_cell_key_then_source(self, make_config):
        rep = _replicas(make_config, [10.2, 10.2], [1.0, 2.0], [1, 0])
        order = sort_replicas(rep)
        f = rep.freq_idx[order]
        assert np.all(np.diff(f) >= 0)
        # within the first cell the lower source id comes first
        assert rep.source_file_id[order[0]] == 0

    def test_empty(self, make_config):
        rep = _replicas(make_config, [], [], [])
        cells = build_cells(rep, 0.0)
        assert len(cells) == 0
        assert cells.member_offsets.tolist() == [0]
