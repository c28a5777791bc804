"""
Tests for candidate file ingestion and configuration checks.
"""

import math

import numpy as np
import pytest

from fastcoinc import ingest
from fastcoinc.errors import ConfigError, IngestionError, ResourceError


GOOD_ROWS = [
    (0, 100.0, 1.0, 0.2, -1e-9, 20.0),
    (1, 100.5, 6.0, -0.3, -2e-9, 0.0),
    (2, 99.5, 0.0, 1.5707, 1e-9, 7.5),
]


class TestReadCandidateFile:

    def test_reads_all_fields(self, write_candidates):
        path = write_candidates("good.txt", GOOD_ROWS)
        cands = ingest.read_candidate_file(path)

        assert len(cands) == 3
        np.testing.assert_array_equal(cands.source_file_id, [0, 1, 2])
        np.testing.assert_allclose(cands.frequency, [100.0, 100.5, 99.5])
        np.testing.assert_allclose(cands.right_ascension, [1.0, 6.0, 0.0])
        np.testing.assert_allclose(cands.declination, [0.2, -0.3, 1.5707])
        np.testing.assert_allclose(cands.spin_down, [-1e-9, -2e-9, 1e-9])
        np.testing.assert_allclose(cands.detection_statistic, [20.0, 0.0, 7.5])

    def test_marker_only_file_is_empty(self, write_candidates):
        path = write_candidates("empty.txt", [])
        assert len(ingest.read_candidate_file(path)) == 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(IngestionError, match="doesn't exist"):
            ingest.read_candidate_file(str(tmp_path / "nope.txt"))

    def test_missing_marker(self, write_candidates):
        path = write_candidates("nomarker.txt", GOOD_ROWS, marker=False)
        with pytest.raises(IngestionError, match="not properly terminated"):
            ingest.read_candidate_file(path)

    def test_content_after_marker(self, tmp_path):
        path = tmp_path / "after.txt"
        path.write_text("0 100.0 1.0 0.2 0.0 5.0\n%DONE\n0 100.0 1.0 0.2 0.0 5.0\n")
        with pytest.raises(IngestionError, match="did not terminate"):
            ingest.read_candidate_file(str(path))

    def test_wrong_field_count_names_line(self, write_candidates):
        rows = [GOOD_ROWS[0], (1, 100.0, 1.0, 0.2, 5.0)]
        path = write_candidates("short.txt", rows)
        with pytest.raises(IngestionError, match="line 2") as exc:
            ingest.read_candidate_file(path)
        assert "short.txt" in str(exc.value)

    @pytest.mark.parametrize("row", [
        (0, 100.0, 1.0, 1.7, 0.0, 5.0),          # declination above the pole
        (0, 100.0, 7.0, 0.1, 0.0, 5.0),          # right ascension above 2 pi
        (0, -1.0, 1.0, 0.1, 0.0, 5.0),           # negative frequency
        (0, 100.0, 1.0, 0.1, 0.0, -5.0),         # negative statistic
        (-1, 100.0, 1.0, 0.1, 0.0, 5.0),         # negative file id
        (1099511627776, 100.0, 1.0, 0.5, -1e-09, 20.0),  # file id beyond int32
        (0, 100.0, 1.0, 0.1, "nan", 5.0),        # non-finite spin-down
        (0, 100.0, 1.0, 0.1, 0.0, "inf"),        # non-finite statistic
    ])
    def test_invalid_values_are_fatal(self, write_candidates, row):
        path = write_candidates("bad.txt", [GOOD_ROWS[0], row])
        with pytest.raises(IngestionError, match="Line 2 of file"):
            ingest.read_candidate_file(path)

    def test_angle_tolerance(self, write_candidates):
        rows = [(0, 1.0, 2 * math.pi + 5e-6, -0.5 * math.pi - 5e-6, 0.0, 1.0)]
        path = write_candidates("edge.txt", rows)
        assert len(ingest.read_candidate_file(path)) == 1

    def test_unparsable_number(self, tmp_path):
        path = tmp_path / "garbage.txt"
        path.write_text("0 100.0 abc 0.2 0.0 5.0\n%DONE\n")
        with pytest.raises(IngestionError, match="line 1"):
            ingest.read_candidate_file(str(path))


class TestReadCandidateFiles:

    def test_concatenates_and_tracks_minimums(self, write_candidates):
        a = write_candidates("a.txt", GOOD_ROWS[:2])
        b = write_candidates("b.txt", GOOD_ROWS[2:])
        cands, origin = ingest.read_candidate_files([a, b])

        assert len(cands) == 3
        assert origin.min_frequency == pytest.approx(99.5)
        assert origin.min_spin_down == pytest.approx(-2e-9)
        assert origin.min_right_ascension == pytest.approx(0.0)
        assert origin.min_declination == pytest.approx(-0.3)
        assert origin.min_source_file_id == 0

    def test_low_statistics_are_retained(self, write_candidates):
        a = write_candidates("a.txt", [(0, 1.0, 1.0, 0.0, 0.0, 0.0)])
        cands, _ = ingest.read_candidate_files([a])
        assert len(cands) == 1

    def test_candidate_ceiling(self, write_candidates):
        a = write_candidates("a.txt", GOOD_ROWS)
        with pytest.raises(ResourceError, match="Maximum number of candidate events"):
            ingest.read_candidate_files([a], max_candidates=2)

    def test_no_paths(self):
        with pytest.raises(IngestionError):
            ingest.read_candidate_files([])


class TestDiscoverCandidateFiles:

    def test_glob_on_basename(self, write_candidates, tmp_path):
        write_candidates("Test_run1.txt", GOOD_ROWS)
        write_candidates("Test_run0.txt", GOOD_ROWS)
        write_candidates("other.txt", GOOD_ROWS)
        files = ingest.discover_candidate_files(str(tmp_path), "Test")
        assert [p.rsplit("/", 1)[-1] for p in files] == ["Test_run0.txt", "Test_run1.txt"]

    def test_no_match(self, tmp_path):
        with pytest.raises(IngestionError, match="No input files"):
            ingest.discover_candidate_files(str(tmp_path), "Test")


class TestConfigValidate:

    def test_valid(self, make_config):
        assert make_config().validate() is not None

    def test_both_inputs(self, make_config, tmp_path):
        with pytest.raises(ConfigError, match="both"):
            make_config(input_dir=str(tmp_path)).validate()

    def test_no_input(self, make_config):
        with pytest.raises(ConfigError, match="either"):
            make_config(input_files=[]).validate()

    @pytest.mark.parametrize("field", ["delta_freq", "delta_spin", "delta_ra", "delta_dec"])
    def test_non_positive_width(self, make_config, field):
        with pytest.raises(ConfigError, match=field):
            make_config(**{field: 0.0}).validate()

    def test_negative_kappa(self, make_config):
        with pytest.raises(ConfigError, match="kappa"):
            make_config(kappa=-1.0).validate()

    def test_config_error_is_value_error(self, make_config):
        with pytest.raises(ValueError):
            make_config(count_threshold=-1).validate()
