from dataclasses import dataclass, field
from typing import List, Optional
import os

import numpy as np

from fastcoinc.errors import ConfigError


@dataclass
class Config:
    output_file: str
    delta_freq: float
    delta_spin: float
    delta_ra: float
    delta_dec: float
    input_files: List[str] = field(default_factory=list)
    input_dir: Optional[str] = None
    basename: str = "Test"
    kappa: float = 4.3
    shift_freq: float = 0.0
    shift_spin: float = 0.0
    shift_ra: float = 0.0
    shift_dec: float = 0.0
    stat_threshold: float = 0.0
    count_threshold: int = 65536
    sig_threshold: float = 1.0e5
    auto: bool = False
    aux_dir: Optional[str] = None
    max_candidates: int = 8_000_000
    table_prefix: Optional[str] = None
    plot_path: Optional[str] = None

    def validate(self) -> "Config":
        """
        Reject inconsistent settings before any file is touched.
        """
        if self.input_files and self.input_dir:
            raise ConfigError("Cannot set both input files and an input directory")
        if not self.input_files and not self.input_dir:
            raise ConfigError("Please set either input files or an input directory")
        if not self.output_file:
            raise ConfigError("An output file name is required")
        for name in ("delta_freq", "delta_spin", "delta_ra", "delta_dec"):
            v = getattr(self, name)
            if not np.isfinite(v) or v <= 0.0:
                raise ConfigError(f"{name} must be a positive finite number (got {v})")
        if not np.isfinite(self.kappa) or self.kappa < 0.0:
            raise ConfigError(f"kappa must be a non-negative finite number (got {self.kappa})")
        for name in ("shift_freq", "shift_spin", "shift_ra", "shift_dec",
                     "stat_threshold", "sig_threshold"):
            if not np.isfinite(getattr(self, name)):
                raise ConfigError(f"{name} must be finite")
        if self.count_threshold < 0:
            raise ConfigError(f"count_threshold must be >= 0 (got {self.count_threshold})")
        if self.max_candidates < 1:
            raise ConfigError(f"max_candidates must be >= 1 (got {self.max_candidates})")
        return self

    @property
    def outlier_dir(self) -> str:
        # auxiliary products default to the directory of the primary dump
        if self.aux_dir:
            return self.aux_dir
        return os.path.dirname(os.path.abspath(self.output_file))


@dataclass
class GridOrigin:
    min_frequency: float
    min_spin_down: float
    min_right_ascension: float
    min_declination: float
    min_source_file_id: int


@dataclass
class CandidateList:
    frequency: np.ndarray
    right_ascension: np.ndarray
    declination: np.ndarray
    spin_down: np.ndarray
    detection_statistic: np.ndarray
    source_file_id: np.ndarray

    def __len__(self) -> int:
        return int(self.frequency.shape[0])

    @classmethod
    def empty(cls) -> "CandidateList":
        z = np.empty(0, dtype=np.float64)
        return cls(z, z.copy(), z.copy(), z.copy(), z.copy(), np.empty(0, dtype=np.int32))


@dataclass
class ReplicaList:
    frequency: np.ndarray
    right_ascension: np.ndarray
    declination: np.ndarray
    spin_down: np.ndarray
    detection_statistic: np.ndarray
    source_file_id: np.ndarray
    freq_idx: np.ndarray
    dec_idx: np.ndarray
    ra_idx: np.ndarray
    spin_idx: np.ndarray

    def __len__(self) -> int:
        return int(self.frequency.shape[0])


@dataclass
class CellData:
    freq_idx: np.ndarray
    dec_idx: np.ndarray
    ra_idx: np.ndarray
    spin_idx: np.ndarray
    n_candidates: np.ndarray
    member_offsets: np.ndarray   # (n_cells + 1,)
    members: np.ndarray          # candidate ids, sliced by member_offsets
    mean_frequency: np.ndarray
    mean_declination: np.ndarray
    mean_right_ascension: np.ndarray
    mean_spin_down: np.ndarray
    significance: np.ndarray

    def __len__(self) -> int:
        return int(self.freq_idx.shape[0])

    def members_of(self, icell: int) -> np.ndarray:
        return self.members[self.member_offsets[icell]:self.member_offsets[icell + 1]]
