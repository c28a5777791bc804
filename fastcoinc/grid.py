"""
Grid replication.

Every candidate is copied into 16 replicas whose cell indices are the
2**4 combinations of rounding each of the four doubled-grid indices down
or up by one half-cell. Two neighbouring candidates separated by a cell
boundary of the plain grid still share at least one replica cell.
"""

import logging

import numpy as np

from fastcoinc import kernels
from fastcoinc.errors import ResourceError
from fastcoinc.types import CandidateList, Config, GridOrigin, ReplicaList

N_REPLICAS = kernels.N_REPLICAS

log = logging.getLogger("fastcoinc.grid")


def effective_dec_width(declination, delta_ra: float, delta_dec: float, kappa: float):
    """Declination cell width at ``declination``: ``Δra + Δdec * exp(-κ δ²)``."""
    declination = np.asarray(declination, dtype=np.float64)
    return delta_ra + delta_dec * np.exp(-kappa * declination * declination)


def replicate_candidates(candidates: CandidateList, origin: GridOrigin, cfg: Config) -> ReplicaList:
    """
    Expand ``candidates`` into a ReplicaList of length ``16 * len(candidates)``.

    The value fields are repeated, so the caller may drop ``candidates``
    once this returns. The replica at position ``16*i + k`` is the k-th
    offset variant of candidate ``i``; its position is its candidate id.
    """
    n = len(candidates)
    n16 = N_REPLICAS * n
    try:
        freq_idx = np.empty(n16, dtype=np.int64)
        dec_idx = np.empty(n16, dtype=np.int64)
        ra_idx = np.empty(n16, dtype=np.int64)
        spin_idx = np.empty(n16, dtype=np.int64)
        rep = ReplicaList(
            frequency=np.repeat(candidates.frequency, N_REPLICAS),
            right_ascension=np.repeat(candidates.right_ascension, N_REPLICAS),
            declination=np.repeat(candidates.declination, N_REPLICAS),
            spin_down=np.repeat(candidates.spin_down, N_REPLICAS),
            detection_statistic=np.repeat(candidates.detection_statistic, N_REPLICAS),
            source_file_id=np.repeat(candidates.source_file_id, N_REPLICAS),
            freq_idx=freq_idx, dec_idx=dec_idx, ra_idx=ra_idx, spin_idx=spin_idx,
        )
    except MemoryError as e:
        raise ResourceError(f"Could not allocate memory for {n16} replicated candidates") from e

    if n > 0:
        kernels._replicate_indices(
            np.ascontiguousarray(candidates.frequency, dtype=np.float64),
            np.ascontiguousarray(candidates.right_ascension, dtype=np.float64),
            np.ascontiguousarray(candidates.declination, dtype=np.float64),
            np.ascontiguousarray(candidates.spin_down, dtype=np.float64),
            float(origin.min_frequency), float(origin.min_spin_down),
            float(cfg.delta_freq), float(cfg.delta_ra), float(cfg.delta_dec),
            float(cfg.delta_spin), float(cfg.kappa),
            float(cfg.shift_freq), float(cfg.shift_ra), float(cfg.shift_dec), float(cfg.shift_spin),
            freq_idx, dec_idx, ra_idx, spin_idx,
        )

    log.info("[Grid] replicated %d candidates into %d grid entries", n, n16)
    return rep


def parent_candidate(candidate_id):
    """Index of the ingested candidate a replica was made from."""
    return np.asarray(candidate_id) // N_REPLICAS
