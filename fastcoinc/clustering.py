"""
Sort-then-scan cell clustering.

Replicas are ordered by (freqIdx, decIdx, raIdx, spinIdx, sourceFileId,
-detectionStatistic) and scanned once. Each run of identical cell
indices becomes a cell; within a cell only the first (loudest) replica of
every source file becomes a member.
"""

import logging

import numpy as np

from fastcoinc import kernels
from fastcoinc.errors import ResourceError
from fastcoinc.types import CellData, ReplicaList

log = logging.getLogger("fastcoinc.clustering")


def significance_term(stat):
    """
    Contribution of one member to a cell's significance, ``s/2 - ln(1 + s/2)``.
    Zero at s = 0 and strictly increasing for s > 0.
    """
    h = 0.5 * np.asarray(stat, dtype=np.float64)
    return h - np.log1p(h)


def sort_replicas(replicas: ReplicaList) -> np.ndarray:
    """
    Permutation sorting the replicas into scan order.

    np.lexsort takes the primary key last.
    """
    try:
        order = np.lexsort((
            -replicas.detection_statistic,
            replicas.source_file_id,
            replicas.spin_idx,
            replicas.ra_idx,
            replicas.dec_idx,
            replicas.freq_idx,
        ))
    except MemoryError as e:
        raise ResourceError(f"Could not allocate memory to sort {len(replicas)} replicas") from e
    return order.astype(np.int64, copy=False)


def cluster_replicas(replicas: ReplicaList, order: np.ndarray, threshold: float) -> CellData:
    """
    Group sorted replicas into cells.

    Replicas with ``detection_statistic <= threshold`` are skipped. The
    returned CellData has its index fields and member arena filled; the
    statistics are zero until ``finalise_cells`` runs.
    """
    try:
        n_cells, offsets, members, n_members = kernels._scan_cells(
            np.ascontiguousarray(order, dtype=np.int64),
            replicas.freq_idx, replicas.dec_idx, replicas.ra_idx, replicas.spin_idx,
            replicas.source_file_id, replicas.detection_statistic,
            float(threshold),
        )
    except MemoryError as e:
        raise ResourceError(f"Could not allocate cell arrays for {len(replicas)} replicas") from e

    offsets = offsets[:n_cells + 1].copy()
    members = members[:n_members].copy()
    first = members[offsets[:-1]]

    return CellData(
        freq_idx=replicas.freq_idx[first],
        dec_idx=replicas.dec_idx[first],
        ra_idx=replicas.ra_idx[first],
        spin_idx=replicas.spin_idx[first],
        n_candidates=np.diff(offsets),
        member_offsets=offsets,
        members=members,
        mean_frequency=np.zeros(n_cells, dtype=np.float64),
        mean_declination=np.zeros(n_cells, dtype=np.float64),
        mean_right_ascension=np.zeros(n_cells, dtype=np.float64),
        mean_spin_down=np.zeros(n_cells, dtype=np.float64),
        significance=np.zeros(n_cells, dtype=np.float64),
    )


def finalise_cells(cells: CellData, replicas: ReplicaList) -> CellData:
    """Fill significance and mean positions, one walk per member list."""
    if len(cells) > 0:
        kernels._finalise_cells(
            cells.member_offsets, cells.members,
            replicas.frequency, replicas.declination, replicas.right_ascension,
            replicas.spin_down, replicas.detection_statistic,
            cells.mean_frequency, cells.mean_declination,
            cells.mean_right_ascension, cells.mean_spin_down,
            cells.significance,
        )
    return cells


def build_cells(replicas: ReplicaList, threshold: float) -> CellData:
    """Sort, scan and finalise."""
    order = sort_replicas(replicas)
    cells = cluster_replicas(replicas, order, threshold)
    del order
    finalise_cells(cells, replicas)
    log.info("Number of populated cells: %d \t Length of replica list: %d", len(cells), len(replicas))
    return cells
