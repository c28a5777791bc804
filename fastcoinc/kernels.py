import math
from typing import Tuple

import numpy as np
from numba import njit, prange

# ============================
# NUMBA-ACCELERATED KERNELS
# ============================

N_REPLICAS = 16


@njit(parallel=True)
def _replicate_indices(freq: np.ndarray, ra: np.ndarray, dec: np.ndarray, spin: np.ndarray,
                       fmin: float, spinmin: float,
                       dfreq: float, dra: float, ddec: float, dspin: float, kappa: float,
                       shift_freq: float, shift_ra: float, shift_dec: float, shift_spin: float,
                       freq_idx: np.ndarray, dec_idx: np.ndarray,
                       ra_idx: np.ndarray, spin_idx: np.ndarray) -> None:
    """
    Fill the (16*N,) index arrays for N candidates.

    Replica k = 8*b1 + 4*b2 + 2*b3 + b4 of candidate i sits at 16*i + k;
    b1..b4 add one half-cell to the frequency, declination, right ascension
    and spin-down index respectively.
    """
    n = freq.shape[0]
    for i in prange(n):
        d = dec[i]
        # declination window widens towards the equator
        ddec_flex = dra + ddec * math.exp(-kappa * d * d)
        f0 = np.int64(math.floor(2.0 * ((freq[i] - fmin) / dfreq + shift_freq)))
        d0 = np.int64(math.floor(2.0 * (d / ddec_flex + shift_dec)))
        a0 = np.int64(math.floor(2.0 * (ra[i] * math.cos(d) / dra + shift_ra)))
        s0 = np.int64(math.floor(2.0 * ((spin[i] - spinmin) / dspin + shift_spin)))
        base = N_REPLICAS * i
        for k in range(N_REPLICAS):
            j = base + k
            freq_idx[j] = f0 + ((k >> 3) & 1)
            dec_idx[j] = d0 + ((k >> 2) & 1)
            ra_idx[j] = a0 + ((k >> 1) & 1)
            spin_idx[j] = s0 + (k & 1)


@njit
def _scan_cells(order: np.ndarray,
                freq_idx: np.ndarray, dec_idx: np.ndarray,
                ra_idx: np.ndarray, spin_idx: np.ndarray,
                file_id: np.ndarray, stat: np.ndarray,
                threshold: float) -> Tuple[int, np.ndarray, np.ndarray, int]:
    """
    Single pass over replicas visited in ``order`` (already sorted by cell
    key, source id, then decreasing statistic).

    Returns
    -------
    n_cells : int
    offsets : (n_cells + 1,) int64, valid up to n_cells
    members : int64 candidate ids, valid up to n_members
    n_members : int
    """
    n = order.shape[0]
    offsets = np.empty(n + 1, dtype=np.int64)
    members = np.empty(n, dtype=np.int64)
    n_cells = 0
    n_members = 0

    cf = 0; cd = 0; ca = 0; cs = 0
    last_file = -1
    for p in range(n):
        j = order[p]
        if not (stat[j] > threshold):
            continue
        same_cell = (n_cells > 0 and freq_idx[j] == cf and dec_idx[j] == cd
                     and ra_idx[j] == ca and spin_idx[j] == cs)
        if same_cell:
            if file_id[j] != last_file:
                members[n_members] = j
                n_members += 1
                last_file = file_id[j]
            # same source: an equal or higher statistic from it is already a member
        else:
            offsets[n_cells] = n_members
            n_cells += 1
            cf = freq_idx[j]; cd = dec_idx[j]; ca = ra_idx[j]; cs = spin_idx[j]
            members[n_members] = j
            n_members += 1
            last_file = file_id[j]
    offsets[n_cells] = n_members
    return n_cells, offsets, members, n_members


@njit(inline='always')
def _significance_term(s):
    h = 0.5 * s
    return h - math.log1p(h)


@njit(parallel=True)
def _finalise_cells(offsets: np.ndarray, members: np.ndarray,
                    freq: np.ndarray, dec: np.ndarray, ra: np.ndarray,
                    spin: np.ndarray, stat: np.ndarray,
                    mean_freq: np.ndarray, mean_dec: np.ndarray,
                    mean_ra: np.ndarray, mean_spin: np.ndarray,
                    significance: np.ndarray) -> None:
    """Per-cell joint significance and mean position over the member arena."""
    n_cells = offsets.shape[0] - 1
    for c in prange(n_cells):
        sf = 0.0; sd = 0.0; sa = 0.0; ss = 0.0; sig = 0.0
        m0 = offsets[c]
        m1 = offsets[c + 1]
        for m in range(m0, m1):
            j = members[m]
            sig += _significance_term(stat[j])
            sf += freq[j]
            sd += dec[j]
            sa += ra[j]
            ss += spin[j]
        k = m1 - m0
        mean_freq[c] = sf / k
        mean_dec[c] = sd / k
        mean_ra[c] = sa / k
        mean_spin[c] = ss / k
        significance[c] = sig
