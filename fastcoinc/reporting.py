"""
Cell views and output products.

Every view is a permutation of the cell arrays built with a stable sort,
so the CellData itself is never reordered.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import astropy.units as u
from astropy.table import Table

from fastcoinc import sky
from fastcoinc.types import CellData, Config, ReplicaList

log = logging.getLogger("fastcoinc.reporting")

SIG_CELL_FILE = "significant_outlier_cells.txt"
SIG_STAT_FILE = "significant_outlier_statistics.txt"
COI_CELL_FILE = "coincident_outlier_cells.txt"
COI_STAT_FILE = "coincident_outlier_statistics.txt"
MAX_OVER_SKY_FILE = "maxcoincident_per_freqcell.txt"

CELL_HEADER = "freq [Hz]\tdec [rad]\tra [rad]\tF1dot [Hz/s]\t#[events]\tSig"


# ----------------------------------------------------------------------------
# views
# ----------------------------------------------------------------------------

def order_by_coincidence(cells: CellData, within: Optional[np.ndarray] = None) -> np.ndarray:
    """n_candidates descending, then significance descending."""
    base = np.arange(len(cells)) if within is None else np.asarray(within)
    o = np.lexsort((-cells.significance[base], -cells.n_candidates[base]))
    return base[o]


def order_by_significance(cells: CellData, within: Optional[np.ndarray] = None) -> np.ndarray:
    """significance descending, then n_candidates descending."""
    base = np.arange(len(cells)) if within is None else np.asarray(within)
    o = np.lexsort((-cells.n_candidates[base], -cells.significance[base]))
    return base[o]


def order_by_frequency(cells: CellData, within: Optional[np.ndarray] = None) -> np.ndarray:
    """freq_idx ascending, then n_candidates descending."""
    base = np.arange(len(cells)) if within is None else np.asarray(within)
    o = np.lexsort((-cells.n_candidates[base], cells.freq_idx[base]))
    return base[o]


def frequency_sky_maxima(cells: CellData) -> np.ndarray:
    """The most coincident cell of every distinct frequency index."""
    order = order_by_frequency(cells)
    if order.size == 0:
        return order
    f = cells.freq_idx[order]
    first = np.ones(order.size, dtype=bool)
    first[1:] = f[1:] != f[:-1]
    return order[first]


def threshold_dump(cells: CellData, order: np.ndarray,
                   sig_threshold: float, count_threshold: float) -> np.ndarray:
    """
    Leading run of ``order`` whose cells have significance > sig_threshold
    and n_candidates > count_threshold. Stops at the first cell failing
    either bound.
    """
    order = np.asarray(order)
    ok = (cells.significance[order] > sig_threshold) & (cells.n_candidates[order] > count_threshold)
    if ok.all():
        return order
    return order[:int(np.argmin(ok))]


def coincidence_histogram(cells: CellData) -> np.ndarray:
    """counts[n] = number of cells holding n distinct sources, n = 0..max."""
    if len(cells) == 0:
        return np.zeros(1, dtype=np.int64)
    return np.bincount(cells.n_candidates.astype(np.int64))


# ----------------------------------------------------------------------------
# outlier selection
# ----------------------------------------------------------------------------

@dataclass
class OutlierSelection:
    coincident: Optional[np.ndarray] = None   # None: coincidence products not written
    significant: Optional[np.ndarray] = None  # None: significance products not written


def select_outliers(cells: CellData, cfg: Config) -> OutlierSelection:
    """
    auto: top cell of the coincidence view and of the significance view.
    Otherwise each view is gated and dumped against its own threshold.
    """
    sel = OutlierSelection()
    if len(cells) == 0:
        return sel

    by_coin = order_by_coincidence(cells)
    by_sig = order_by_significance(cells)

    if cfg.auto:
        sel.coincident = by_coin[:1]
        sel.significant = by_sig[:1]
        return sel

    if cells.n_candidates[by_coin[0]] >= cfg.count_threshold:
        sel.coincident = threshold_dump(cells, by_coin, 0.0, cfg.count_threshold)
    if cells.significance[by_sig[0]] > cfg.sig_threshold:
        sel.significant = threshold_dump(cells, by_sig, cfg.sig_threshold, 0)
    return sel


# ----------------------------------------------------------------------------
# text formatting
# ----------------------------------------------------------------------------

def format_cell_rows(cells: CellData, idx: np.ndarray) -> str:
    lines = []
    for c in np.asarray(idx):
        lines.append(
            f"{cells.mean_frequency[c]:.10g}\t{cells.mean_declination[c]:.7g}\t"
            f"{cells.mean_right_ascension[c]:.7g}\t{cells.mean_spin_down[c]: g}\t"
            f"{int(cells.n_candidates[c])}\t{cells.significance[c]:.7g}\n"
        )
    return "".join(lines)


def format_member_rows(cells: CellData, replicas: ReplicaList, idx: np.ndarray) -> str:
    """One line per member: rank of the cell in the view, source file id, statistic."""
    lines = []
    for rank, c in enumerate(np.asarray(idx)):
        for j in cells.members_of(c):
            lines.append(f"{rank}\t{int(replicas.source_file_id[j])}\t"
                         f"{replicas.detection_statistic[j]:.7g}\n")
    return "".join(lines)


def format_member_values(cells: CellData, replicas: ReplicaList, icell: int) -> str:
    lines = []
    for j in cells.members_of(icell):
        lines.append(
            f"  {replicas.frequency[j]:.10g}\t{replicas.declination[j]:.7g}\t"
            f"{replicas.right_ascension[j]:.7g}\t{replicas.spin_down[j]: g}\t"
            f"{replicas.detection_statistic[j]:g}\n"
        )
    return "".join(lines)


def log_run_summary(cells: CellData, replicas: ReplicaList) -> None:
    if len(cells) == 0:
        log.warning("No cells populated: no candidate passed the detection-statistic threshold")
        return
    top_coin = int(order_by_coincidence(cells)[0])
    top_sig = int(order_by_significance(cells)[0])
    hist = coincidence_histogram(cells)

    log.info("%% Most significant cell : %s\n%%\t\t\t     %s", CELL_HEADER,
             format_cell_rows(cells, [top_sig]).rstrip("\n"))
    log.info("%% Most coincident cell  : %s\n%%\t\t\t     %s", CELL_HEADER,
             format_cell_rows(cells, [top_coin]).rstrip("\n"))
    log.info("%% # of coincidences: \n%s\n%% # of cells       : \n%s",
             "".join(f"{n:7d}" for n in range(hist.size)),
             "".join(f"{int(c):7d}" for c in hist))
    log.info("%%\n%% Candidates of most coincident cell : \n"
             "%% freq [Hz]\tdec [rad]\tra [rad]\tF1dot [Hz/s]\t2F\n%s",
             format_member_values(cells, replicas, top_coin).rstrip("\n"))


# ----------------------------------------------------------------------------
# report assembly
# ----------------------------------------------------------------------------

@dataclass
class Report:
    files: Dict[str, str] = field(default_factory=dict)

    def paths(self) -> List[str]:
        return list(self.files.keys())


def build_report(cells: CellData, replicas: ReplicaList, cfg: Config) -> Report:
    """
    Render every text product in memory. Nothing touches the disk here,
    so a failure leaves no partial output behind.
    """
    report = Report()
    aux = cfg.outlier_dir

    report.files[cfg.output_file] = format_cell_rows(cells, order_by_coincidence(cells))

    sel = select_outliers(cells, cfg)
    if sel.coincident is not None:
        report.files[os.path.join(aux, COI_CELL_FILE)] = format_cell_rows(cells, sel.coincident)
        report.files[os.path.join(aux, COI_STAT_FILE)] = format_member_rows(cells, replicas, sel.coincident)
    if sel.significant is not None:
        report.files[os.path.join(aux, SIG_CELL_FILE)] = format_cell_rows(cells, sel.significant)
        report.files[os.path.join(aux, SIG_STAT_FILE)] = format_member_rows(cells, replicas, sel.significant)

    report.files[os.path.join(aux, MAX_OVER_SKY_FILE)] = format_cell_rows(cells, frequency_sky_maxima(cells))
    return report


def write_report(report: Report) -> None:
    for path, text in report.files.items():
        d = os.path.dirname(os.path.abspath(path))
        os.makedirs(d, exist_ok=True)
        with open(path, "w", encoding="ascii") as fh:
            fh.write(text)
        log.info("wrote %s", path)


# ----------------------------------------------------------------------------
# catalogue export
# ----------------------------------------------------------------------------

def cells_to_astropy_table(cells: CellData, order: Optional[np.ndarray] = None) -> Table:
    """
    Convert cells (in ``order``, default coincidence view) into an Astropy
    Table with units and a sexagesimal source name per mean position.
    """
    if order is None:
        order = order_by_coincidence(cells)
    order = np.asarray(order, dtype=np.int64)

    if order.size == 0:
        return Table(names=[
            "srcname", "freq_idx", "dec_idx", "ra_idx", "spin_idx",
            "mean_frequency", "mean_ra_rad", "mean_dec_rad", "mean_ra_deg", "mean_dec_deg",
            "ra_hms", "dec_dms", "mean_spin_down", "n_candidates", "significance",
        ], dtype=[
            "U32", int, int, int, int,
            float, float, float, float, float,
            "U20", "U20", float, int, float,
        ])

    ra = cells.mean_right_ascension[order]
    dec = cells.mean_declination[order]
    ra_hms, dec_dms, names = sky.cell_srcnames(ra, dec)

    t = Table()
    t["srcname"] = np.array(names, dtype=str)
    t["freq_idx"] = cells.freq_idx[order]
    t["dec_idx"] = cells.dec_idx[order]
    t["ra_idx"] = cells.ra_idx[order]
    t["spin_idx"] = cells.spin_idx[order]
    t["mean_frequency"] = cells.mean_frequency[order] * u.Hz
    t["mean_ra_rad"] = ra * u.rad
    t["mean_dec_rad"] = dec * u.rad
    t["mean_ra_deg"] = np.degrees(ra) * u.deg
    t["mean_dec_deg"] = np.degrees(dec) * u.deg
    t["ra_hms"] = np.array(ra_hms, dtype=str)
    t["dec_dms"] = np.array(dec_dms, dtype=str)
    t["mean_spin_down"] = cells.mean_spin_down[order] * (u.Hz / u.s)
    t["n_candidates"] = cells.n_candidates[order].astype(np.int64)
    t["significance"] = cells.significance[order]
    return t


def save_cells_table(table: Table, csv_path: str, vot_path: str) -> None:
    """
    Save the cell table to CSV and VOTable (units kept in the VOTable FIELDs).
    """
    table.write(csv_path, format="csv", overwrite=True)
    table.write(vot_path, format="votable", overwrite=True)
