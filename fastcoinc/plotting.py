import logging

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from fastcoinc import reporting
from fastcoinc.types import CellData

log = logging.getLogger("fastcoinc.plotting")


def plot_frequency_maxima(cells: CellData, out_path: str, dpi: int = 150) -> str:
    """
    Two-panel diagnostic of the sky maximum in every frequency cell:
    coincidence count (top) and significance (bottom) against mean frequency.
    """
    idx = reporting.frequency_sky_maxima(cells)
    f = cells.mean_frequency[idx]
    n = cells.n_candidates[idx]
    s = cells.significance[idx]

    fig, (ax0, ax1) = plt.subplots(2, 1, figsize=(9, 6), sharex=True)
    ax0.step(f, n, where="mid", color="k", lw=0.8)
    ax0.set_ylabel("# coincidences")
    ax1.plot(f, s, ".", ms=3, color="C0")
    ax1.set_ylabel("significance")
    ax1.set_xlabel("frequency [Hz]")
    if idx.size > 0:
        top = int(np.argmax(n))
        ax0.axvline(f[top], color="C3", ls="--", lw=0.8)
        ax0.set_title(f"max {int(n[top])} coincidences at {f[top]:.6f} Hz")
    fig.tight_layout()
    fig.savefig(out_path, dpi=dpi)
    plt.close(fig)
    log.info("wrote %s", out_path)
    return out_path
