from typing import List, Tuple

import numpy as np
import astropy.units as u
from astropy.coordinates import Angle

# ============================
# SKY POSITION FORMATTING
# ============================


def rad_to_hmsdms(ra_rad, dec_rad, dp: int = 1) -> Tuple[List[str], List[str]]:
    """
    Format RA,Dec (radians, scalars or arrays) as 'hh:mm:ss.s' and
    '+dd:mm:ss.s' strings. RA is wrapped into [0, 24h).
    """
    ra = Angle(np.atleast_1d(np.asarray(ra_rad, dtype=float)) * u.rad).wrap_at(360 * u.deg)
    dec = Angle(np.atleast_1d(np.asarray(dec_rad, dtype=float)) * u.rad)
    ra_hms = ra.to_string(unit=u.hourangle, sep=":", precision=dp, pad=True)
    dec_dms = dec.to_string(unit=u.deg, sep=":", precision=dp, pad=True, alwayssign=True)
    return [str(s) for s in ra_hms], [str(s) for s in dec_dms]


def hmsdms_to_srcname(ra_hms: str, dec_dms: str) -> str:
    """'hh:mm:ss.s', '+dd:mm:ss.s' -> 'Jhhmmss.s+ddmmss.s'."""
    sign = "-" if dec_dms.startswith("-") else "+"
    return f"J{ra_hms.replace(':', '')}{sign}{dec_dms.lstrip('+-').replace(':', '')}"


def cell_srcnames(ra_rad, dec_rad) -> Tuple[List[str], List[str], List[str]]:
    """(ra_hms, dec_dms, srcname) for every mean cell position."""
    ra_hms, dec_dms = rad_to_hmsdms(ra_rad, dec_rad, dp=1)
    names = [hmsdms_to_srcname(r, d) for r, d in zip(ra_hms, dec_dms)]
    return ra_hms, dec_dms, names
