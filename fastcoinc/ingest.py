"""
Candidate file ingestion.

A candidate file holds one record per line,

    sourceFileId  frequency  rightAscension  declination  spinDown  detectionStatistic

and is terminated by a line reading exactly ``%DONE``. Any deviation is
fatal: the run is aborted before anything is written.
"""

import glob
import logging
import math
import os
from typing import Iterable, List, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from fastcoinc.errors import IngestionError, ResourceError
from fastcoinc.types import CandidateList, GridOrigin

DONE_MARKER = "%DONE"
N_FIELDS = 6
ANGLE_EPSILON = 1e-5
MAX_CANDIDATES = 8_000_000
MAX_SOURCE_FILE_ID = int(np.iinfo(np.int32).max)

log = logging.getLogger("fastcoinc.ingest")


def _check_record(fname: str, lineno: int, line: str,
                  file_id: int, f: float, ra: float, dec: float,
                  spin: float, stat: float, epsilon: float) -> None:
    problems = []
    if not all(math.isfinite(v) for v in (f, ra, dec, spin, stat)):
        problems.append("all fields should be finite")
    else:
        if file_id < 0 or file_id > MAX_SOURCE_FILE_ID:
            problems.append(f"source file id should lie between 0 and {MAX_SOURCE_FILE_ID}")
        if f < 0.0:
            problems.append("frequency should be >= 0")
        if stat < 0.0:
            problems.append("detection statistic should be >= 0")
        if ra < -epsilon or ra > 2.0 * math.pi + epsilon:
            problems.append(f"right ascension should lie between 0 and {2.0 * math.pi:.15f}")
        if dec < -0.5 * math.pi - epsilon or dec > 0.5 * math.pi + epsilon:
            problems.append(f"declination should lie between {-0.5 * math.pi:.15f} "
                            f"and {0.5 * math.pi:.15f}")
    if problems:
        raise IngestionError(
            f"Line {lineno} of file {fname} has invalid values: {'; '.join(problems)}\n"
            f"Line in question is: {line[:255]!r}"
        )


def _parse_record(fname: str, lineno: int, line: str, epsilon: float):
    parts = line.split()
    if len(parts) != N_FIELDS:
        raise IngestionError(
            f"Found {len(parts)} not {N_FIELDS} values on line {lineno} in file '{fname}'\n"
            f"Line in question is: {line[:255]!r}"
        )
    try:
        file_id = int(parts[0])
        f, ra, dec, spin, stat = (float(p) for p in parts[1:])
    except ValueError as e:
        raise IngestionError(
            f"Cannot parse line {lineno} of file '{fname}': {e}\n"
            f"Line in question is: {line[:255]!r}"
        ) from e
    _check_record(fname, lineno, line, file_id, f, ra, dec, spin, stat, epsilon)
    return file_id, f, ra, dec, spin, stat


def read_candidate_file(fname: str, *, epsilon: float = ANGLE_EPSILON) -> CandidateList:
    """
    Parse one candidate file into a CandidateList.

    Parameters
    ----------
    fname : str
        Path to a ``%DONE``-terminated candidate file.
    epsilon : float
        Tolerance (radians) on the sky-angle range checks.

    Returns
    -------
    CandidateList
        Records in file order. A file holding only the marker yields an
        empty list.
    """
    try:
        with open(fname, "rb") as fh:
            raw = fh.read()
    except OSError as e:
        raise IngestionError(f"File {fname} doesn't exist or cannot be read: {e}") from e

    # running byte count and checksum, as a provenance record of the input
    log.info("%% %s: bytecount %d checksum %d", fname, len(raw), int(sum(raw)) & 0xFFFFFFFF)

    try:
        text = raw.decode("ascii")
    except UnicodeDecodeError as e:
        raise IngestionError(f"File {fname} is not a plain-text candidate file: {e}") from e

    if not text:
        raise IngestionError(f"File '{fname}' has no lines so is not properly terminated by: {DONE_MARKER}")
    if not text.endswith("\n"):
        raise IngestionError(f"Last line of file {fname} has no NEWLINE")

    lines = text[:-1].split("\n")
    if lines[-1] != DONE_MARKER:
        if DONE_MARKER in lines:
            at = lines.index(DONE_MARKER) + 1
            raise IngestionError(f"File {fname} did not terminate after {DONE_MARKER} (line {at})")
        raise IngestionError(
            f"File '{fname}' is not properly terminated by: {DONE_MARKER} "
            f"but has {lines[-1][:255]!r} instead"
        )

    body = lines[:-1]
    n = len(body)
    file_id = np.empty(n, dtype=np.int32)
    vals = np.empty((5, n), dtype=np.float64)

    for i, line in enumerate(body):
        rec = _parse_record(fname, i + 1, line, epsilon)
        file_id[i] = rec[0]
        vals[:, i] = rec[1:]

    if n == 0:
        log.debug("No candidate events in the file %s", fname)

    return CandidateList(
        frequency=vals[0].copy(),
        right_ascension=vals[1].copy(),
        declination=vals[2].copy(),
        spin_down=vals[3].copy(),
        detection_statistic=vals[4].copy(),
        source_file_id=file_id,
    )


def discover_candidate_files(input_dir: str, basename: str) -> List[str]:
    """Return the sorted files under ``input_dir`` whose names contain ``basename``."""
    pattern = os.path.join(input_dir, f"*{basename}*")
    files = sorted(p for p in glob.glob(pattern) if os.path.isfile(p))
    if len(files) == 0:
        raise IngestionError(f"No input files in directory {input_dir} matching '{pattern}'")
    log.info("[Ingest] Found %d candidate files under '%s'", len(files), input_dir)
    return files


def grid_origin(candidates: CandidateList) -> GridOrigin:
    """Minimum of every gridded quantity; anchors the cell grid."""
    if len(candidates) == 0:
        return GridOrigin(0.0, 0.0, 0.0, 0.0, 0)
    return GridOrigin(
        min_frequency=float(np.min(candidates.frequency)),
        min_spin_down=float(np.min(candidates.spin_down)),
        min_right_ascension=float(np.min(candidates.right_ascension)),
        min_declination=float(np.min(candidates.declination)),
        min_source_file_id=int(np.min(candidates.source_file_id)),
    )


def concatenate_candidates(parts: Sequence[CandidateList]) -> CandidateList:
    if len(parts) == 0:
        return CandidateList.empty()
    return CandidateList(
        frequency=np.concatenate([p.frequency for p in parts]),
        right_ascension=np.concatenate([p.right_ascension for p in parts]),
        declination=np.concatenate([p.declination for p in parts]),
        spin_down=np.concatenate([p.spin_down for p in parts]),
        detection_statistic=np.concatenate([p.detection_statistic for p in parts]),
        source_file_id=np.concatenate([p.source_file_id for p in parts]).astype(np.int32, copy=False),
    )


def read_candidate_files(
    paths: Iterable[str],
    *,
    max_candidates: int = MAX_CANDIDATES,
    epsilon: float = ANGLE_EPSILON,
    progress: bool = False,
) -> Tuple[CandidateList, GridOrigin]:
    """
    Read and concatenate candidate files.

    Records below any detection-statistic threshold are kept here; the
    threshold is applied while scanning cells.

    Returns
    -------
    (CandidateList, GridOrigin)
    """
    paths = list(paths)
    if len(paths) == 0:
        raise IngestionError("No candidate files given")

    parts: List[CandidateList] = []
    total = 0
    it = tqdm(paths, desc="Reading candidate files", disable=not progress)
    for p in it:
        part = read_candidate_file(p, epsilon=epsilon)
        total += len(part)
        if total > max_candidates:
            raise ResourceError(
                f"Maximum number of candidate events reached after {p}: "
                f"we have {total} events while the maximum allowed number is {max_candidates}"
            )
        parts.append(part)

    try:
        cands = concatenate_candidates(parts)
    except MemoryError as e:
        raise ResourceError(f"Could not allocate memory for {total} candidates") from e

    origin = grid_origin(cands)
    log.info("[Ingest] %d candidates from %d files; fmin=%.9g f1dotmin=%.6g",
             len(cands), len(paths), origin.min_frequency, origin.min_spin_down)
    return cands, origin
