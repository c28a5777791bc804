"""
Merge per-run candidate files into one coincidence input file.

A per-run file holds ``frequency rightAscension declination spinDown
detectionStatistic`` per line and ends with ``%DONE``. In the combined
file every record is prefixed with the 0-based position of its run file,
which becomes the record's source-file id.
"""

import logging
import os
from typing import Sequence

from tqdm import tqdm

from fastcoinc.errors import IngestionError
from fastcoinc.ingest import DONE_MARKER

RUN_FIELDS = 5

log = logging.getLogger("fastcoinc.combine")


def _read_run_lines(fname: str):
    try:
        with open(fname, "r", encoding="ascii") as fh:
            text = fh.read()
    except (OSError, UnicodeDecodeError) as e:
        raise IngestionError(f"Cannot read run file {fname}: {e}") from e

    lines = text.split("\n")
    if not text.endswith("\n") or len(lines) < 2 or lines[-2] != DONE_MARKER:
        raise IngestionError(f"File '{fname}' is not properly terminated by: {DONE_MARKER}")
    body = lines[:-2]
    for i, line in enumerate(body):
        n = len(line.split())
        if n != RUN_FIELDS:
            raise IngestionError(
                f"Found {n} not {RUN_FIELDS} values on line {i + 1} in file '{fname}'"
            )
    return body


def combine_candidate_files(paths: Sequence[str], out_path: str, *, progress: bool = False) -> int:
    """
    Write the combined file and return the number of records in it.
    Every input is read and checked before the output is opened.
    """
    if len(paths) == 0:
        raise IngestionError("No run files given to combine")

    out_lines = []
    for file_id, p in enumerate(tqdm(paths, desc="Combining run files", disable=not progress)):
        for line in _read_run_lines(p):
            out_lines.append(f"{file_id} {' '.join(line.split())}\n")

    d = os.path.dirname(os.path.abspath(out_path))
    os.makedirs(d, exist_ok=True)
    with open(out_path, "w", encoding="ascii") as fh:
        fh.writelines(out_lines)
        fh.write(DONE_MARKER + "\n")

    log.info("[Combine] wrote %d records from %d files to %s", len(out_lines), len(paths), out_path)
    return len(out_lines)
