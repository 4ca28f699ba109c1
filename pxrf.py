"""
pXRF CSV import and per-element statistics.

Instruments export one row per shot with a column per element. Column
names vary by vendor and unit, so an element column is recognised by its
exact symbol or the symbol with a ``%``, ``_ppm`` or ``_wt%`` suffix.
Readings that do not parse as finite numbers (blank cells, ``<LOD``,
``ND``...) are left out of the statistics rather than counted as zero.
"""

import csv
import io
import logging
import math
import statistics
from typing import Optional

from schemas import ElementStats, PxrfData

log = logging.getLogger(__name__)

ELEMENTS = [
    "Fe", "Cu", "Zn", "Pb", "As", "Mn", "Ni", "Co", "Cr", "Ti",
    "V", "Ca", "K", "S", "Ba", "Sr", "Rb", "Zr", "Mo", "Sb",
    "Sn", "W", "Bi", "Ag", "Au",
]
COLUMN_SUFFIXES = ("", "%", "_ppm", "_wt%")


def parse_csv(text: str) -> list[dict[str, str]]:
    """Parse CSV text into row dicts keyed by the (trimmed) header row.

    Quoted fields may contain commas. Blank lines are skipped; short rows
    are padded with empty strings and surplus cells are dropped.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    try:
        headers = [h.strip() for h in next(reader)]
    except StopIteration:
        return []

    rows = []
    for line_no, cells in enumerate(reader, start=2):
        if not any(c.strip() for c in cells):
            continue
        if len(cells) != len(headers):
            log.debug("pXRF line %d has %d cells, header has %d", line_no, len(cells), len(headers))
        cells = (cells + [""] * len(headers))[:len(headers)]
        rows.append({h: c.strip() for h, c in zip(headers, cells)})
    return rows


def element_columns(headers) -> dict[str, str]:
    """Map each known element to the first header that names it."""
    found = {}
    header_set = list(headers)
    for el in ELEMENTS:
        for suffix in COLUMN_SUFFIXES:
            name = el + suffix
            if name in header_set:
                found[el] = name
                break
    return found


def to_number(value) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def element_stats(values: list[float]) -> ElementStats:
    if not values:
        return ElementStats()
    return ElementStats(
        n=len(values),
        min=round(min(values), 4),
        median=round(statistics.median(values), 4),
        mean=round(statistics.mean(values), 4),
        max=round(max(values), 4),
    )


def summarize(rows: list[dict]) -> dict[str, ElementStats]:
    """Per-element statistics over every row, for the full element set."""
    headers = []
    for row in rows:
        for h in row:
            if h not in headers:
                headers.append(h)
    columns = element_columns(headers)

    summary = {}
    skipped = 0
    for el in ELEMENTS:
        col = columns.get(el)
        values = []
        if col is not None:
            for row in rows:
                number = to_number(row.get(col))
                if number is None:
                    skipped += bool(str(row.get(col) or "").strip())
                    continue
                values.append(number)
        summary[el] = element_stats(values)
    if skipped:
        log.warning("pXRF summary ignored %d non-numeric readings", skipped)
    return summary


def has_data(summary: dict) -> bool:
    for stats in summary.values():
        n = stats.n if isinstance(stats, ElementStats) else (stats or {}).get("n", 0)
        if n:
            return True
    return False


def import_csv(text: str) -> PxrfData:
    """Parse a whole file and recompute its summary; replaces any prior import."""
    rows = parse_csv(text)
    summary = summarize(rows)
    log.info("pXRF import: %d rows, %d elements with data",
             len(rows), sum(1 for s in summary.values() if s.n))
    return PxrfData(rows=rows, summary=summary)
