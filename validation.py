"""
Boundary checks for field records.

The stored models accept whatever the form sends: vocabularies, depth
ranges and coordinates are deliberately unvalidated at the data layer.
These checks run on demand and report issues without rejecting the
record, so a geologist can save a half-finished observation in the field
and clean it up later.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import pxrf
from schemas import SET_FIELDS, VOCAB

logger = logging.getLogger(__name__)


@dataclass
class ValidationIssue:
    """A single validation issue."""

    field: str
    message: str
    severity: str  # "error", "warning", "info"
    value: Optional[Any] = None


@dataclass
class ValidationResult:
    """Result of checking one record."""

    is_valid: bool = True
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    def add_error(self, field: str, message: str, value: Any = None) -> None:
        self.issues.append(ValidationIssue(field=field, message=message, severity="error", value=value))
        self.is_valid = False

    def add_warning(self, field: str, message: str, value: Any = None) -> None:
        self.issues.append(ValidationIssue(field=field, message=message, severity="warning", value=value))


def _check_number(result: ValidationResult, name: str, raw, lo: float, hi: float) -> None:
    if raw is None or str(raw).strip() == "":
        return
    number = pxrf.to_number(raw)
    if number is None:
        result.add_error(name, "not a number", raw)
    elif not lo <= number <= hi:
        result.add_error(name, f"outside {lo:g}..{hi:g}", raw)


def check_sample(form: dict) -> ValidationResult:
    """Coordinates must be numeric and in range; vocabulary misses are warnings."""
    result = ValidationResult()
    f = form or {}

    if not str(f.get("sampleId") or "").strip():
        result.add_error("sampleId", "sample identifier is empty")

    _check_number(result, "lat", f.get("lat"), -90, 90)
    _check_number(result, "lon", f.get("lon"), -180, 180)
    _check_number(result, "elevation", f.get("elevation"), -500, 9000)

    for name, vocab in VOCAB.items():
        value = f.get(name)
        if name in SET_FIELDS:
            for item in value or []:
                if item not in vocab:
                    result.add_warning(name, "not in controlled vocabulary", item)
            if len(set(value or [])) != len(value or []):
                result.add_warning(name, "contains duplicate entries", value)
        elif value and value not in vocab:
            result.add_warning(name, "not in controlled vocabulary", value)

    if result.issues:
        logger.debug("Sample %s: %d issues", f.get("sampleId"), len(result.issues))
    return result


def check_borehole(record: dict) -> ValidationResult:
    """Collar ranges and interval sanity: from < to, no overlaps, within total depth."""
    result = ValidationResult()
    collar = record.get("collar") or {}

    if not str(collar.get("holeId") or "").strip():
        result.add_error("holeId", "hole identifier is empty")
    _check_number(result, "lat", collar.get("lat"), -90, 90)
    _check_number(result, "lon", collar.get("lon"), -180, 180)
    _check_number(result, "azimuth", collar.get("azimuth"), 0, 360)
    _check_number(result, "dip", collar.get("dip"), -90, 90)

    total = collar.get("totalDepth")
    prev_to = None
    for pos, iv in enumerate(record.get("intervals") or []):
        name = f"intervals[{pos}]"
        start, end = iv.get("from"), iv.get("to")
        if start is None or end is None:
            result.add_warning(name, "missing from/to depth", iv.get("id"))
            continue
        if start >= end:
            result.add_error(name, "from depth is not above to depth", [start, end])
        if prev_to is not None and start < prev_to:
            result.add_warning(name, "overlaps or precedes the previous interval", [start, end])
        if total is not None and end > total:
            result.add_warning(name, "extends past total depth", [start, end])
        prev_to = end
    return result
