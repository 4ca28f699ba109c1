"""
Text exports for sample and borehole records.

All functions here are pure: they take the stored snapshot dicts (camelCase
keys, as persisted) and return text. Nothing is read from or written to
the store.
"""

import csv
import io
import json
import re
from typing import Optional

from shapely.geometry import Point, mapping

import pxrf
from colour import ColourSummary

EMPTY = "—"

GOSSAN_PATTERN = re.compile(r"gossan|iron", re.IGNORECASE)
GOSSAN_SENTENCE = (
    "The strong red-orange colouration together with the iron-rich character "
    "suggests an iron-oxide gossan, likely the weathered cap of sulfide-bearing "
    "rock; follow-up sampling for base-metal pathfinders is recommended."
)

BOREHOLE_COLUMNS = [
    "holeId", "project", "lat", "lon", "elevation", "azimuth", "dip",
    "totalDepth", "from", "to", "lithology", "description",
]


def _v(value) -> str:
    """Display value, with the em-dash placeholder for anything empty."""
    if value is None:
        return EMPTY
    if isinstance(value, (list, tuple, set)):
        items = [str(x) for x in value if str(x).strip()]
        return ", ".join(items) if items else EMPTY
    text = str(value).strip()
    return text or EMPTY


def _is_set(value) -> bool:
    """Non-empty and not the explicit "None" option."""
    if isinstance(value, (list, tuple, set)):
        return any(_is_set(x) for x in value)
    text = str(value or "").strip()
    return bool(text) and text.lower() != "none"


def _fmt_num(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        # Shortest exact form; integral depths and angles without ".0".
        return str(int(value)) if value.is_integer() else repr(value)
    return str(value)


def pxrf_line(summary: dict) -> Optional[str]:
    """One-line statistics digest, or None when no element has readings."""
    if not summary or not pxrf.has_data(summary):
        return None
    parts = []
    for el, stats in summary.items():
        s = stats if isinstance(stats, dict) else stats.model_dump()
        if not s.get("n"):
            continue
        parts.append(
            f"{el} mean {_fmt_num(s['mean'])} (n={s['n']}, "
            f"min {_fmt_num(s['min'])}, median {_fmt_num(s['median'])}, max {_fmt_num(s['max'])})"
        )
    return "pXRF: " + "; ".join(parts)


def to_markdown(
    form: dict,
    colour: Optional[ColourSummary] = None,
    photo_count: int = 0,
    pxrf_summary: Optional[dict] = None,
) -> str:
    f = form or {}
    lines = [
        f"# Sample {_v(f.get('sampleId'))}",
        "",
        "## Sample & Location",
        f"- Project: {_v(f.get('project'))}",
        f"- Date/time: {_v(f.get('date'))}",
        f"- Latitude: {_v(f.get('lat'))}",
        f"- Longitude: {_v(f.get('lon'))}",
        f"- Elevation (m): {_v(f.get('elevation'))}",
        f"- Context: {_v(f.get('context'))}",
        "",
        "## Description",
        f"- Category: {_v(f.get('category'))}",
        f"- Weathering: {_v(f.get('weathering'))}",
        f"- Colour: {_v(f.get('colour'))}",
        f"- Lustre: {_v(f.get('lustre'))}",
        f"- Grain size: {_v(f.get('grainSize'))}",
        f"- Fabric: {_v(f.get('fabric'))}",
        f"- Texture: {_v(f.get('texture'))}",
        "",
        "## Mineralogy & Alteration",
        f"- Minerals: {_v(f.get('minerals'))}",
        f"- Alteration: {_v(f.get('alteration'))}",
        f"- Sulfides: {_v(f.get('sulfides'))}",
        "",
        "## Physical Properties",
        f"- Hardness (Mohs): {_v(f.get('hardness'))}",
        f"- Streak: {_v(f.get('streak'))}",
        f"- Magnetism: {_v(f.get('magnetism'))}",
        f"- HCl reaction: {_v(f.get('hcl'))}",
        f"- Specific gravity: {_v(f.get('specificGravity'))}",
        "",
        "## Photos",
        f"- Count: {photo_count}",
    ]
    if colour is not None:
        lines.append(f"- Average colour: {colour.name} ({colour.hex})")
        lines.append(f"- Iron-oxide likely: {'yes' if colour.iron_oxide_likely else 'no'}")

    line = pxrf_line(pxrf_summary or {})
    if line:
        lines += ["", "## pXRF", line]

    lines += ["", "## Notes", _v(f.get("notes")), ""]
    return "\n".join(lines)


def to_json(record: dict) -> str:
    """The whole snapshot, as stored."""
    snapshot = {
        "form": record.get("form") or {},
        "photos": record.get("photos") or [],
        "pxrf": {
            "rows": (record.get("pxrf") or {}).get("rows") or [],
            "summary": (record.get("pxrf") or {}).get("summary") or {},
        },
        "createdAt": record.get("createdAt"),
    }
    return json.dumps(snapshot, indent=2, ensure_ascii=False)


def to_geojson(record: dict) -> dict:
    """GeoJSON Feature for the sample location; null geometry when unlocated."""
    form = dict(record.get("form") or {})
    geometry = None
    lat = pxrf.to_number(form.get("lat"))
    lon = pxrf.to_number(form.get("lon"))
    if lat is not None and lon is not None:
        elev = pxrf.to_number(form.get("elevation"))
        point = Point(lon, lat, elev) if elev is not None else Point(lon, lat)
        geometry = mapping(point)
        geometry["coordinates"] = list(geometry["coordinates"])
    form["photoCount"] = len(record.get("photos") or [])
    return {"type": "Feature", "id": form.get("sampleId"), "geometry": geometry, "properties": form}


def borehole_to_csv(record: dict) -> str:
    """One row per interval, collar columns repeated on each row."""
    collar = record.get("collar") or {}
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(BOREHOLE_COLUMNS)
    for iv in record.get("intervals") or []:
        writer.writerow([
            collar.get("holeId", ""),
            collar.get("project", ""),
            collar.get("lat", ""),
            collar.get("lon", ""),
            collar.get("elevation", ""),
            _fmt_num(collar.get("azimuth")),
            _fmt_num(collar.get("dip")),
            _fmt_num(collar.get("totalDepth")),
            _fmt_num(iv.get("from")),
            _fmt_num(iv.get("to")),
            iv.get("lithology", ""),
            iv.get("description", ""),
        ])
    return buf.getvalue()


def quick_draft(form: dict, colour: Optional[ColourSummary] = None) -> str:
    """Offline narrative assembled from template sentences."""
    f = form or {}
    colour_name = (f.get("colour") or "").strip() or (colour.name if colour else "") or "indeterminate colour"
    lustre = (f.get("lustre") or "").strip()
    lustre_text = f"{lustre.lower()} lustre" if lustre else "no recorded lustre"
    sentences = [f"Sample is {colour_name.lower()} with {lustre_text}."]

    if (f.get("fabric") or "").strip():
        sentences.append(f"Fabric is {f['fabric'].strip().lower()}.")
    if (f.get("grainSize") or "").strip():
        sentences.append(f"Grain size is in the {f['grainSize'].strip().lower()} class.")
    if _is_set(f.get("alteration")):
        sentences.append(f"Alteration includes {_v(f['alteration']).lower()}.")
    if _is_set(f.get("sulfides")):
        sentences.append(f"Visible sulfides: {_v(f['sulfides']).lower()}.")
    if _is_set(f.get("hcl")):
        sentences.append(f"{f['hcl'].strip().capitalize()} reaction to dilute HCl.")
    if _is_set(f.get("magnetism")):
        sentences.append(f"{f['magnetism'].strip().capitalize()} magnetic response.")

    if colour is not None and colour.iron_oxide_likely and GOSSAN_PATTERN.search(f.get("category") or ""):
        sentences.append(GOSSAN_SENTENCE)
    return " ".join(sentences)
