"""
Tests for Markdown/JSON/GeoJSON/CSV exports and the quick draft.
"""

import csv
import io
import json

import exports
import pxrf
from colour import summarize_rgb

IRON = summarize_rgb(200, 40, 30)
GREY = summarize_rgb(150, 150, 150)


class TestMarkdown:
    """Tests for the Markdown template."""

    def test_values_substituted(self, sample_record):
        md = exports.to_markdown(sample_record["form"], IRON, 2)
        assert md.startswith("# Sample MDO-001")
        assert "- Project: Red Hill" in md
        assert "- Minerals: Hematite, Goethite" in md
        assert "- Count: 2" in md
        assert "- Average colour: red (#c8281e)" in md

    def test_empty_fields_dash(self):
        md = exports.to_markdown({"sampleId": "S1"})
        assert "- Project: —" in md
        assert "- Sulfides: —" in md
        assert "## Notes\n—" in md
        assert "Average colour" not in md

    def test_pxrf_line_only_with_data(self, sample_record):
        summary = pxrf.import_csv("Fe,Cu\n12.3,0.05\n15.0,\n").summary
        md = exports.to_markdown(sample_record["form"], None, 0, summary)
        assert "## pXRF" in md
        assert "Fe mean 13.65 (n=2, min 12.3, median 13.65, max 15)" in md
        assert "Zn mean" not in md

        empty = pxrf.import_csv("Fe\n\n").summary
        assert "## pXRF" not in exports.to_markdown(sample_record["form"], None, 0, empty)

    def test_pxrf_line_not_rounded(self):
        line = exports.pxrf_line({"Fe": {"n": 2, "min": 12345.678, "median": 12500.1234,
                                         "mean": 12500.1234, "max": 12654.5688}})
        assert line == "pXRF: Fe mean 12500.1234 (n=2, min 12345.678, median 12500.1234, max 12654.5688)"

    def test_pxrf_line_from_stored_dicts(self):
        line = exports.pxrf_line({"Cu": {"n": 1, "min": 0.05, "median": 0.05, "mean": 0.05, "max": 0.05}})
        assert line == "pXRF: Cu mean 0.05 (n=1, min 0.05, median 0.05, max 0.05)"


class TestJson:
    def test_full_snapshot(self, sample_record):
        sample_record["photos"] = ["data:image/jpeg;base64,AAAA"]
        sample_record["pxrf"] = {"rows": [{"Fe": "1"}], "summary": {"Fe": {"n": 1}}}
        data = json.loads(exports.to_json(sample_record))
        assert data == sample_record


class TestGeoJson:
    def test_point_feature(self, sample_record):
        feature = exports.to_geojson(sample_record)
        assert feature["type"] == "Feature"
        assert feature["id"] == "MDO-001"
        assert feature["geometry"]["type"] == "Point"
        assert feature["geometry"]["coordinates"] == [115.86, -31.95, 212.0]
        assert feature["properties"]["project"] == "Red Hill"
        assert feature["properties"]["photoCount"] == 0

    def test_unlocated(self):
        feature = exports.to_geojson({"form": {"sampleId": "S", "lat": "", "lon": "abc"}})
        assert feature["geometry"] is None

    def test_two_dimensional(self):
        feature = exports.to_geojson({"form": {"lat": "1", "lon": "2"}})
        assert feature["geometry"]["coordinates"] == [2.0, 1.0]


class TestBoreholeCsv:
    """Tests for the interval CSV."""

    RECORD = {
        "collar": {"holeId": "DDH-7", "project": "Red Hill", "lat": "-31.9", "lon": "115.8",
                   "elevation": "210", "azimuth": 90.0, "dip": -60.0, "totalDepth": 120.5},
        "intervals": [
            {"id": "a", "from": 0.0, "to": 3.5, "lithology": "Gossan", "description": "Boxwork, limonite"},
            {"id": "b", "from": 3.5, "to": 10.0, "lithology": "Shale", "description": 'Pyritic "black" shale'},
            {"id": "c", "from": None, "to": None, "lithology": "", "description": "line one\nline two"},
        ],
    }

    def test_one_row_per_interval(self):
        text = exports.borehole_to_csv(self.RECORD)
        rows = list(csv.reader(io.StringIO(text)))
        assert rows[0] == exports.BOREHOLE_COLUMNS
        assert len(rows) == 4
        assert rows[1][:10] == ["DDH-7", "Red Hill", "-31.9", "115.8", "210", "90", "-60", "120.5", "0", "3.5"]

    def test_quoting(self):
        text = exports.borehole_to_csv(self.RECORD)
        assert '"Boxwork, limonite"' in text
        assert '"Pyritic ""black"" shale"' in text
        assert ",Gossan," in text

    def test_reparse_recovers_fields(self):
        rows = list(csv.reader(io.StringIO(exports.borehole_to_csv(self.RECORD))))
        assert [r[-1] for r in rows[1:]] == [iv["description"] for iv in self.RECORD["intervals"]]
        assert rows[3][8:10] == ["", ""]

    def test_depths_keep_every_digit(self):
        record = {
            "collar": {"holeId": "DDH-9", "totalDepth": 1234.567, "azimuth": 123.456789},
            "intervals": [{"id": "a", "from": 1234.567, "to": 1250.125, "lithology": "Schist"}],
        }
        row = list(csv.reader(io.StringIO(exports.borehole_to_csv(record))))[1]
        assert row[5] == "123.456789"
        assert row[7:10] == ["1234.567", "1234.567", "1250.125"]
        assert float(row[9]) == 1250.125

    def test_no_intervals(self):
        assert exports.borehole_to_csv({"collar": {"holeId": "X"}}) == ",".join(exports.BOREHOLE_COLUMNS) + "\n"


class TestQuickDraft:
    """Tests for the template narrative."""

    def test_gossan_sentence(self):
        form = {"category": "Gossan / Iron-oxide", "colour": "Red-brown", "lustre": "Earthy"}
        draft = exports.quick_draft(form, IRON)
        assert draft.startswith("Sample is red-brown with earthy lustre.")
        assert exports.GOSSAN_SENTENCE in draft

    def test_no_gossan_without_flag(self):
        form = {"category": "Gossan / Iron-oxide"}
        assert exports.GOSSAN_SENTENCE not in exports.quick_draft(form, GREY)
        assert exports.GOSSAN_SENTENCE not in exports.quick_draft(form, None)

    def test_no_gossan_for_other_category(self):
        assert exports.GOSSAN_SENTENCE not in exports.quick_draft({"category": "Igneous"}, IRON)

    def test_iron_category_matches(self):
        assert exports.GOSSAN_SENTENCE in exports.quick_draft({"category": "ironstone"}, IRON)

    def test_conditional_lines(self):
        form = {
            "fabric": "Banded",
            "grainSize": "Silt",
            "alteration": ["Silicification"],
            "sulfides": [],
            "hcl": "Weak",
            "magnetism": "None",
        }
        draft = exports.quick_draft(form, GREY)
        assert "Sample is grey with no recorded lustre." in draft
        assert "Fabric is banded." in draft
        assert "Grain size is in the silt class." in draft
        assert "Alteration includes silicification." in draft
        assert "Weak reaction to dilute HCl." in draft
        assert "sulfides" not in draft
        assert "magnetic" not in draft

    def test_minimal(self):
        assert exports.quick_draft({}) == "Sample is indeterminate colour with no recorded lustre."
