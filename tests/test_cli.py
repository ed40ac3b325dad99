"""
Tests for the valuation CLI

Runs main() end to end against temporary subject and comparable files.
"""

import json

import pytest

from reporting.cli import main


SUBJECT = {
    "id": "prop-001",
    "type": "apartment",
    "address": {"street": "Levinsky 22", "city": "Tel Aviv", "neighborhood": "Florentin"},
    "details": {
        "built_area": 100,
        "rooms": 4,
        "bedrooms": 3,
        "bathrooms": 2,
        "floor": 3,
        "total_floors": 6,
        "build_year": 2010,
        "condition": "good",
        "parking": 1,
        "storage": True,
        "balcony": True,
        "elevator": True,
        "accessible": False,
    },
    "features": [],
}

COMPARABLES_CSV = (
    "address,type,salePrice,saleDate,builtArea,rooms,floor\n"
    '"Florentin 1, Tel Aviv",apartment,2000000,2024-05-01,100,4,3\n'
    '"Florentin 2, Tel Aviv",apartment,2000000,2024-04-01,100,4,3\n'
    '"Florentin 3, Tel Aviv",apartment,2000000,2024-03-01,100,4,3\n'
)


@pytest.fixture
def subject_file(tmp_path):
    path = tmp_path / "subject.json"
    path.write_text(json.dumps(SUBJECT), encoding="utf-8")
    return path


@pytest.fixture
def comps_file(tmp_path):
    path = tmp_path / "comps.csv"
    path.write_text(COMPARABLES_CSV, encoding="utf-8")
    return path


def run(capsys, *argv):
    code = main(list(argv))
    captured = capsys.readouterr()
    return code, captured


class TestValueCommand:

    def test_recommended_method(self, capsys, subject_file, comps_file):
        code, captured = run(
            capsys,
            "value", str(subject_file),
            "--comparables", str(comps_file),
            "--valuation-date", "2024-06-01",
        )

        assert code == 0
        payload = json.loads(captured.out)
        assert payload["recommendation"]["recommended_method"] == "comparable-sales"
        assert payload["result"]["method"] == "comparable-sales"
        assert payload["result"]["estimated_value"] == 2_250_000
        assert payload["import_errors"] == []
        assert payload["outlier_ids"] == []
        assert "sections" not in payload

    def test_cost_approach(self, capsys, subject_file):
        code, captured = run(
            capsys,
            "value", str(subject_file),
            "--method", "cost-approach",
            "--land-value", "1500000",
            "--construction-cost", "10000",
            "--valuation-date", "2024-06-01",
        )

        assert code == 0
        assert json.loads(captured.out)["result"]["estimated_value"] == 2_283_000

    def test_cost_approach_without_inputs(self, capsys, subject_file):
        code, captured = run(capsys, "value", str(subject_file), "--method", "cost-approach")

        assert code == 1
        assert "--land-value" in captured.err

    def test_hybrid_with_sections(self, capsys, subject_file, comps_file):
        code, captured = run(
            capsys,
            "value", str(subject_file),
            "--comparables", str(comps_file),
            "--method", "hybrid",
            "--land-value", "1500000",
            "--construction-cost", "10000",
            "--valuation-date", "2024-06-01",
            "--sections",
        )

        assert code == 0
        payload = json.loads(captured.out)
        assert payload["result"]["method"] == "hybrid"
        assert payload["sections"][0]["id"] == "summary"

        sections = {s["id"]: s["content"] for s in payload["sections"]}
        headline = f"₪{int(payload['result']['estimated_value']):,}"
        assert headline in sections["summary"]
        assert headline in sections["conclusions"]

    def test_report_table_shows_applied_adjustments(self, capsys, subject_file, comps_file):
        code, captured = run(
            capsys,
            "value", str(subject_file),
            "--comparables", str(comps_file),
            "--valuation-date", "2024-06-01",
            "--sections",
        )

        assert code == 0
        payload = json.loads(captured.out)
        applied = payload["result"]["details"]["comparables"][0]["adjustments"]["total"]
        table = {s["id"]: s["content"] for s in payload["sections"]}["comparables-table"]

        assert applied == pytest.approx(0.125)
        assert "12.5%" in table
        assert "0.0%" not in table

    def test_price_outlier_deselected(self, capsys, subject_file, tmp_path):
        path = tmp_path / "comps.csv"
        rows = [f'"Florentin {i}, Tel Aviv",apartment,{2_000_000 + i * 100_000},2024-05-01,100,4,3' for i in range(5)]
        rows.append('"Rothschild 1, Tel Aviv",apartment,5900000,2024-05-01,100,4,3')
        path.write_text("address,type,salePrice,saleDate,builtArea,rooms,floor\n" + "\n".join(rows) + "\n", encoding="utf-8")

        code, captured = run(
            capsys,
            "value", str(subject_file),
            "--comparables", str(path),
            "--valuation-date", "2024-06-01",
        )

        assert code == 0
        payload = json.loads(captured.out)
        used = [c["address"] for c in payload["result"]["details"]["comparables"]]
        assert len(payload["outlier_ids"]) == 1
        assert "Rothschild 1, Tel Aviv" not in used
        assert len(used) == 5

    def test_hybrid_with_nothing_to_reconcile(self, capsys, subject_file):
        code, _ = run(capsys, "value", str(subject_file), "--method", "hybrid")
        assert code == 1

    def test_no_comparables(self, capsys, subject_file):
        code, _ = run(capsys, "value", str(subject_file), "--method", "comparable-sales")
        assert code == 1

    def test_missing_subject_file(self, capsys, tmp_path):
        code, captured = run(capsys, "value", str(tmp_path / "nope.json"))

        assert code == 1
        assert "File not found" in captured.err

    def test_invalid_subject(self, capsys, tmp_path):
        path = tmp_path / "subject.json"
        path.write_text(json.dumps({**SUBJECT, "type": "castle"}), encoding="utf-8")

        code, captured = run(capsys, "value", str(path))

        assert code == 1
        assert "Invalid type" in captured.err

    def test_invalid_json(self, capsys, tmp_path):
        path = tmp_path / "subject.json"
        path.write_text("{", encoding="utf-8")

        code, _ = run(capsys, "value", str(path))
        assert code == 1


class TestImportCsvCommand:

    def test_parses_rows(self, capsys, comps_file):
        code, captured = run(capsys, "import-csv", str(comps_file))

        assert code == 0
        payload = json.loads(captured.out)
        assert len(payload["comparables"]) == 3
        assert payload["field_mapping"]["sale_price"] == "salePrice"

    def test_all_rows_rejected(self, capsys, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("address,price,area\nHerzl 10,abc,95\n", encoding="utf-8")

        code, captured = run(capsys, "import-csv", str(path))

        assert code == 1
        assert json.loads(captured.out)["errors"][0]["row"] == 2

    def test_missing_file(self, capsys, tmp_path):
        code, _ = run(capsys, "import-csv", str(tmp_path / "nope.csv"))
        assert code == 1
