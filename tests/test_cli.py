import json
from datetime import date
from pathlib import Path

from typer.testing import CliRunner

from financial_disclosure.case_file import build_case_file, dump_case_file, load_case_file
from financial_disclosure.cli import app

from tests.helpers.records import make_claim, make_tx

runner = CliRunner()

CSV_TEXT = "Date,Description,Amount\n01/03/2024,Rent,-9000\n02/03/2024,Salary,25000\n"


def _write_case(path: Path, transactions, claims=()) -> Path:
    doc = build_case_file(transactions=transactions, claims=claims, case_name="Smith")
    path.write_text(dump_case_file(doc), encoding="utf-8")
    return path


def test_parse_statement_prints_json(tmp_path: Path):
    csv_path = tmp_path / "march.csv"
    csv_path.write_text(CSV_TEXT, encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "parse-statement",
            "--csv-path",
            str(csv_path),
            "--parser",
            "standard-bank",
            "--cycle-day",
            "25",
        ],
    )

    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    assert [(r["desc"], r["amount"], r["type"]) for r in rows] == [
        ("Rent", -9000, "expense"),
        ("Salary", 25000, "income"),
    ]
    assert {r["acc"] for r in rows} == {"PERSONAL"}
    assert {r["cycleDay"] for r in rows} == {25}


def test_parse_statement_missing_file(tmp_path: Path):
    result = runner.invoke(app, ["parse-statement", "--csv-path", str(tmp_path / "nope.csv")])

    assert result.exit_code == 1
    assert "File not found" in result.output


def test_parse_statement_generic_without_date_column(tmp_path: Path):
    csv_path = tmp_path / "odd.csv"
    csv_path.write_text("Narrative,Amount\nRent,-9000\n", encoding="utf-8")

    result = runner.invoke(app, ["parse-statement", "--csv-path", str(csv_path)])

    assert result.exit_code == 1
    assert "Failed to parse CSV" in result.output
    assert "odd.csv" in result.output


def test_extract_claims_with_and_without_mapping(tmp_path: Path):
    text_path = tmp_path / "affidavit.txt"
    text_path.write_text("Rent: flat 9000\nFuel: 2500\n", encoding="utf-8")

    mapped = runner.invoke(app, ["extract-claims", "--text-path", str(text_path)])
    raw = runner.invoke(app, ["extract-claims", "--text-path", str(text_path), "--no-map"])

    assert mapped.exit_code == 0, mapped.output
    assert raw.exit_code == 0, raw.output
    assert [c["category"] for c in json.loads(mapped.stdout)] == ["Accommodation/Rent", "Transport"]
    raw_claims = json.loads(raw.stdout)
    assert [(c["category"], c["claimed"]) for c in raw_claims] == [("Rent", 9000), ("Fuel", 2500)]
    assert raw_claims[0]["desc"] == "flat"


def test_verify_renders_proof_table(tmp_path: Path):
    case_path = _write_case(
        tmp_path / "case.r43",
        [
            make_tx("2024-01-15", -300, cat="Groceries"),
            make_tx("2024-02-10", -600, cat="Groceries"),
            make_tx("2024-03-05", -900, cat="Groceries"),
        ],
        [make_claim("Groceries", 1000)],
    )

    result = runner.invoke(app, ["verify", "--case-path", str(case_path), "--months", "3"])

    assert result.exit_code == 0, result.output
    assert "Groceries" in result.stdout
    assert "60%" in result.stdout
    assert "Shortfall" in result.stdout


def test_verify_rejects_other_windows(tmp_path: Path):
    case_path = _write_case(tmp_path / "case.r43", [])

    result = runner.invoke(app, ["verify", "--case-path", str(case_path), "--months", "4"])

    assert result.exit_code == 2
    assert "--months must be 3 or 6" in result.output


def test_verify_reports_invalid_case_file(tmp_path: Path):
    case_path = tmp_path / "broken.r43"
    case_path.write_text('{"transactions": []}', encoding="utf-8")

    result = runner.invoke(app, ["verify", "--case-path", str(case_path)])

    assert result.exit_code == 1
    assert "Invalid case file" in result.output


def test_missing_statements(tmp_path: Path):
    case_path = _write_case(
        tmp_path / "case.r43",
        [make_tx(d, -10) for d in ("2024-01-10", "2024-02-10", "2024-04-10", "2024-05-10")],
    )

    result = runner.invoke(
        app, ["missing-statements", "--case-path", str(case_path), "--today", "2024-06-15"]
    )

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == "Cheque 123: Mar 2024"


def test_missing_statements_none_missing(tmp_path: Path):
    case_path = _write_case(
        tmp_path / "case.r43", [make_tx(f"2024-{m:02d}-05", -10) for m in range(1, 6)]
    )

    result = runner.invoke(
        app, ["missing-statements", "--case-path", str(case_path), "--today", "2024-06-15"]
    )

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == "No missing statements."


def test_missing_statements_bad_today(tmp_path: Path):
    case_path = _write_case(tmp_path / "case.r43", [])

    result = runner.invoke(
        app, ["missing-statements", "--case-path", str(case_path), "--today", "15/06/2024"]
    )

    assert result.exit_code == 2


def test_build_case_writes_file_and_reports_failures(tmp_path: Path):
    statement = tmp_path / "march.csv"
    statement.write_text(CSV_TEXT, encoding="utf-8")
    broken = tmp_path / "april.xlsx"
    broken.write_text("binary", encoding="utf-8")
    affidavit = tmp_path / "affidavit.txt"
    affidavit.write_text("Rent: 9000\nAccommodation: 8000\nGroceries: 3500\n", encoding="utf-8")
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    result = runner.invoke(
        app,
        [
            "build-case",
            "--output", str(out_dir),
            "--statement", str(statement),
            "--statement", str(broken),
            "--affidavit", str(affidavit),
            "--case-name", "Smith v Smith",
            "--entity", "personal",
        ],
    )

    assert result.exit_code == 1
    assert "error: april.xlsx: Unsupported file format: xlsx" in result.output
    assert "(2 transactions, 2 claims, 1 issues)" in result.output

    written = out_dir / f"Smith_v_Smith_{date.today().isoformat()}.r43"
    case = load_case_file(written.read_text(encoding="utf-8"))
    assert case.case_name == "Smith v Smith"
    assert [c.category for c in case.claims] == ["Accommodation/Rent", "Groceries/Household"]
    assert {t.entity for t in case.transactions} == {"PERSONAL"}
    assert len(case.files) == 3
    assert [a["id"] for a in case.alerts][-1] == "confirmation-status"


def test_build_case_success_exit_zero(tmp_path: Path):
    statement = tmp_path / "march.csv"
    statement.write_text(CSV_TEXT, encoding="utf-8")
    output = tmp_path / "case.r43"

    result = runner.invoke(
        app, ["build-case", "--output", str(output), "--statement", str(statement)]
    )

    assert result.exit_code == 0, result.output
    assert len(load_case_file(output.read_text(encoding="utf-8")).transactions) == 2


def test_build_case_without_inputs(tmp_path: Path):
    result = runner.invoke(app, ["build-case", "--output", str(tmp_path / "case.r43")])

    assert result.exit_code == 2
    assert "Nothing to do" in result.output


def test_parse_statement_skips_oversized_row(tmp_path: Path):
    csv_path = tmp_path / "march.csv"
    csv_path.write_text(
        "Date,Description,Amount\n"
        f"01/03/2024,{'x' * 200_000},-10\n"
        "02/03/2024,Rent,-9000\n",
        encoding="utf-8",
    )

    result = runner.invoke(app, ["parse-statement", "--csv-path", str(csv_path)])

    assert result.exit_code == 0, result.output
    assert [r["desc"] for r in json.loads(result.stdout)] == ["Rent"]


def test_verify_reports_missing_taxonomy_separately(tmp_path: Path, monkeypatch):
    case_path = _write_case(tmp_path / "case.r43", [])
    monkeypatch.setenv("FD_TAXONOMY_PATH", str(tmp_path / "nope.json"))

    result = runner.invoke(app, ["verify", "--case-path", str(case_path)])

    assert result.exit_code == 1
    assert "Failed to load taxonomy" in result.output
    assert "File not found" not in result.output


def test_missing_statements_reports_malformed_taxonomy(tmp_path: Path, monkeypatch):
    case_path = _write_case(tmp_path / "case.r43", [])
    taxonomy = tmp_path / "categories.json"
    taxonomy.write_text("{not json", encoding="utf-8")
    monkeypatch.setenv("FD_TAXONOMY_PATH", str(taxonomy))

    result = runner.invoke(app, ["missing-statements", "--case-path", str(case_path)])

    assert result.exit_code == 1
    assert "Failed to load taxonomy" in result.output
