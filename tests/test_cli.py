import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from carddav_records.cli import app

runner = CliRunner()

VCF = """BEGIN:VCARD
VERSION:3.0
FN:Jane Doe
N:Doe;Jane;;;
item1.TEL:+1 555 0100
item1.X-ABLabel:Boat
PHOTO;ENCODING=b;TYPE=JPEG:aGVsbG8=
END:VCARD
"""


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "jane.vcf").write_text(VCF, encoding="utf-8")
    return tmp_path


def test_records_to_json(workspace: Path):
    out = workspace / "records.json"
    result = runner.invoke(app, ["records", "jane.vcf", "--json", str(out)])
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data[0]["name"] == "Jane Doe"
    assert data[0]["phone:Boat"] == ["+1 555 0100"]
    assert data[0]["photo"] == "<deferred photo>"


def test_records_table(workspace: Path):
    result = runner.invoke(app, ["records", str(workspace)])
    assert result.exit_code == 0, result.output
    assert "phone:Boat" in result.output


def test_records_without_files(workspace: Path):
    result = runner.invoke(app, ["records", "nothing-here"])
    assert result.exit_code == 2


def test_labels_lists_registered_labels(workspace: Path):
    runner.invoke(app, ["records", "jane.vcf", "--abook", "work"])
    result = runner.invoke(app, ["labels", "--abook", "work"])
    assert result.exit_code == 0, result.output
    assert "Boat" in result.output

    result = runner.invoke(app, ["labels", "--abook", "other"])
    assert "No custom labels" in result.output

    result = runner.invoke(app, ["labels", "--abook", "work", "--purge"])
    assert "Removed 1" in result.output
    result = runner.invoke(app, ["labels", "--abook", "work"])
    assert "No custom labels" in result.output


def test_card_from_record(workspace: Path):
    record = workspace / "record.json"
    record.write_text(json.dumps({"organization": "Acme Inc", "email:work": ["info@acme.example"]}))
    result = runner.invoke(app, ["card", str(record)])
    assert result.exit_code == 0, result.output
    assert "FN:Acme Inc" in result.output
    assert "X-ABSHOWAS:COMPANY" in result.output


def test_card_updates_base(workspace: Path):
    record = workspace / "record.json"
    record.write_text(json.dumps({"name": "Jane Q. Doe", "firstname": "Jane", "surname": "Doe"}))
    out = workspace / "out.vcf"
    result = runner.invoke(app, ["card", str(record), "--base", "jane.vcf", "--output", str(out)])
    assert result.exit_code == 0, result.output
    text = out.read_text(encoding="utf-8")
    assert "FN:Jane Q. Doe" in text
    assert "PHOTO" in text
    assert "TEL" not in text


def test_card_rejects_bad_json(workspace: Path):
    record = workspace / "record.json"
    record.write_text("[1, 2]")
    result = runner.invoke(app, ["card", str(record)])
    assert result.exit_code == 2
