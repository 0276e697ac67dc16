"""Tests for CLI commands."""

import json

import pytest
from click.testing import CliRunner

from src.cli import cli
from src.reports import MismatchLog


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def table_files(tmp_path):
    """Small range/prefix/operator tables with 464A91 allocated to IT."""
    ranges = tmp_path / "ranges.json"
    ranges.write_text(json.dumps([
        {"startHex": "440000", "finishHex": "47FFFF", "countryISO2": "IT", "isMilitary": False},
        {"startHex": "480000", "finishHex": "487FFF", "countryISO2": "FI", "isMilitary": False},
    ]))
    prefixes = tmp_path / "prefixes.json"
    prefixes.write_text(json.dumps({"O": "X", "OH": "FI", "I": "IT"}))
    operators = tmp_path / "operators.json"
    operators.write_text(json.dumps({"FIN": {"name": "Finnair", "country": "FI"}}))
    return ["--ranges", str(ranges), "--prefixes", str(prefixes), "--operators", str(operators)]


@pytest.fixture
def raw_ranges(tmp_path):
    """Unmerged, mixed-encoding raw range file."""
    path = tmp_path / "raw.json"
    path.write_text(json.dumps([
        {"startDec": 4587776, "finishDec": 4588031, "countryISO2": "FI"},
        {"startHex": "460000", "finishHex": "4600FF", "countryISO2": "FI"},
        {"start": "460200", "end": "4603FF", "countryCode": "FI"},
        {"startHex": "480000", "finishHex": "4803FF", "countryISO2": "NL"},
    ]))
    return str(path)


class TestCanonicalizeCommand:
    def test_json(self, runner, raw_ranges, tmp_path):
        out = tmp_path / "merged.json"
        result = runner.invoke(cli, ["canonicalize", raw_ranges, str(out)])
        assert result.exit_code == 0
        data = json.loads(out.read_text())
        assert [(r["startHex"], r["finishHex"], r["countryISO2"]) for r in data] == [
            ("460000", "4603FF", "FI"),
            ("480000", "4803FF", "NL"),
        ]
        assert "4 input ranges" in result.output

    def test_csv(self, runner, raw_ranges, tmp_path):
        out = tmp_path / "merged.csv"
        result = runner.invoke(cli, ["canonicalize", raw_ranges, str(out), "--format", "csv"])
        assert result.exit_code == 0
        assert out.read_text().startswith("start_hex,end_hex")

    def test_overlap_fails_without_output(self, runner, tmp_path):
        raw = tmp_path / "bad.json"
        raw.write_text(json.dumps([
            {"startHex": "460000", "finishHex": "4601FF", "countryISO2": "FI"},
            {"startHex": "460100", "finishHex": "4602FF", "countryISO2": "SE"},
        ]))
        out = tmp_path / "merged.json"
        result = runner.invoke(cli, ["canonicalize", str(raw), str(out)])
        assert result.exit_code == 1
        assert "Overlapping" in result.output
        assert not out.exists()

    def test_malformed_record(self, runner, tmp_path):
        raw = tmp_path / "bad.json"
        raw.write_text(json.dumps([{"startHex": "46000", "finishHex": "4601FF", "countryISO2": "FI"}]))
        result = runner.invoke(cli, ["canonicalize", str(raw), str(tmp_path / "o.json")])
        assert result.exit_code == 1

    def test_missing_input(self, runner, tmp_path):
        result = runner.invoke(cli, ["canonicalize", "/nonexistent.json", str(tmp_path / "o.json")])
        assert result.exit_code == 1

    def test_output_is_directory(self, runner, raw_ranges, tmp_path):
        result = runner.invoke(cli, ["canonicalize", raw_ranges, str(tmp_path)])
        assert result.exit_code == 1
        assert "Traceback" not in result.output


class TestClassifyCommand:
    def test_mismatch(self, runner, table_files):
        result = runner.invoke(cli, ["classify", "464A91", "OH-LWA", *table_files])
        assert result.exit_code == 0
        assert "MISMATCH" in result.output
        assert "FI" in result.output
        assert "IT" in result.output

    def test_agreement(self, runner, table_files):
        result = runner.invoke(cli, ["classify", "480010", "OH-LWA", "FIN7LC", *table_files])
        assert result.exit_code == 0
        assert "AGREEMENT" in result.output

    def test_insufficient(self, runner, table_files):
        result = runner.invoke(cli, ["classify", "000001", *table_files])
        assert result.exit_code == 0
        assert "INSUFFICIENT" in result.output

    def test_json(self, runner, table_files):
        result = runner.invoke(cli, ["classify", "464A91", "OH-LWA", "--json", *table_files])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["verdict"]["status"] == "mismatch"
        assert data["verdict"]["country_set"] == ["FI", "IT"]
        assert data["display_country"] == "FI"
        assert data["report"]["address"] == "464A91"

    def test_json_no_report_on_agreement(self, runner, table_files):
        result = runner.invoke(cli, ["classify", "480010", "OH-LWA", "--json", *table_files])
        data = json.loads(result.output)
        assert data["verdict"]["status"] == "agreement"
        assert data["verdict"]["qualified_status"] == "partial_data"
        assert data["report"] is None

    def test_built_in_tables(self, runner):
        result = runner.invoke(cli, ["classify", "461F2C", "OH-LWA", "FIN7LC", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["verdict"]["status"] == "agreement"

    def test_log_db(self, runner, table_files, tmp_path):
        db_path = tmp_path / "m.db"
        result = runner.invoke(cli, ["classify", "464A91", "OH-LWA", "--log-db", str(db_path), *table_files])
        assert result.exit_code == 0
        log = MismatchLog(db_path)
        assert log.count() == 1
        log.close()

    def test_log_db_skipped_on_agreement(self, runner, table_files, tmp_path):
        db_path = tmp_path / "m.db"
        runner.invoke(cli, ["classify", "480010", "OH-LWA", "--log-db", str(db_path), *table_files])
        assert not db_path.exists()

    @pytest.mark.parametrize("address", ["XYZ", "1234567", "GGGGGG"])
    def test_bad_address(self, runner, address):
        result = runner.invoke(cli, ["classify", address])
        assert result.exit_code == 1

    def test_bad_table_file(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        result = runner.invoke(cli, ["classify", "464A91", "--ranges", str(bad)])
        assert result.exit_code == 1

    def test_missing_table_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["classify", "464A91", "--ranges", str(tmp_path / "nope.json")])
        assert result.exit_code == 1


class TestLookupCommand:
    def test_allocated(self, runner):
        result = runner.invoke(cli, ["lookup", "ADF7C8"])
        assert result.exit_code == 0
        assert "US" in result.output
        assert "MIL" in result.output

    def test_unallocated(self, runner):
        result = runner.invoke(cli, ["lookup", "FFFFFF"])
        assert result.exit_code == 0
        assert "not in any allocated range" in result.output


class TestFindGapsCommand:
    def test_default_region(self, runner):
        result = runner.invoke(cli, ["find-gaps", "--json"])
        assert result.exit_code == 0
        gaps = json.loads(result.output)
        assert gaps
        assert all(g["size"] >= 1024 for g in gaps)

    def test_explicit_region(self, runner, tmp_path):
        ranges = tmp_path / "r.json"
        ranges.write_text(json.dumps([
            {"startHex": "500000", "finishHex": "5003FF", "countryISO2": "X"},
            {"startHex": "500800", "finishHex": "500BFF", "countryISO2": "Y"},
        ]))
        result = runner.invoke(cli, [
            "find-gaps", "500000", "500FFF", "--min-size", "0x400", "--ranges", str(ranges), "--json",
        ])
        assert result.exit_code == 0
        assert json.loads(result.output) == [{"startHex": "500400", "endHex": "5007FF", "size": 1024}]

    def test_table_output(self, runner):
        result = runner.invoke(cli, ["find-gaps", "500000", "50FFFF"])
        assert result.exit_code == 0
        assert "gap(s)" in result.output

    def test_reversed_region(self, runner):
        result = runner.invoke(cli, ["find-gaps", "50FFFF", "500000"])
        assert result.exit_code == 1

    def test_bad_min_size(self, runner):
        result = runner.invoke(cli, ["find-gaps", "--min-size", "abc"])
        assert result.exit_code == 1
        assert "not an integer" in result.output

    def test_negative_min_size(self, runner):
        result = runner.invoke(cli, ["find-gaps", "--min-size=-5"])
        assert result.exit_code == 1


class TestPlanCommand:
    def test_default_plan(self, runner, tmp_path):
        out = tmp_path / "plan.json"
        result = runner.invoke(cli, ["plan", "-o", str(out)])
        assert result.exit_code == 0
        assert "Proposed allocations" in result.output
        proposed = json.loads(out.read_text())
        assert {p["countryISO2"] for p in proposed} == {"RS", "BG", "RO", "CZ"}

    def test_pending_file(self, runner, tmp_path):
        pending = tmp_path / "pending.json"
        pending.write_text(json.dumps([
            {"code": "xk", "priority": 1, "name": "Kosovo"},
            {"code": "SM", "priority": 2},
        ]))
        out = tmp_path / "plan.json"
        result = runner.invoke(cli, ["plan", "--pending", str(pending), "-o", str(out)])
        assert result.exit_code == 0
        proposed = json.loads(out.read_text())
        assert [p["countryISO2"] for p in proposed] == ["XK"]

    def test_nothing_missing(self, runner, tmp_path):
        pending = tmp_path / "pending.json"
        pending.write_text(json.dumps([{"code": "SM", "priority": 1}]))
        result = runner.invoke(cli, ["plan", "--pending", str(pending)])
        assert result.exit_code == 0
        assert "already have allocations" in result.output

    def test_bad_pending_file(self, runner, tmp_path):
        pending = tmp_path / "pending.json"
        pending.write_text(json.dumps({"code": "XK"}))
        result = runner.invoke(cli, ["plan", "--pending", str(pending)])
        assert result.exit_code == 1

    def test_missing_pending_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["plan", "--pending", str(tmp_path / "none.json")])
        assert result.exit_code == 1


class TestMismatchesCommand:
    def test_lists_logged(self, runner, table_files, tmp_path):
        db_path = str(tmp_path / "m.db")
        runner.invoke(cli, ["classify", "464A91", "OH-LWA", "--log-db", db_path, *table_files])
        result = runner.invoke(cli, ["mismatches", "--db-path", db_path])
        assert result.exit_code == 0
        assert "1 of 1" in result.output

    def test_missing_db(self, runner, tmp_path):
        result = runner.invoke(cli, ["mismatches", "--db-path", str(tmp_path / "none.db")])
        assert result.exit_code == 1


class TestGroup:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        for name in ("canonicalize", "classify", "lookup", "find-gaps", "plan", "mismatches", "serve"):
            assert name in result.output

    def test_config_defaults_used(self, runner, isolated_config):
        isolated_config.mkdir(parents=True)
        (isolated_config / "config.yaml").write_text("gaps:\n  region_start: \"500000\"\n  region_end: \"5003FF\"\n")
        result = runner.invoke(cli, ["find-gaps", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == []

    def test_configured_zero_min_size_kept(self, runner, isolated_config, tmp_path):
        ranges = tmp_path / "r.json"
        ranges.write_text(json.dumps([{"startHex": "500000", "finishHex": "5003FE", "countryISO2": "X"}]))
        isolated_config.mkdir(parents=True)
        (isolated_config / "config.yaml").write_text("gaps:\n  min_size: 0\n")
        result = runner.invoke(cli, ["find-gaps", "500000", "5003FF", "--ranges", str(ranges), "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == [{"startHex": "5003FF", "endHex": "5003FF", "size": 1}]

    def test_configured_zero_block_size_fails(self, runner, isolated_config):
        isolated_config.mkdir(parents=True)
        (isolated_config / "config.yaml").write_text("allocation:\n  block_size: 0\n")
        result = runner.invoke(cli, ["plan"])
        assert result.exit_code == 1
