import json

import pytest

import cli
from catalog_store import read_store
from report_fixtures import SAMPLE_REPORT, build_report, report_row


@pytest.fixture
def report_file(tmp_path):
    path = tmp_path / "fall.txt"
    path.write_text(SAMPLE_REPORT, encoding="utf-8")
    return path


class TestParseCommand:
    def test_creates_output(self, tmp_path, report_file, capsys):
        out = tmp_path / "catalog.json"
        assert cli.main(["--parse", str(report_file), str(out)]) == 0
        store = read_store(str(out))
        assert store.semester_ids() == ["20259"]
        assert "Added semester 20259" in capsys.readouterr().out

    def test_merge_replaces_same_semester(self, tmp_path, report_file):
        out = tmp_path / "catalog.json"
        spring = tmp_path / "spring.txt"
        spring.write_text(build_report(report_row(semester="2")), encoding="utf-8")

        assert cli.main(["--parse", str(report_file), str(out)]) == 0
        assert cli.main(["--parse", str(spring), str(out)]) == 0
        first = out.read_text(encoding="utf-8")
        assert cli.main(["--parse", str(report_file), str(out)]) == 0

        store = read_store(str(out))
        assert store.semester_ids() == ["20259", "20252"]
        assert out.read_text(encoding="utf-8") == first

    def test_invalid_output_is_overwritten(self, tmp_path, report_file):
        out = tmp_path / "catalog.json"
        out.write_text("not json at all", encoding="utf-8")
        assert cli.main(["--parse", str(report_file), str(out)]) == 0
        payload = json.loads(out.read_text(encoding="utf-8"))
        assert [c["semesterId"] for c in payload] == ["20259"]

    def test_missing_input(self, tmp_path, capsys):
        code = cli.main(["--parse", str(tmp_path / "nope.txt"), str(tmp_path / "out.json")])
        assert code == 1
        assert "Input file not found" in capsys.readouterr().err

    def test_empty_report_is_fatal(self, tmp_path, capsys):
        empty = tmp_path / "empty.txt"
        empty.write_text(build_report(), encoding="utf-8")
        out = tmp_path / "out.json"
        assert cli.main(["--parse", str(empty), str(out)]) == 1
        assert not out.exists()
        assert "No course data found" in capsys.readouterr().err


class TestArgs:
    def test_requires_a_command(self):
        with pytest.raises(SystemExit):
            cli.main([])

    def test_commands_are_exclusive(self, tmp_path):
        with pytest.raises(SystemExit):
            cli.main(["--serve", "a.json", "--parse", "in.txt", "out.json"])

    def test_serve_missing_file(self, tmp_path, capsys):
        assert cli.main(["--serve", str(tmp_path / "missing.json")]) == 1
        assert "Catalog file not found" in capsys.readouterr().err

    def test_serve_invalid_file(self, tmp_path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text("[1, 2, 3]", encoding="utf-8")
        assert cli.main(["--serve", str(bad)]) == 1
        assert "Failed to load catalog" in capsys.readouterr().err

    def test_serve_runs_app(self, tmp_path, report_file, monkeypatch):
        out = tmp_path / "catalog.json"
        cli.main(["--parse", str(report_file), str(out)])

        import flask
        calls = {}
        monkeypatch.setattr(flask.Flask, "run", lambda self, **kw: calls.update(kw))
        assert cli.main(["--serve", str(out), "--port", "8123"]) == 0
        assert calls["port"] == 8123
