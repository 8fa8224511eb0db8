"""Tests for the doc-harness CLI via typer.testing.CliRunner."""

from __future__ import annotations

import json

import pytest
from rich.console import Console
from typer.testing import CliRunner

from docharness.cli.app import app

from tests._support.guides import fence, guide

runner = CliRunner()


@pytest.fixture(autouse=True)
def _scratch_env(monkeypatch, scratch):
    monkeypatch.setenv("DOCHARNESS_SCRATCH_DIR", str(scratch))
    monkeypatch.setenv("DOCHARNESS_LOG_FORMAT", "console")
    wide = Console(width=250)
    monkeypatch.setattr("docharness.cli.run.console", wide)
    monkeypatch.setattr("docharness.cli.inspect.console", wide)


# ─── run ─────────────────────────────────────────────────────────────────


class TestRunCommand:
    def test_all_passing_exits_zero(self, guides, write_guide):
        write_guide("intro.md", guide("Intro", fence("text", "2"), fence("python", "print(1 + 1)")))
        result = runner.invoke(app, ["run", str(guides)])
        assert result.exit_code == 0, result.output
        assert "OK" in result.output
        assert "intro.md" in result.output

    def test_failure_exits_one(self, guides, write_guide):
        write_guide("broken.md", guide("Broken", fence("python", "raise SystemExit('nope')")))
        result = runner.invoke(app, ["run", str(guides)])
        assert result.exit_code == 1
        assert "nope" in result.output

    def test_malformed_guide_exits_one(self, guides, write_guide):
        write_guide("bad.md", "# Bad\n\n```python\nprint(1)\n")
        write_guide("good.md", guide("Good", fence("python", "print(1)")))
        result = runner.invoke(app, ["run", str(guides)])
        assert result.exit_code == 1
        assert "unterminated fence" in result.output

    def test_json_out(self, guides, write_guide, tmp_path):
        write_guide("intro.md", guide("Intro", fence("python", "print('hi')")))
        out = tmp_path / "report.json"
        result = runner.invoke(app, ["run", str(guides), "--json-out", str(out)])
        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert data["ok"] is True
        assert data["documents"][0]["blocks"][0]["stdout"] == "hi\n"

    def test_language_alias_filters(self, guides, write_guide, tmp_path):
        write_guide("intro.md", guide("Intro", fence("python", "raise SystemExit(1)")))
        out = tmp_path / "report.json"
        result = runner.invoke(app, ["run", str(guides), "-l", "rb", "--json-out", str(out)])
        assert result.exit_code == 0, result.output
        block = json.loads(out.read_text())["documents"][0]["blocks"][0]
        assert block["reason"] == "language-filtered"

    def test_unknown_language_is_usage_error(self, guides, write_guide):
        write_guide("intro.md", guide("Intro", fence("python", "print(1)")))
        result = runner.invoke(app, ["run", str(guides), "--language", "cobol"])
        assert result.exit_code == 2
        assert "unknown language" in result.output

    def test_timeout_option(self, guides, write_guide):
        write_guide("slow.md", guide("Slow", fence("python", "import time\ntime.sleep(30)")))
        result = runner.invoke(app, ["run", str(guides), "--timeout", "1"])
        assert result.exit_code == 1
        assert "timeout" in result.output

    def test_config_file_discovered(self, guides, write_guide, tmp_path):
        write_guide("docharness.toml", "[harness]\nworkdir_policy = \"per-document\"\n")
        write_guide(
            "state.md",
            guide(
                "State",
                fence("python", "open('s.txt', 'w').write('x')"),
                fence("python", "open('s.txt').read()"),
            ),
        )
        result = runner.invoke(app, ["run", str(guides)])
        assert result.exit_code == 0, result.output

    def test_invalid_config_is_usage_error(self, guides, write_guide):
        config = write_guide("custom.toml", "[harness]\nparallel = 0\n")
        result = runner.invoke(app, ["run", str(guides), "--config", str(config)])
        assert result.exit_code == 2
        assert "invalid configuration" in result.output

    def test_missing_directory(self, tmp_path):
        result = runner.invoke(app, ["run", str(tmp_path / "nope")])
        assert result.exit_code == 2


# ─── list ────────────────────────────────────────────────────────────────


class TestListCommand:
    def test_table(self, guides, write_guide):
        write_guide("intro.md", guide("Intro", fence("", "$ gem install rake"), fence("ruby", "puts 1")))
        result = runner.invoke(app, ["list", str(guides)])
        assert result.exit_code == 0, result.output
        assert "transcript" in result.output
        assert "runnable" in result.output

    def test_json(self, guides, write_guide):
        write_guide("intro.md", guide("Intro", fence("", "$ gem install rake"), fence("ruby", "puts 1")))
        result = runner.invoke(app, ["list", str(guides), "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        blocks = data[0]["blocks"]
        assert [block["classification"] for block in blocks] == ["transcript", "runnable"]
        assert blocks[1]["runner"] == "ruby"
        assert blocks[1]["section"] == "Intro"

    def test_malformed_exits_one(self, guides, write_guide):
        write_guide("bad.md", "```ruby\nputs 1\n")
        result = runner.invoke(app, ["list", str(guides)])
        assert result.exit_code == 1
        assert "malformed" in result.output


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("doc-harness ")

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "run" in result.output
