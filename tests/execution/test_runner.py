"""Tests for SnippetRunner, ProcessRegistry and scoped working directories."""

from __future__ import annotations

import subprocess
import sys
import time
from pathlib import Path

import pytest

from docharness.classification import classify
from docharness.core.config import ToolchainConfig
from docharness.core.errors import ToolchainMissing
from docharness.execution import ProcessRegistry, SnippetRunner, scoped_workdir
from docharness.execution.processes import popen_session_kwargs
from docharness.extraction import iter_blocks
from docharness.models import BlockStatus, Reason

from tests._support.guides import fence


# ── Helpers ──────────────────────────────────────────────────────────────


def _item(body: str, info: str = "", language: str = "python", document: str = "guides/a.md"):
    block = next(iter_blocks(fence(language, body, info), Path(document)))
    item = classify(block)
    assert item.is_runnable, item.reason
    return item


class TestRun:
    def test_passed_with_stdout(self, settings):
        result = SnippetRunner(settings).run(_item("print(1 + 1)"))
        assert result.status is BlockStatus.PASSED
        assert result.stdout.strip() == "2"
        assert result.exit_code == 0
        assert result.reason is None

    def test_failed_on_nonzero_exit(self, settings):
        result = SnippetRunner(settings).run(_item("import sys\nsys.exit(3)"))
        assert result.status is BlockStatus.FAILED
        assert result.reason is Reason.EXIT_CODE
        assert result.exit_code == 3

    def test_stderr_captured(self, settings):
        result = SnippetRunner(settings).run(_item("raise SystemExit('bad input')"))
        assert result.status is BlockStatus.FAILED
        assert "bad input" in result.stderr

    @pytest.mark.parametrize(
        "body",
        ["import sys\nsys.exit(3)", "import os\nopen('left-behind.txt', 'w').write('x')\nos.abort()"],
    )
    def test_scoped_dir_removed_after_crash(self, settings, scratch, body):
        result = SnippetRunner(settings).run(_item(body))
        assert result.status is BlockStatus.FAILED
        assert result.exit_code != 0
        assert list(scratch.iterdir()) == []

    def test_expect_fail_inverts_verdict(self, settings):
        runner = SnippetRunner(settings)
        assert runner.run(_item("raise ValueError()", "expect-fail")).status is BlockStatus.PASSED
        result = runner.run(_item("print('fine')", "expect-fail"))
        assert result.status is BlockStatus.FAILED
        assert result.reason is Reason.UNEXPECTED_SUCCESS

    def test_snippet_sees_harness_env(self, settings):
        body = "import os\nprint(os.environ['DOCHARNESS_DOCUMENT'], os.environ['DOCHARNESS_ORDINAL'])"
        result = SnippetRunner(settings).run(_item(body, document="guides/env.md"))
        assert result.stdout.split() == ["guides/env.md", "0"]

    def test_toolchain_env_overlay(self, settings):
        toolchain = ToolchainConfig(command=(sys.executable, "{file}"), suffix=".py", env={"GREETING": "hola"})
        settings = settings.with_overrides(toolchains={"python": toolchain})
        result = SnippetRunner(settings).run(_item("import os\nprint(os.environ['GREETING'])"))
        assert result.stdout.strip() == "hola"

    def test_output_is_capped(self, settings):
        settings = settings.with_overrides(max_output_chars=10)
        result = SnippetRunner(settings).run(_item("print('x' * 100)"))
        assert result.stdout.startswith("x" * 10)
        assert "truncated" in result.stdout

    def test_not_runnable_rejected(self, settings):
        item = classify(next(iter_blocks(fence("text", "hello"))))
        with pytest.raises(ValueError):
            SnippetRunner(settings).run(item)

    def test_runs_in_scoped_dir(self, settings, scratch):
        result = SnippetRunner(settings).run(_item("import os\nprint(os.getcwd())"))
        assert Path(result.stdout.strip()).resolve().parent == scratch.resolve()
        assert list(scratch.iterdir()) == []

    def test_shared_workdir_is_kept(self, settings, tmp_path):
        shared = tmp_path / "shared"
        shared.mkdir()
        runner = SnippetRunner(settings)
        runner.run(_item("open('state.txt', 'w').write('ok')"), shared)
        assert (shared / "state.txt").read_text() == "ok"
        assert (shared / "snippet_000.py").exists()


class TestTimeout:
    def test_timeout_is_errored_and_cleaned_up(self, settings, scratch):
        settings = settings.with_overrides(timeout_seconds=1)
        started = time.monotonic()
        result = SnippetRunner(settings).run(_item("import time\ntime.sleep(30)"))
        assert time.monotonic() - started < 10
        assert result.status is BlockStatus.ERRORED
        assert result.reason is Reason.TIMEOUT
        assert "exceeded timeout" in result.stderr
        assert list(scratch.iterdir()) == []

    def test_info_string_timeout_override(self, settings):
        result = SnippetRunner(settings).run(_item("import time\ntime.sleep(30)", "timeout=0.5"))
        assert result.reason is Reason.TIMEOUT
        assert result.elapsed < 5


class TestToolchains:
    def test_unconfigured_language(self, settings):
        with pytest.raises(ToolchainMissing) as exc_info:
            SnippetRunner(settings).resolve_toolchain("ruby")
        assert exc_info.value.language == "ruby"

    def test_executable_not_on_path(self, settings):
        missing = ToolchainConfig(command=("definitely-not-a-ruby-binary", "{file}"), suffix=".rb")
        settings = settings.with_overrides(toolchains={"ruby": missing})
        with pytest.raises(ToolchainMissing) as exc_info:
            SnippetRunner(settings).resolve_toolchain("ruby")
        assert exc_info.value.executable == "definitely-not-a-ruby-binary"


class TestAbort:
    def test_run_after_abort_is_skipped(self, settings):
        processes = ProcessRegistry()
        processes.abort()
        result = SnippetRunner(settings, processes).run(_item("print(1)"))
        assert result.status is BlockStatus.SKIPPED
        assert result.reason is Reason.ABORTED


class TestProcessRegistry:
    def _sleeper(self) -> subprocess.Popen:
        return subprocess.Popen(
            [sys.executable, "-c", "import time; time.sleep(60)"],
            **popen_session_kwargs(),
        )

    def test_stop_terminates(self):
        registry = ProcessRegistry(kill_grace_seconds=1)
        process = self._sleeper()
        registry.stop(process)
        assert process.poll() is not None

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    def test_stop_escalates_to_kill(self):
        registry = ProcessRegistry(kill_grace_seconds=0.5)
        process = subprocess.Popen(
            [sys.executable, "-c", "import signal, time\nsignal.signal(signal.SIGTERM, signal.SIG_IGN)\ntime.sleep(60)"],
            **popen_session_kwargs(),
        )
        time.sleep(0.3)
        registry.stop(process)
        assert process.poll() is not None

    def test_track_stops_on_exit(self):
        registry = ProcessRegistry(kill_grace_seconds=1)
        process = self._sleeper()
        with registry.track(process):
            assert registry.live_count == 1
        assert registry.live_count == 0
        assert process.poll() is not None

    def test_abort_stops_live_processes(self):
        registry = ProcessRegistry(kill_grace_seconds=1)
        process = self._sleeper()
        with registry.track(process):
            assert registry.abort() == 1
            assert registry.aborted
            assert process.poll() is not None

    def test_stop_is_idempotent(self):
        registry = ProcessRegistry()
        process = subprocess.Popen([sys.executable, "-c", "pass"])
        process.wait()
        registry.stop(process)


class TestScopedWorkdir:
    def test_removed_after_use(self, tmp_path):
        with scoped_workdir(root=tmp_path) as path:
            (path / "file.txt").write_text("x")
            assert path.parent == tmp_path
        assert not path.exists()

    def test_removed_on_error(self, tmp_path):
        with pytest.raises(RuntimeError):
            with scoped_workdir(root=tmp_path) as path:
                raise RuntimeError("boom")
        assert not path.exists()

    def test_creates_missing_root(self, tmp_path):
        root = tmp_path / "a" / "b"
        with scoped_workdir(prefix="t-", root=root) as path:
            assert path.name.startswith("t-")
        assert root.is_dir()
