"""Snippet runner — execute one runnable block as a local subprocess.

Manifesto:
    A runnable block is a self-contained program. The runner writes it to
    a file inside a scoped working directory, hands it to the configured
    toolchain, and turns whatever happens into a :class:`RunResult`.
    Nothing a snippet does can leak out of its scope: the subprocess is
    tracked until it is reaped and the directory is removed on every exit
    path, including timeouts and aborts.

Architecture:
    .. code-block:: text

        ClassifiedBlock (runnable)
              │
              ▼
        SnippetRunner.run(item, workdir=None)
          ├── resolve_toolchain(language)   ToolchainMissing if absent
          ├── scoped_workdir()              unless a shared dir is given
          ├── write snippet_<ordinal><suffix>
          ├── Popen(argv, cwd=workdir)      tracked by ProcessRegistry
          ├── communicate(timeout)          ExecutionTimeout → stop()
          └── RunResult(passed|failed|errored)

    Toolchain field          │ Local process equivalent
    ─────────────────────────┼───────────────────────────────
    command ("{file}")       │ subprocess argv
    suffix                   │ snippet file extension
    env                      │ os.environ overlay

Outcome mapping:

    exit 0                        → passed
    exit != 0                     → failed   (reason=exit-code)
    "expect-fail" flag, exit != 0 → passed
    "expect-fail" flag, exit 0    → failed   (reason=unexpected-success)
    deadline exceeded             → errored  (reason=timeout)
    abort while running           → errored  (reason=aborted)
    spawn OSError                 → errored  (reason=spawn-error)

Tags:
    docharness, execution, subprocess, timeout, scoped-resources

Doc-Types:
    api-reference
"""

from __future__ import annotations

import os
import shutil
import subprocess
import time
from contextlib import ExitStack
from pathlib import Path

from docharness.core.config.settings import HarnessSettings, ToolchainConfig
from docharness.core.errors import ExecutionTimeout, ToolchainMissing
from docharness.core.logging import get_logger
from docharness.execution.processes import ProcessRegistry, popen_session_kwargs
from docharness.execution.workdir import scoped_workdir
from docharness.models import BlockStatus, ClassifiedBlock, Reason, RunResult

logger = get_logger(__name__)


def _truncate(text: str, limit: int) -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + f"\n... [truncated {len(text) - limit} chars]"


class SnippetRunner:
    """Runs runnable blocks with the toolchains from :class:`HarnessSettings`.

    Example:
        >>> runner = SnippetRunner(settings)
        >>> result = runner.run(classified_block)
        >>> result.status, result.stdout
        (<BlockStatus.PASSED: 'passed'>, '2\\n')
    """

    def __init__(self, settings: HarnessSettings, processes: ProcessRegistry | None = None):
        self.settings = settings
        self.processes = processes or ProcessRegistry(settings.kill_grace_seconds)

    # ------------------------------------------------------------------
    # Toolchains
    # ------------------------------------------------------------------

    def resolve_toolchain(self, language: str) -> ToolchainConfig:
        """Return the toolchain for ``language`` or raise :class:`ToolchainMissing`."""
        toolchain = self.settings.toolchain_for(language)
        if toolchain is None:
            raise ToolchainMissing(f"no toolchain configured for '{language}'", language=language)
        if shutil.which(toolchain.executable) is None:
            raise ToolchainMissing(
                f"'{toolchain.executable}' not found for {language} snippets",
                language=language,
                executable=toolchain.executable,
            )
        return toolchain

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, item: ClassifiedBlock, workdir: Path | None = None) -> RunResult:
        """Execute ``item`` and return its terminal result.

        Args:
            item: A runnable classified block.
            workdir: Shared directory owned by the caller. When ``None`` a
                scoped directory is created for this block alone.

        Raises:
            ToolchainMissing: The language's executable is not installed.
            ValueError: ``item`` is not runnable.
        """
        if not item.is_runnable or item.language is None:
            raise ValueError(f"block {item.key} is {item.classification.value}, not runnable")
        if self.processes.aborted:
            return RunResult.skipped(item, Reason.ABORTED)

        toolchain = self.resolve_toolchain(item.language)
        block = item.block
        timeout = block.timeout_override or self.settings.timeout_seconds

        with ExitStack() as stack:
            if workdir is None:
                workdir = stack.enter_context(scoped_workdir(root=self.settings.scratch_dir))
            snippet = workdir / f"snippet_{block.ordinal:03d}{toolchain.suffix}"
            snippet.write_text(block.text + "\n", encoding="utf-8")
            return self._execute(item, toolchain, snippet, workdir, timeout)

    def _execute(
        self,
        item: ClassifiedBlock,
        toolchain: ToolchainConfig,
        snippet: Path,
        workdir: Path,
        timeout: float,
    ) -> RunResult:
        block = item.block
        env = dict(os.environ)
        env.update(toolchain.env)
        env["DOCHARNESS_DOCUMENT"] = str(block.document)
        env["DOCHARNESS_ORDINAL"] = str(block.ordinal)

        argv = toolchain.argv(snippet)
        started = time.monotonic()
        try:
            process = subprocess.Popen(
                argv,
                cwd=str(workdir),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=env,
                **popen_session_kwargs(),
            )
        except FileNotFoundError as exc:
            raise ToolchainMissing(
                f"'{argv[0]}' not found for {item.language} snippets",
                language=item.language or "",
                executable=argv[0],
                cause=exc,
            ) from exc
        except OSError as exc:
            logger.error("snippet_spawn_failed", argv=argv, error=str(exc))
            return RunResult.errored(item, Reason.SPAWN_ERROR, str(exc), time.monotonic() - started)

        logger.debug("snippet_started", pid=process.pid, argv=argv)
        with self.processes.track(process):
            try:
                stdout, stderr = self._communicate(process, timeout)
            except ExecutionTimeout as exc:
                elapsed = time.monotonic() - started
                logger.warning("snippet_timeout", timeout=timeout, elapsed=round(elapsed, 3))
                self.processes.stop(process)
                stdout, stderr = self._drain(process)
                return RunResult(
                    item=item,
                    status=BlockStatus.ERRORED,
                    reason=Reason.TIMEOUT,
                    stdout=self._cap(stdout),
                    stderr=self._cap(stderr + f"\n{exc.message}" if stderr else exc.message),
                    exit_code=process.returncode,
                    elapsed=elapsed,
                )

        elapsed = time.monotonic() - started
        exit_code = process.returncode

        if self.processes.aborted and exit_code != 0:
            return RunResult(
                item=item,
                status=BlockStatus.ERRORED,
                reason=Reason.ABORTED,
                stdout=self._cap(stdout),
                stderr=self._cap(stderr),
                exit_code=exit_code,
                elapsed=elapsed,
            )

        status, reason = self._verdict(item, exit_code)
        logger.debug("snippet_finished", exit_code=exit_code, status=status.value, elapsed=round(elapsed, 3))
        return RunResult(
            item=item,
            status=status,
            reason=reason,
            stdout=self._cap(stdout),
            stderr=self._cap(stderr),
            exit_code=exit_code,
            elapsed=elapsed,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _verdict(item: ClassifiedBlock, exit_code: int) -> tuple[BlockStatus, Reason | None]:
        expect_fail = item.block.has_flag("expect-fail")
        if exit_code == 0:
            if expect_fail:
                return BlockStatus.FAILED, Reason.UNEXPECTED_SUCCESS
            return BlockStatus.PASSED, None
        if expect_fail:
            return BlockStatus.PASSED, None
        return BlockStatus.FAILED, Reason.EXIT_CODE

    @staticmethod
    def _communicate(process: subprocess.Popen, timeout: float) -> tuple[str, str]:
        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            raise ExecutionTimeout(
                f"Process killed: exceeded timeout of {timeout:g}s",
                timeout=timeout,
                cause=exc,
            ) from exc
        return stdout or "", stderr or ""

    def _drain(self, process: subprocess.Popen) -> tuple[str, str]:
        """Collect leftover output from a stopped process."""
        try:
            stdout, stderr = process.communicate(timeout=max(self.settings.kill_grace_seconds, 0.5))
        except (subprocess.TimeoutExpired, ValueError, OSError):
            return "", ""
        return stdout or "", stderr or ""

    def _cap(self, text: str) -> str:
        return _truncate(text, self.settings.max_output_chars)
