"""End-to-end scenarios through Harness.run() and Harness.inspect().

Each scenario writes a small guide tree, runs the full pipeline
(discover → extract → classify → dispatch → aggregate) and checks the
finished report.
"""

from __future__ import annotations

from docharness import Harness
from docharness.core.config import ToolchainConfig, WorkdirPolicy
from docharness.models import BlockStatus, Classification, Reason

from tests._support.guides import fence, guide


class TestScenarios:
    def test_prose_and_runnable(self, settings, guides, write_guide):
        write_guide("intro.md", guide("Intro", fence("text", "2"), fence("python", "print(1+1)")))
        report = Harness(settings).run(guides)
        skipped, passed = report.documents[0].results
        assert skipped.status is BlockStatus.SKIPPED
        assert skipped.item.classification is Classification.PROSE_ILLUSTRATION
        assert passed.status is BlockStatus.PASSED
        assert passed.stdout.strip() == "2"
        assert report.ok

    def test_untagged_block_is_never_run(self, settings, guides, write_guide):
        write_guide("install.md", guide("Install", fence("", "pip install doc-harness")))
        report = Harness(settings).run(guides)
        result = next(report.results())
        assert result.item.classification is Classification.TRANSCRIPT
        assert result.status is BlockStatus.SKIPPED

    def test_timeout_leaves_no_scratch(self, settings, scratch, guides, write_guide):
        write_guide("slow.md", guide("Slow", fence("python", "import time\ntime.sleep(30)")))
        report = Harness(settings.with_overrides(timeout_seconds=1)).run(guides)
        result = next(report.results())
        assert (result.status, result.reason) == (BlockStatus.ERRORED, Reason.TIMEOUT)
        assert list(scratch.iterdir()) == []

    def test_malformed_document_is_isolated(self, settings, guides, write_guide):
        write_guide("a.md", "# A\n\n```python\nprint('never')\n")
        write_guide("b.md", guide("B", fence("python", "print('b')")))
        report = Harness(settings).run(guides)

        bad, good = report.documents
        assert bad.error is not None
        assert bad.error.line == 3
        assert bad.results == ()
        assert good.results[0].status is BlockStatus.PASSED
        assert report.summary()["malformed_documents"] == 1
        assert not report.ok

    def test_undecodable_document_is_isolated(self, settings, guides, write_guide):
        (guides / "a.md").write_bytes(b"# A\n\n\xff\xfe\n")
        write_guide("b.md", guide("B", fence("python", "print('b')")))
        report = Harness(settings).run(guides)

        bad, good = report.documents
        assert bad.error is not None
        assert "UTF-8" in bad.error.message
        assert bad.error.line == 3
        assert good.results[0].status is BlockStatus.PASSED
        assert not report.ok

    def test_per_document_shared_state(self, settings, guides, write_guide):
        write_guide(
            "files.md",
            guide(
                "Files",
                fence("python", "open('greeting.txt', 'w').write('hello')"),
                fence("shell", "ls"),
                fence("python", "print(open('greeting.txt').read())"),
            ),
        )
        settings = settings.with_overrides(workdir_policy=WorkdirPolicy.PER_DOCUMENT, languages=["python"])
        report = Harness(settings).run(guides)
        statuses = [result.status for result in report.results()]
        assert statuses == [BlockStatus.PASSED, BlockStatus.SKIPPED, BlockStatus.PASSED]
        assert report.documents[0].results[2].stdout.strip() == "hello"

    def test_every_block_gets_exactly_one_result(self, settings, guides, write_guide):
        missing = ToolchainConfig(command=("no-such-elixir", "{file}"), suffix=".exs")
        settings = settings.with_overrides(toolchains={**settings.toolchains, "elixir": missing})
        write_guide(
            "mixed.md",
            guide(
                "Mixed",
                fence("console", "$ mix test"),
                fence("elixir", "IO.puts 1"),
                fence("python", "print(1)"),
                fence("python", "def partial(:"),
                fence("python", "import sys\nsys.exit(2)", "expect-fail"),
            ),
        )
        report = Harness(settings).run(guides)
        results = report.documents[0].results
        assert [result.block.ordinal for result in results] == [0, 1, 2, 3, 4]
        assert [result.status for result in results] == [
            BlockStatus.SKIPPED,
            BlockStatus.ERRORED,
            BlockStatus.PASSED,
            BlockStatus.SKIPPED,
            BlockStatus.PASSED,
        ]
        assert [error.language for error in report.missing_toolchains] == ["elixir"]


class TestInspect:
    def test_inspect_never_executes(self, settings, guides, write_guide, tmp_path):
        marker = tmp_path / "ran"
        write_guide("a.md", guide("A", fence("python", f"open({str(marker)!r}, 'w')")))
        inspections = Harness(settings).inspect(guides)
        assert inspections[0].items[0].is_runnable
        assert not marker.exists()

    def test_ambiguous_block_is_fragment(self, settings, guides, write_guide):
        write_guide("a.md", guide("A", fence("ruby", "  puts 1\nend")))
        item = Harness(settings).inspect(guides)[0].items[0]
        assert item.classification is Classification.FRAGMENT
        assert item.ambiguous

    def test_malformed_inspection(self, settings, guides, write_guide):
        write_guide("a.md", "```python\n")
        inspection = Harness(settings).inspect(guides)[0]
        assert inspection.document is None
        assert inspection.error is not None
