"""Tests for the CLI: argument parsing, model specs, rendering."""

from collections.abc import Callable
from pathlib import Path

import pytest
from conftest import ScriptedBackend

from main import main, parse_args, parse_model, print_view, prompt_action, rag_lookup
from workbench.core.config import Settings
from workbench.core.schemas import BenchmarkResult, ModelResult, RagChunk
from workbench.pipeline.orchestrator import BenchmarkOrchestrator


class TestParseArgs:
    def test_run(self) -> None:
        args = parse_args([
            "run",
            "--purchase-id", "p-1",
            "--model", "openai:gpt-4o",
            "--model", "anthropic:claude",
            "--questions", "5",
            "--prompt-version", "v3",
        ])
        assert args.command == "run"
        assert args.purchase_id == "p-1"
        assert args.models == ["openai:gpt-4o", "anthropic:claude"]
        assert args.questions == 5
        assert args.prompt_version == "v3"
        assert args.config is None

    def test_run_defaults(self) -> None:
        args = parse_args(["run", "--purchase-id", "p-1"])
        assert args.questions == 3
        assert args.prompt_version == "v1"
        assert args.models == []
        assert args.export is None

    def test_unknown_prompt_version(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["run", "--purchase-id", "p-1", "--prompt-version", "v9"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])

    def test_compare(self) -> None:
        args = parse_args(["--verbose", "compare", "--days", "7", "--local"])
        assert args.verbose is True
        assert args.days == 7
        assert args.local is True

    def test_watch(self) -> None:
        args = parse_args(["watch", "job-1", "--export", "json"])
        assert args.job_id == "job-1"
        assert args.export == "json"

    def test_prompts_create(self) -> None:
        args = parse_args(["prompts", "create", "--type", "EVALUATION", "--file", "p.txt"])
        assert args.command == "prompts"
        assert args.action == "create"
        assert args.prompt_type == "EVALUATION"
        assert args.file == "p.txt"

    def test_prompts_activate(self) -> None:
        args = parse_args(["prompts", "activate", "4"])
        assert args.action == "activate"
        assert args.prompt_id == 4

    def test_prompts_action_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["prompts"])

    def test_rag(self) -> None:
        args = parse_args(["rag", "r-1", "--query", "kafka"])
        assert args.resume_id == "r-1"
        assert args.query == "kafka"


class TestParseModel:
    def test_provider_and_name(self) -> None:
        m = parse_model("anthropic:claude-sonnet", 0.3)
        assert m.provider == "anthropic"
        assert m.name == "claude-sonnet"
        assert m.temperature == 0.3

    def test_bare_name_defaults_provider(self) -> None:
        assert parse_model("gpt-4o", 0.7).provider == "openai"

    @pytest.mark.parametrize("value", [":gpt-4o", "openai:", " : "])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ValueError, match="provider:name"):
            parse_model(value, 0.7)


class TestPrintView:
    def test_renders_ranking_and_failures(
        self,
        make_result: Callable[..., BenchmarkResult],
        make_model_result: Callable[..., ModelResult],
        settings: Settings,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        result = make_result(
            make_model_result("gpt-4o"),
            make_model_result("claude", provider="anthropic", error="timeout"),
        )
        view = BenchmarkOrchestrator(ScriptedBackend([]), settings).get_aggregated_view(result)
        print_view(view)
        out = capsys.readouterr().out
        assert "openai/gpt-4o: score 60.0" in out
        assert "anthropic/claude: ERROR timeout" in out
        assert "1. openai/gpt-4o (60.0)" in out
        assert "2. anthropic/claude (-)" in out


class TestMain:
    def test_missing_config_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "missing.yaml"), "history"])
        assert exc_info.value.code == 1

    def test_invalid_model_exits(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "--purchase-id", "p-1", "--model", "openai:"])
        assert exc_info.value.code == 1
        assert "provider:name" in capsys.readouterr().err


class TestPromptAction:
    async def test_create_activate_list(
        self,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        backend = ScriptedBackend([])
        prompt_file = tmp_path / "prompt.txt"
        prompt_file.write_text("Generate interview questions from the resume.")

        for name in ("first", "second"):
            await prompt_action(
                backend,
                parse_args(["prompts", "create", "--name", name, "--file", str(prompt_file)]),
            )
        await prompt_action(backend, parse_args(["prompts", "activate", "1"]))
        capsys.readouterr()

        await prompt_action(backend, parse_args(["prompts", "list"]))
        out = capsys.readouterr().out
        assert "QUESTION_GENERATION (active v1):" in out
        assert "* v1  id 1  first" in out
        assert "  v2  id 2  second" in out
        assert "EVALUATION (no active version):" in out
        assert backend.prompts[2].content == "Generate interview questions from the resume."

    async def test_update_and_delete(self, tmp_path: Path) -> None:
        backend = ScriptedBackend([])
        prompt_file = tmp_path / "prompt.txt"
        prompt_file.write_text("v1 content")
        await prompt_action(backend, parse_args(["prompts", "create", "--file", str(prompt_file)]))

        await prompt_action(backend, parse_args(["prompts", "update", "1", "--name", "renamed"]))
        assert backend.prompts[1].name == "renamed"
        assert backend.prompts[1].content == "v1 content"

        await prompt_action(backend, parse_args(["prompts", "delete", "1"]))
        assert backend.prompts == {}

    async def test_update_needs_a_change(self) -> None:
        with pytest.raises(ValueError, match="Nothing to update"):
            await prompt_action(ScriptedBackend([]), parse_args(["prompts", "update", "1"]))


class TestRagLookup:
    async def test_not_embedded(self, capsys: pytest.CaptureFixture[str]) -> None:
        await rag_lookup(ScriptedBackend([]), "r-1", "kafka")
        assert "has no embeddings yet" in capsys.readouterr().out

    async def test_search(self, capsys: pytest.CaptureFixture[str]) -> None:
        backend = ScriptedBackend([])
        backend.chunks["r-1"] = [
            RagChunk(content="Built a Kafka pipeline", score=0.912),
            RagChunk(content="Streaming ETL", score=0.5),
        ]
        await rag_lookup(backend, "r-1", "kafka")
        out = capsys.readouterr().out
        assert "2 chunks embedded" in out
        assert "1. (0.912) Built a Kafka pipeline" in out
        assert "2. (0.500) Streaming ETL" in out

    async def test_status_only(self, capsys: pytest.CaptureFixture[str]) -> None:
        backend = ScriptedBackend([])
        backend.chunks["r-1"] = [RagChunk(content="x", score=1.0)]
        await rag_lookup(backend, "r-1", None)
        out = capsys.readouterr().out
        assert "1 chunks embedded" in out
        assert "(1.000)" not in out
