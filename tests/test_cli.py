# Copyright (c) Syntropy Systems
"""Tests for krkn-analysis CLI commands."""

import importlib
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from krkn_analysis.cli.main import app
from krkn_analysis.engine import AnalysisEngine, summary_path
from krkn_analysis.llm.client import AnalysisResponse
from krkn_analysis.reporters import ReporterRegistry

runner = CliRunner()


@pytest.fixture
def isolated(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep settings lookup and the API key out of the caller's environment."""
    monkeypatch.chdir(temp_dir)
    monkeypatch.setenv("HOME", str(temp_dir))
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    return temp_dir


class CannedClient:
    """LLM client returning a fixed analysis."""

    def analyze(self, ctx, prompt, params, tools):  # noqa: ANN001, ANN201
        return AnalysisResponse(content="## Overview\nCart is fragile.")


class TestMergeConfigCommand:
    """Tests for krkn-analysis merge-config."""

    def test_applies_overrides(self, isolated: Path, baseline_path: Path) -> None:
        result = runner.invoke(
            app,
            [
                "merge-config",
                str(baseline_path),
                "--generations", "4",
                "--enable-dns-outage", "true",
                "--host", "api.example.com",
            ],
        )

        assert result.exit_code == 0
        assert "Updated" in result.stdout
        data = yaml.safe_load(baseline_path.read_text())
        assert data["generations"] == 4
        assert data["scenario"]["dns_outage"]["enable"] is True
        assert data["parameters"]["HOST"] == "api.example.com"
        assert (baseline_path.parent / "krkn-ai-updated.yaml").exists()

    def test_reads_env_vars(
        self, isolated: Path, baseline_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("KRKN_AI_POPULATION_SIZE", "16")

        result = runner.invoke(app, ["merge-config", str(baseline_path)])

        assert result.exit_code == 0
        assert yaml.safe_load(baseline_path.read_text())["population_size"] == 16

    def test_bad_value_is_best_effort(self, isolated: Path, baseline_path: Path) -> None:
        result = runner.invoke(
            app,
            ["merge-config", str(baseline_path), "--generations", "x", "--wait-duration", "5"],
        )

        assert result.exit_code == 0
        assert "Warning" in result.stdout
        data = yaml.safe_load(baseline_path.read_text())
        assert data["generations"] == 20
        assert data["wait_duration"] == 5

    def test_strict_aborts(self, isolated: Path, baseline_path: Path) -> None:
        before = baseline_path.read_text()

        result = runner.invoke(
            app, ["merge-config", str(baseline_path), "--strict", "--generations", "x"]
        )

        assert result.exit_code == 1
        assert baseline_path.read_text() == before

    def test_missing_baseline(self, isolated: Path) -> None:
        result = runner.invoke(app, ["merge-config", str(isolated / "missing.yaml")])

        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestValidateCommand:
    """Tests for krkn-analysis validate."""

    def test_valid(self, isolated: Path) -> None:
        result = runner.invoke(app, ["validate", "--mode", "discover", "--generations", "3"])

        assert result.exit_code == 0
        assert "valid" in result.stdout

    def test_invalid_mode(self, isolated: Path) -> None:
        result = runner.invoke(app, ["validate", "--mode", "destroy"])

        assert result.exit_code == 1
        assert "Invalid" in result.stdout


class TestAnalyzeCommand:
    """Tests for krkn-analysis analyze."""

    def test_requires_api_key(self, isolated: Path, results_dir: Path) -> None:
        result = runner.invoke(app, ["analyze", str(results_dir)])

        assert result.exit_code == 1
        assert "GEMINI_API_KEY" in result.stdout
        assert not summary_path(results_dir).exists()

    def test_runs_analysis(
        self, isolated: Path, results_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        module = importlib.import_module("krkn_analysis.cli.analyze")
        configs = []

        def make_engine(config):  # noqa: ANN001, ANN202
            configs.append(config)
            return AnalysisEngine(
                config, llm_client=CannedClient(), reporter_registry=ReporterRegistry()
            )

        monkeypatch.setattr(module, "AnalysisEngine", make_engine)

        result = runner.invoke(
            app,
            ["analyze", str(results_dir), "--api-key", "k", "--top", "2", "--temperature", "0.5"],
        )

        assert result.exit_code == 0
        assert "Cart is fragile" in result.stdout
        assert configs[0].top_scenarios_count == 2
        assert configs[0].llm.temperature == 0.5
        summary = yaml.safe_load(summary_path(results_dir).read_text())
        assert summary["metadata"]["total_scenarios"] == 5
        assert len(summary["top_scenarios"]) == 2

    def test_malformed_settings(self, isolated: Path, results_dir: Path) -> None:
        settings = isolated / "settings.yaml"
        _ = settings.write_text("model_name: [unclosed\n")

        result = runner.invoke(
            app, ["analyze", str(results_dir), "--api-key", "k", "--config", str(settings)]
        )

        assert result.exit_code == 1
        assert "Could not load settings" in result.stdout
        assert not summary_path(results_dir).exists()

    def test_non_mapping_settings_use_defaults(
        self, isolated: Path, results_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        module = importlib.import_module("krkn_analysis.cli.analyze")
        configs = []

        def make_engine(config):  # noqa: ANN001, ANN202
            configs.append(config)
            return AnalysisEngine(
                config, llm_client=CannedClient(), reporter_registry=ReporterRegistry()
            )

        monkeypatch.setattr(module, "AnalysisEngine", make_engine)
        settings = isolated / "settings.yaml"
        _ = settings.write_text("- not\n- a mapping\n")

        result = runner.invoke(
            app, ["analyze", str(results_dir), "--api-key", "k", "--config", str(settings)]
        )

        assert result.exit_code == 0
        assert configs[0].top_scenarios_count == 10

    def test_aggregation_failure(
        self, isolated: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        module = importlib.import_module("krkn_analysis.cli.analyze")
        monkeypatch.setattr(
            module,
            "AnalysisEngine",
            lambda config: AnalysisEngine(config, llm_client=CannedClient()),
        )

        result = runner.invoke(app, ["analyze", str(isolated / "nope"), "--api-key", "k"])

        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestShowCommand:
    """Tests for krkn-analysis show."""

    def test_no_summary(self, isolated: Path, results_dir: Path) -> None:
        result = runner.invoke(app, ["show", str(results_dir)])

        assert result.exit_code == 1
        assert "No analysis summary" in result.stdout

    def test_show_summary(self, isolated: Path, results_dir: Path) -> None:
        path = summary_path(results_dir)
        path.parent.mkdir(parents=True)
        _ = path.write_text(
            yaml.safe_dump(
                {
                    "timestamp": "2026-01-01T00:00:00+00:00",
                    "status": "completed",
                    "run_summary": {"total_scenarios": 5, "max_fitness_score": 5.0},
                    "prompt": "secret prompt",
                    "response": "Pods restarted too often.",
                    "error": None,
                }
            )
        )

        result = runner.invoke(app, ["show", str(results_dir)])

        assert result.exit_code == 0
        assert "completed" in result.stdout
        assert "total_scenarios" in result.stdout
        assert "Pods restarted too often." in result.stdout
        assert "secret prompt" not in result.stdout


class TestDoctorCommand:
    """Tests for krkn-analysis doctor."""

    def test_missing_api_key(self, isolated: Path) -> None:
        result = runner.invoke(app, ["doctor"])

        assert result.exit_code == 1
        assert "GEMINI_API_KEY" in result.stdout
        assert "krknai" in result.stdout

    def test_healthy_results_dir(
        self, isolated: Path, results_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "k")

        result = runner.invoke(app, ["doctor", str(results_dir)])

        assert result.exit_code == 0
        assert "Log artifacts: 2" in result.stdout
        assert "All checks passed" in result.stdout
