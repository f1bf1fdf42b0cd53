# Copyright (c) Syntropy Systems
"""Tests for run config validation and baseline merging."""

import logging
from pathlib import Path

import pytest
import yaml

from krkn_analysis.baseline import (
    BACKUP_FILENAME,
    apply_overrides,
    dump_baseline,
    load_baseline,
    merge_run_config,
    parse_bool,
    parse_float,
    parse_int,
    validate_run_config,
)
from krkn_analysis.errors import BaselineError, ConfigValidationError
from krkn_analysis.models.baseline import BaselineDocument, HealthCheckApp
from krkn_analysis.models.run_config import RunConfig


class TestParsers:
    """Tests for the override value parsers."""

    @pytest.mark.parametrize(("value", "expected"), [("5", 5), ("-3", -3), ("+7", 7)])
    def test_parse_int(self, value: str, expected: int) -> None:
        assert parse_int(value) == expected

    @pytest.mark.parametrize("value", ["1.5", "abc", " 5", "5\n", "1_000", "\u0665", ""])
    def test_parse_int_rejects(self, value: str) -> None:
        with pytest.raises(ValueError):
            _ = parse_int(value)

    def test_parse_float(self) -> None:
        assert parse_float("0.3") == 0.3
        assert parse_float(".5") == 0.5
        assert parse_float("1e-2") == 0.01
        assert parse_float("2") == 2.0

    def test_parse_float_rejects(self) -> None:
        with pytest.raises(ValueError):
            _ = parse_float("0.3x")
        with pytest.raises(ValueError):
            _ = parse_float("0.3\n")

    @pytest.mark.parametrize("value", ["1", "t", "T", "TRUE", "true", "True"])
    def test_parse_bool_true(self, value: str) -> None:
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "f", "F", "FALSE", "false", "False"])
    def test_parse_bool_false(self, value: str) -> None:
        assert parse_bool(value) is False

    @pytest.mark.parametrize("value", ["yes", "no", "tRUE", ""])
    def test_parse_bool_rejects(self, value: str) -> None:
        with pytest.raises(ValueError):
            _ = parse_bool(value)


class TestValidateRunConfig:
    """Tests for validate_run_config."""

    def test_rejects_unknown_mode(self) -> None:
        with pytest.raises(ConfigValidationError, match="invalid mode"):
            validate_run_config(RunConfig(mode="destroy"))

    @pytest.mark.parametrize("mode", ["discover", "run"])
    def test_accepts_valid_modes(self, mode: str) -> None:
        validate_run_config(RunConfig(mode=mode))

    def test_rejects_missing_config(self) -> None:
        with pytest.raises(ConfigValidationError):
            validate_run_config(None)

    def test_rejects_bad_integer(self) -> None:
        with pytest.raises(ConfigValidationError, match="population_size"):
            validate_run_config(RunConfig(mode="run", population_size="ten"))

    def test_rejects_trailing_newline(self) -> None:
        with pytest.raises(ConfigValidationError, match="generations"):
            validate_run_config(RunConfig(mode="run", generations="5\n"))

    def test_rejects_bad_float(self) -> None:
        with pytest.raises(ConfigValidationError, match="composition_rate"):
            validate_run_config(RunConfig(mode="run", composition_rate="high"))

    def test_rejects_bad_boolean(self) -> None:
        with pytest.raises(ConfigValidationError, match="enable_dns_outage"):
            validate_run_config(RunConfig(mode="run", enable_dns_outage="yes"))

    def test_reports_first_violation_only(self) -> None:
        config = RunConfig(mode="destroy", generations="x", enable_pod_scenarios="maybe")
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_run_config(config)
        assert "mode" in str(exc_info.value)
        assert "generations" not in str(exc_info.value)

    def test_empty_strings_are_absent(self) -> None:
        validate_run_config(RunConfig(mode="run", generations="", enable_node_io_hog=""))

    def test_accepts_valid_values(self) -> None:
        validate_run_config(
            RunConfig(
                mode="run",
                generations="5",
                population_size="8",
                wait_duration="60",
                composition_rate="0.25",
                enable_pod_scenarios="true",
                enable_time_scenarios="0",
            )
        )

    def test_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            validate_run_config(RunConfig(mode="destroy"))


class TestApplyOverrides:
    """Tests for applying overrides to an in-memory baseline."""

    def test_numeric_overrides(self) -> None:
        document = BaselineDocument(generations=1, population_size=2, wait_duration=3)
        apply_overrides(
            RunConfig(
                mode="run",
                generations="10",
                population_size="20",
                wait_duration="30",
                composition_rate="0.5",
            ),
            document,
        )
        assert document.generations == 10
        assert document.population_size == 20
        assert document.wait_duration == 30
        assert document.composition_rate == 0.5

    def test_malformed_override_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        document = BaselineDocument(generations=20, population_size=10, wait_duration=30)
        with caplog.at_level(logging.ERROR, logger="krkn_analysis.baseline"):
            apply_overrides(
                RunConfig(
                    mode="run",
                    generations="lots",
                    population_size="15",
                    wait_duration="45",
                    host="api.example.com",
                ),
                document,
            )
        assert document.generations == 20
        assert document.population_size == 15
        assert document.wait_duration == 45
        assert document.parameters == {"HOST": "api.example.com"}
        assert "generations" in caplog.text

    def test_toggle_override_only_changes_that_toggle(self) -> None:
        document = BaselineDocument()
        document.scenario.pod_scenarios.enable = True
        apply_overrides(
            RunConfig(mode="run", enable_pod_scenarios="false", enable_dns_outage="T"),
            document,
        )
        assert document.scenario.pod_scenarios.enable is False
        assert document.scenario.dns_outage.enable is True
        assert document.scenario.node_cpu_hog.enable is False

    def test_malformed_toggle_is_skipped(self) -> None:
        document = BaselineDocument()
        document.scenario.time_scenarios.enable = True
        apply_overrides(RunConfig(mode="run", enable_time_scenarios="nope"), document)
        assert document.scenario.time_scenarios.enable is True

    def test_health_check_synthesized_when_empty(self) -> None:
        document = BaselineDocument()
        apply_overrides(
            RunConfig(mode="run", health_checks_url="http://app.example.com/ready"),
            document,
        )
        applications = document.health_checks.applications
        assert len(applications) == 1
        assert applications[0].name == "cluster-health"
        assert applications[0].url == "http://app.example.com/ready"
        assert applications[0].status_code == 200
        assert applications[0].timeout == 4
        assert applications[0].interval == 2

    def test_health_check_updates_first_only(self) -> None:
        document = BaselineDocument()
        document.health_checks.applications = [
            HealthCheckApp(name="a", url="http://a", status_code=204, timeout=9, interval=3),
            HealthCheckApp(name="b", url="http://b"),
        ]
        apply_overrides(RunConfig(mode="run", health_checks_url="http://new"), document)
        first, second = document.health_checks.applications
        assert first.url == "http://new"
        assert first.name == "a"
        assert first.status_code == 204
        assert second.url == "http://b"

    def test_host_creates_parameters(self) -> None:
        document = BaselineDocument()
        assert document.parameters is None
        apply_overrides(RunConfig(mode="run", host="h.example.com"), document)
        assert document.parameters == {"HOST": "h.example.com"}

    def test_host_keeps_existing_parameters(self) -> None:
        document = BaselineDocument(parameters={"NAMESPACE": "robot-shop"})
        apply_overrides(RunConfig(mode="run", host="h.example.com"), document)
        assert document.parameters == {"NAMESPACE": "robot-shop", "HOST": "h.example.com"}

    def test_fitness_query_overwritten(self) -> None:
        document = BaselineDocument()
        document.fitness_function.query = "old"
        apply_overrides(RunConfig(mode="run", fitness_function_query="up"), document)
        assert document.fitness_function.query == "up"


class TestMergeRunConfig:
    """Tests for merging overrides into a baseline file."""

    def test_empty_overrides_leave_baseline_unchanged(self, baseline_path: Path) -> None:
        before = dump_baseline(load_baseline(baseline_path))

        _ = merge_run_config(RunConfig(mode="run"), baseline_path)

        assert baseline_path.read_text() == before
        assert dump_baseline(load_baseline(baseline_path)) == before

    def test_unknown_keys_survive(self, baseline_path: Path) -> None:
        _ = merge_run_config(RunConfig(mode="run", generations="3"), baseline_path)

        data = yaml.safe_load(baseline_path.read_text())
        assert data["output_dir"] == "./out"
        assert data["cluster_components"]["namespaces"][0]["pods"] == ["cart-7d9f"]

    def test_merge_writes_baseline_and_backup(self, baseline_path: Path) -> None:
        document = merge_run_config(
            RunConfig(
                mode="run",
                generations="5",
                enable_network_scenarios="true",
                health_checks_url="http://cart.example.com/ready",
                host="api.example.com",
            ),
            baseline_path,
        )

        assert document.generations == 5
        data = yaml.safe_load(baseline_path.read_text())
        assert data["generations"] == 5
        assert data["scenario"]["network_scenarios"]["enable"] is True
        assert data["health_checks"]["applications"][0]["url"] == "http://cart.example.com/ready"
        assert data["health_checks"]["applications"][1]["url"] == "http://catalogue.example.com/health"
        assert data["parameters"] == {"NAMESPACE": "robot-shop", "HOST": "api.example.com"}

        backup = baseline_path.parent / BACKUP_FILENAME
        assert backup.read_text() == baseline_path.read_text()

    def test_best_effort_merge(self, baseline_path: Path) -> None:
        document = merge_run_config(
            RunConfig(
                mode="run",
                generations="twenty",
                population_size="12",
                wait_duration="90",
                composition_rate="0.2",
            ),
            baseline_path,
        )
        assert document.generations == 20
        assert document.population_size == 12
        assert document.wait_duration == 90
        assert document.composition_rate == 0.2

    def test_backup_failure_is_not_fatal(
        self, baseline_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        # A directory in the way makes the backup write fail
        (baseline_path.parent / BACKUP_FILENAME).mkdir()

        with caplog.at_level(logging.ERROR, logger="krkn_analysis.baseline"):
            document = merge_run_config(RunConfig(mode="run", generations="7"), baseline_path)

        assert document.generations == 7
        assert yaml.safe_load(baseline_path.read_text())["generations"] == 7
        assert "backup" in caplog.text

    def test_empty_lists_load_as_empty(self, temp_dir: Path) -> None:
        path = temp_dir / "krkn-ai.yaml"
        _ = path.write_text(
            "generations: 20\n"
            "fitness_function:\n"
            "  query: up\n"
            "  items:\n"
            "health_checks:\n"
            "  applications:\n"
            "scenario:\n"
            "  pod_scenarios:\n"
            "cluster_components:\n"
            "  namespaces:\n"
            "  nodes:\n"
        )

        document = merge_run_config(
            RunConfig(
                mode="run",
                generations="7",
                health_checks_url="http://app.example.com/ready",
            ),
            path,
        )

        assert document.generations == 7
        assert document.fitness_function.items == []
        assert document.cluster_components.nodes == []
        assert document.scenario.pod_scenarios.enable is False
        assert [app.name for app in document.health_checks.applications] == ["cluster-health"]
        data = yaml.safe_load(path.read_text())
        assert data["generations"] == 7
        assert data["health_checks"]["applications"][0]["url"] == "http://app.example.com/ready"

    def test_health_check_settings_not_added(self, temp_dir: Path) -> None:
        path = temp_dir / "krkn-ai.yaml"
        _ = path.write_text(
            "generations: 20\n"
            "health_checks:\n"
            "  applications:\n"
            "  - name: cart\n"
            "    url: http://cart.example.com/health\n"
        )

        _ = merge_run_config(RunConfig(mode="run"), path)

        app = yaml.safe_load(path.read_text())["health_checks"]["applications"][0]
        assert app == {"name": "cart", "url": "http://cart.example.com/health"}

    def test_missing_baseline(self, temp_dir: Path) -> None:
        with pytest.raises(BaselineError, match="reading baseline"):
            _ = merge_run_config(RunConfig(mode="run"), temp_dir / "missing.yaml")

    def test_unparseable_baseline(self, temp_dir: Path) -> None:
        path = temp_dir / "krkn-ai.yaml"
        _ = path.write_text("generations: [1, 2\n")
        with pytest.raises(BaselineError, match="parsing baseline"):
            _ = merge_run_config(RunConfig(mode="run"), path)

    def test_non_mapping_baseline(self, temp_dir: Path) -> None:
        path = temp_dir / "krkn-ai.yaml"
        _ = path.write_text("- just\n- a list\n")
        with pytest.raises(BaselineError, match="expected a mapping"):
            _ = merge_run_config(RunConfig(mode="run"), path)

    def test_missing_run_config(self, baseline_path: Path) -> None:
        with pytest.raises(ValueError, match="run configuration"):
            _ = merge_run_config(None, baseline_path)

    def test_missing_path(self) -> None:
        with pytest.raises(ValueError, match="baseline path"):
            _ = merge_run_config(RunConfig(mode="run"), None)
