# Copyright (c) Syntropy Systems
"""Analysis engine for krkn-ai chaos test results.

The engine runs one analysis end to end: it collects the run's results,
renders the analysis prompt, lets the model read the run's logs through a
tool registry, writes ``llm-analysis/summary.yaml`` into the results
directory and finally notifies any configured reporters.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import yaml

from krkn_analysis.aggregator import DEFAULT_TOP_SCENARIOS, KrknAIAggregator
from krkn_analysis.context import RunContext
from krkn_analysis.errors import AnalysisCancelledError, KrknAnalysisError, StageError
from krkn_analysis.llm.client import (
    DEFAULT_MAX_TOOL_ROUNDS,
    DEFAULT_MODEL,
    DEFAULT_REQUEST_TIMEOUT,
    GeminiClient,
)
from krkn_analysis.llm.tools import READ_FILE_TOOL, ToolRegistry
from krkn_analysis.models.analysis import (
    STATUS_COMPLETED,
    AnalysisResult,
    LLMOverrides,
    NotificationConfig,
    ToolCallRecord,
)
from krkn_analysis.prompts.store import PromptStore
from krkn_analysis.reporters import ReporterRegistry, SlackReporter

if TYPE_CHECKING:
    from krkn_analysis.aggregator import Aggregator
    from krkn_analysis.config import AnalysisSettings
    from krkn_analysis.llm.client import AnalysisResponse, LLMClient
    from krkn_analysis.models.base import JSONValue
    from krkn_analysis.models.results import CollectedData
    from krkn_analysis.prompts.store import ModelParams, PromptRenderer

logger = logging.getLogger(__name__)

ANALYSIS_DIR_NAME = "llm-analysis"
SUMMARY_FILE_NAME = "summary.yaml"
ANALYSIS_TYPE = "krknai"
PROMPT_TEMPLATE_ID = "krknai"

__all__ = [
    "ANALYSIS_DIR_NAME",
    "ANALYSIS_TYPE",
    "SUMMARY_FILE_NAME",
    "AnalysisEngine",
    "AnalysisResult",
    "EngineConfig",
    "EngineState",
]


class EngineState(str, Enum):
    """Stages an analysis run moves through."""

    CREATED = "created"
    COLLECTING = "collecting"
    RENDERING = "rendering"
    INVOKING_MODEL = "invoking-model"
    PERSISTING = "persisting"
    NOTIFYING = "notifying"
    DONE = "done"
    FAILED = "failed"


@dataclass
class EngineConfig:
    """Inputs for one analysis engine."""

    # Directory containing krkn-ai results
    results_dir: Optional[Path]

    # Gemini API key
    api_key: Optional[str]

    llm: Optional[LLMOverrides] = None
    notifications: Optional[NotificationConfig] = None
    top_scenarios_count: int = DEFAULT_TOP_SCENARIOS
    model_name: str = DEFAULT_MODEL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS

    @classmethod
    def from_settings(
        cls,
        settings: AnalysisSettings,
        results_dir: Optional[Path],
        api_key: Optional[str],
    ) -> EngineConfig:
        """Build an engine config from loaded settings."""
        return cls(
            results_dir=results_dir,
            api_key=api_key,
            llm=settings.llm,
            notifications=settings.notifications,
            top_scenarios_count=settings.top_scenarios_count,
            model_name=settings.model_name,
            request_timeout=settings.request_timeout,
            max_tool_rounds=settings.max_tool_rounds,
        )


def template_variables(data: CollectedData) -> dict[str, object]:
    """Return the collected fields exposed to the prompt template."""
    return {
        "summary": data.summary,
        "top_scenarios": data.top_scenarios,
        "failed_scenarios": data.failed_scenarios,
        "health_check_report": data.health_check_report,
        "log_artifacts": data.log_artifacts,
        "config_summary": data.config_summary,
    }


def apply_llm_overrides(params: ModelParams, overrides: LLMOverrides | None) -> ModelParams:
    """Replace temperature, max_tokens and top_p where an override is set."""
    if overrides is None:
        return params
    update: dict[str, float | int] = {}
    if overrides.temperature is not None:
        update["temperature"] = overrides.temperature
    if overrides.max_tokens is not None:
        update["max_tokens"] = overrides.max_tokens
    if overrides.top_p is not None:
        update["top_p"] = overrides.top_p
    if not update:
        return params
    return params.model_copy(update=update)


def build_result(prompt: str, response: AnalysisResponse, data: CollectedData) -> AnalysisResult:
    """Build the analysis result from the model response and collected data."""
    summary = data.summary
    artifacts_examined = sum(1 for call in response.tool_calls if call.name == READ_FILE_TOOL)
    metadata: dict[str, JSONValue] = {
        "analysis_type": ANALYSIS_TYPE,
        "total_scenarios": summary.total_scenario_count,
        "successful_scenarios": summary.successful_scenario_count,
        "failed_scenarios": summary.failed_scenario_count,
        "generations": summary.generations,
        "max_fitness_score": summary.max_fitness_score,
        "artifacts_examined": artifacts_examined,
        "tool_calls": len(response.tool_calls),
    }
    return AnalysisResult(
        status=STATUS_COMPLETED,
        content=response.content,
        prompt=prompt,
        metadata=metadata,
        tool_calls=[ToolCallRecord(name=c.name, args=c.args) for c in response.tool_calls],
    )


def build_summary(result: AnalysisResult, data: CollectedData) -> dict[str, JSONValue]:
    """Build the document written to summary.yaml."""
    summary = data.summary
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "analysis_type": ANALYSIS_TYPE,
        "run_summary": {
            "total_scenarios": summary.total_scenario_count,
            "successful_scenarios": summary.successful_scenario_count,
            "failed_scenarios": summary.failed_scenario_count,
            "generations": summary.generations,
            "max_fitness_score": summary.max_fitness_score,
            "avg_fitness_score": summary.avg_fitness_score,
            "scenario_types": dict(summary.scenario_types),
        },
        "top_scenarios": [s.model_dump(mode="json", exclude_none=True) for s in data.top_scenarios],
        "failed_scenarios": [
            s.model_dump(mode="json", exclude_none=True) for s in data.failed_scenarios
        ],
        "status": result.status,
        "prompt": result.prompt,
        "response": result.content,
        "metadata": dict(result.metadata),
        "error": result.error,
    }


def summary_path(results_dir: Path) -> Path:
    """Return where the summary for a results directory is written."""
    return Path(results_dir) / ANALYSIS_DIR_NAME / SUMMARY_FILE_NAME


class AnalysisEngine:
    """Analyzes krkn-ai chaos test results with an LLM.

    Collaborators that are not passed in are built from the config: the
    krkn-ai aggregator, the packaged prompt templates, a Gemini client and a
    reporter registry with the Slack reporter registered.
    """

    config: EngineConfig
    results_dir: Path
    aggregator: Aggregator
    prompt_store: PromptRenderer
    llm_client: LLMClient
    reporter_registry: ReporterRegistry
    _state: EngineState

    def __init__(
        self,
        config: EngineConfig | None,
        *,
        aggregator: Aggregator | None = None,
        prompt_store: PromptRenderer | None = None,
        llm_client: LLMClient | None = None,
        reporter_registry: ReporterRegistry | None = None,
    ) -> None:
        """Initialize the engine.

        Raises:
            ValueError: If the config, results directory or API key is missing.

        """
        if config is None:
            msg = "engine configuration is required"
            raise ValueError(msg)
        if not config.results_dir:
            msg = "results directory is required"
            raise ValueError(msg)
        if not config.api_key:
            msg = "GEMINI_API_KEY is required for krkn-ai analysis"
            raise ValueError(msg)

        if aggregator is None:
            aggregator = KrknAIAggregator().with_top_scenarios_count(config.top_scenarios_count)
        if prompt_store is None:
            prompt_store = PromptStore()
        if llm_client is None:
            llm_client = GeminiClient(
                config.api_key,
                model_name=config.model_name,
                request_timeout=config.request_timeout,
                max_tool_rounds=config.max_tool_rounds,
            )
        if reporter_registry is None:
            reporter_registry = ReporterRegistry()
            reporter_registry.register(SlackReporter())

        self.config = config
        self.results_dir = Path(config.results_dir)
        self.aggregator = aggregator
        self.prompt_store = prompt_store
        self.llm_client = llm_client
        self.reporter_registry = reporter_registry
        self._state = EngineState.CREATED

    @property
    def state(self) -> EngineState:
        """Current stage of the most recent run."""
        return self._state

    def _enter(self, ctx: RunContext, state: EngineState) -> None:
        ctx.raise_if_cancelled(state.value)
        logger.debug("Analysis stage: %s", state.value)
        self._state = state

    def run(self, ctx: RunContext | None = None) -> AnalysisResult:
        """Run the analysis.

        Raises:
            StageError: If collecting, rendering, the model call or writing the summary fails.
            AnalysisCancelledError: If ``ctx`` is cancelled before notifications start.

        """
        if ctx is None:
            ctx = RunContext.background()

        try:
            result = self._run(ctx)
        except Exception:
            self._state = EngineState.FAILED
            raise

        self._state = EngineState.DONE
        return result

    def _run(self, ctx: RunContext) -> AnalysisResult:
        self._enter(ctx, EngineState.COLLECTING)
        try:
            data = self.aggregator.collect(ctx, self.results_dir)
        except AnalysisCancelledError:
            raise
        except (KrknAnalysisError, OSError) as e:
            msg = f"failed to collect krkn-ai results: {e}"
            raise StageError(EngineState.COLLECTING.value, msg) from e

        tools = ToolRegistry(data.log_artifacts)

        self._enter(ctx, EngineState.RENDERING)
        try:
            prompt, params = self.prompt_store.render_prompt(
                PROMPT_TEMPLATE_ID, template_variables(data)
            )
        except KrknAnalysisError as e:
            msg = f"failed to render prompt: {e}"
            raise StageError(EngineState.RENDERING.value, msg) from e
        params = apply_llm_overrides(params, self.config.llm)

        self._enter(ctx, EngineState.INVOKING_MODEL)
        try:
            response = self.llm_client.analyze(ctx, prompt, params, tools)
        except AnalysisCancelledError:
            raise
        except KrknAnalysisError as e:
            msg = f"LLM analysis failed: {e}"
            raise StageError(EngineState.INVOKING_MODEL.value, msg) from e

        result = build_result(prompt, response, data)
        logger.info(
            "Analysis completed: %d tool calls, %d artifacts examined",
            result.metadata["tool_calls"],
            result.metadata["artifacts_examined"],
        )

        self._enter(ctx, EngineState.PERSISTING)
        try:
            path = self.write_summary(result, data)
        except (OSError, yaml.YAMLError) as e:
            msg = f"failed to write analysis summary: {e}"
            raise StageError(EngineState.PERSISTING.value, msg) from e
        logger.info("Wrote analysis summary to %s", path)

        notifications = self.config.notifications
        if notifications is not None and notifications.enabled:
            self._state = EngineState.NOTIFYING
            self._send_notifications(ctx, result, notifications)

        return result

    def write_summary(self, result: AnalysisResult, data: CollectedData) -> Path:
        """Write summary.yaml, replacing any previous one only on success."""
        path = summary_path(self.results_dir)
        path.parent.mkdir(parents=True, exist_ok=True)

        text = yaml.safe_dump(
            build_summary(result, data),
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            _ = tmp_path.write_text(text)
            _ = tmp_path.replace(path)
        finally:
            tmp_path.unlink(missing_ok=True)
        return path

    def _send_notifications(
        self,
        ctx: RunContext,
        result: AnalysisResult,
        notifications: NotificationConfig,
    ) -> None:
        for reporter_config in notifications.reporters:
            if ctx.cancelled:
                logger.warning("Run cancelled, skipping remaining notifications")
                return
            try:
                self.reporter_registry.send_notification(ctx, result, reporter_config)
            except Exception as e:  # noqa: BLE001
                logger.warning(
                    "Failed to send notification via %s: %s", reporter_config.type, e
                )
