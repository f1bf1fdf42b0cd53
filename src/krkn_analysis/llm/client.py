# Copyright (c) Syntropy Systems
"""Model backend clients for tool-augmented analysis."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, cast

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai.types import generation_types
from pydantic import Field

from krkn_analysis.errors import LLMClientError
from krkn_analysis.models.base import AnalysisBaseModel, JSONValue

if TYPE_CHECKING:
    from krkn_analysis.context import RunContext
    from krkn_analysis.llm.tools import ToolRegistry
    from krkn_analysis.prompts.store import ModelParams

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_REQUEST_TIMEOUT = 120.0
DEFAULT_MAX_TOOL_ROUNDS = 10


class ToolCall(AnalysisBaseModel):
    """A function call made by the model."""

    name: str
    args: dict[str, JSONValue] = Field(default_factory=dict)


class AnalysisResponse(AnalysisBaseModel):
    """Final model output plus every tool call made on the way."""

    content: str
    tool_calls: list[ToolCall] = Field(default_factory=list)


class LLMClient(Protocol):
    """A model backend that can run a tool-augmented analysis."""

    def analyze(
        self,
        ctx: RunContext,
        prompt: str,
        params: ModelParams,
        tools: ToolRegistry,
    ) -> AnalysisResponse:
        ...


def _generation_config(params: ModelParams) -> dict[str, float | int]:
    config: dict[str, float | int] = {}
    if params.temperature is not None:
        config["temperature"] = params.temperature
    if params.max_tokens is not None:
        config["max_output_tokens"] = params.max_tokens
    if params.top_p is not None:
        config["top_p"] = params.top_p
    return config


def _response_parts(response: object) -> list[object]:
    candidates = cast("list[object]", getattr(response, "candidates", None) or [])
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    return list(cast("list[object]", getattr(content, "parts", None) or []))


def _function_calls(parts: list[object]) -> list[ToolCall]:
    calls: list[ToolCall] = []
    for part in parts:
        function_call = getattr(part, "function_call", None)
        if function_call is None or not getattr(function_call, "name", ""):
            continue
        data = cast("dict[str, object]", type(function_call).to_dict(function_call))
        calls.append(
            ToolCall(
                name=cast("str", function_call.name),
                args=cast("dict[str, JSONValue]", data.get("args") or {}),
            )
        )
    return calls


def _text(parts: list[object]) -> str:
    return "".join(cast("str", getattr(part, "text", "") or "") for part in parts)


class GeminiClient:
    """Runs analyses against Google Gemini with manual function calling.

    The client sends the prompt, executes every function call the model
    makes against the tool registry, and returns once the model answers
    with text or ``max_tool_rounds`` is used up.
    """

    model_name: str
    request_timeout: float
    max_tool_rounds: int

    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_MODEL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Gemini API key
            model_name: Gemini model to use
            request_timeout: Per-request timeout in seconds
            max_tool_rounds: Upper bound on function-calling round trips

        """
        if not api_key:
            msg = "GEMINI_API_KEY is required"
            raise ValueError(msg)

        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.request_timeout = request_timeout
        self.max_tool_rounds = max_tool_rounds

    def analyze(
        self,
        ctx: RunContext,
        prompt: str,
        params: ModelParams,
        tools: ToolRegistry,
    ) -> AnalysisResponse:
        """Run the analysis and return the model's final answer."""
        model = genai.GenerativeModel(
            model_name=self.model_name,
            tools=[{"function_declarations": tools.declarations()}],
            system_instruction=params.system_instruction,
        )
        chat = model.start_chat()
        generation_config = _generation_config(params)
        tool_calls: list[ToolCall] = []

        def send(content: object) -> list[object]:
            ctx.raise_if_cancelled("invoking-model")
            try:
                response = chat.send_message(
                    content,
                    generation_config=generation_config,
                    request_options={"timeout": ctx.timeout_for(self.request_timeout)},
                )
            except (
                google_exceptions.GoogleAPIError,
                generation_types.BlockedPromptException,
                generation_types.StopCandidateException,
                ValueError,
            ) as e:
                msg = f"Gemini request failed: {e}"
                raise LLMClientError(msg) from e
            return _response_parts(response)

        parts = send(prompt)
        for round_idx in range(self.max_tool_rounds):
            calls = _function_calls(parts)
            if not calls:
                break

            logger.debug("Tool round %d: %s", round_idx + 1, [c.name for c in calls])
            responses: list[object] = []
            for call in calls:
                tool_calls.append(call)
                result = tools.execute(call.name, call.args)
                responses.append(
                    genai.protos.Part(
                        function_response=genai.protos.FunctionResponse(
                            name=call.name,
                            response=result,
                        )
                    )
                )
            parts = send(responses)
        else:
            if _function_calls(parts):
                logger.warning(
                    "Model still requesting tools after %d rounds", self.max_tool_rounds
                )

        content = _text(parts).strip()
        if not content:
            msg = "Gemini returned no analysis content"
            raise LLMClientError(msg)

        return AnalysisResponse(content=content, tool_calls=tool_calls)
