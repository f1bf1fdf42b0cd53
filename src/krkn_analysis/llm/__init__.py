# Copyright (c) Syntropy Systems
"""Model backend and tool calling for krkn-analysis."""

from krkn_analysis.llm.client import AnalysisResponse, GeminiClient, LLMClient, ToolCall
from krkn_analysis.llm.tools import LIST_ARTIFACTS_TOOL, READ_FILE_TOOL, ToolRegistry

__all__ = [
    "LIST_ARTIFACTS_TOOL",
    "READ_FILE_TOOL",
    "AnalysisResponse",
    "GeminiClient",
    "LLMClient",
    "ToolCall",
    "ToolRegistry",
]
