# Copyright (c) Syntropy Systems
"""Prompt templates for krkn-analysis."""

from krkn_analysis.prompts.store import ModelParams, PromptRenderer, PromptStore

__all__ = ["ModelParams", "PromptRenderer", "PromptStore"]
