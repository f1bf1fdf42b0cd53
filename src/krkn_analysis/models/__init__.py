# Copyright (c) Syntropy Systems
"""Pydantic models for krkn-analysis."""
