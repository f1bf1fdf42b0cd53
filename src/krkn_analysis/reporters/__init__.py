# Copyright (c) Syntropy Systems
"""Notification reporters for krkn-analysis."""

from krkn_analysis.reporters.base import Reporter, ReporterRegistry
from krkn_analysis.reporters.slack import SLACK_REPORTER_TYPE, SlackReporter

__all__ = ["SLACK_REPORTER_TYPE", "Reporter", "ReporterRegistry", "SlackReporter"]
