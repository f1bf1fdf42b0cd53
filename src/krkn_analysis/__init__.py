"""
krkn-analysis - LLM analysis of krkn-ai chaos runs.

Collect results, ask the model what broke, tell the team.
"""

from krkn_analysis.baseline import merge_run_config, validate_run_config
from krkn_analysis.context import RunContext
from krkn_analysis.engine import AnalysisEngine, AnalysisResult, EngineConfig

__version__ = "0.1.0"
__all__ = [
    "AnalysisEngine",
    "AnalysisResult",
    "EngineConfig",
    "RunContext",
    "__version__",
    "merge_run_config",
    "validate_run_config",
]
