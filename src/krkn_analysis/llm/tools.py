# Copyright (c) Syntropy Systems
"""Tools the model may call while analyzing a run."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from krkn_analysis.models.base import JSONValue
    from krkn_analysis.models.results import LogArtifact

logger = logging.getLogger(__name__)

READ_FILE_TOOL = "read_file"
LIST_ARTIFACTS_TOOL = "list_artifacts"

DEFAULT_MAX_LINES = 200
MAX_LINES_LIMIT = 2000

ToolHandler = Callable[["Mapping[str, object]"], "dict[str, JSONValue]"]


@dataclass
class ToolSpec:
    """A tool as declared to the model."""

    name: str
    description: str
    parameters: dict[str, JSONValue] = field(default_factory=dict)

    def declaration(self) -> dict[str, JSONValue]:
        """Return the function declaration sent to the model backend."""
        declaration: dict[str, JSONValue] = {
            "name": self.name,
            "description": self.description,
        }
        if self.parameters:
            declaration["parameters"] = self.parameters
        return declaration


class ToolRegistry:
    """The tools available to the model for one run.

    File access is limited to the log artifacts the registry was built with;
    no other path can be read through it.
    """

    _allowed: dict[str, Path]
    _names: dict[str, Path]
    _specs: dict[str, ToolSpec]
    _handlers: dict[str, ToolHandler]

    def __init__(self, artifacts: Iterable[LogArtifact] = ()) -> None:
        self._allowed = {}
        self._names = {}
        for artifact in artifacts:
            path = Path(artifact.path)
            self._allowed[str(path)] = path
            self._names[artifact.name] = path

        self._specs = {}
        self._handlers = {}
        self._register(
            ToolSpec(
                name=READ_FILE_TOOL,
                description=(
                    "Read the last lines of a log artifact from the chaos run. "
                    "Only paths returned by list_artifacts can be read."
                ),
                parameters={
                    "type": "object",
                    "properties": {
                        "path": {
                            "type": "string",
                            "description": "Artifact path or name as listed",
                        },
                        "max_lines": {
                            "type": "integer",
                            "description": f"Lines to return from the end (default {DEFAULT_MAX_LINES})",
                        },
                    },
                    "required": ["path"],
                },
            ),
            self._read_file,
        )
        self._register(
            ToolSpec(
                name=LIST_ARTIFACTS_TOOL,
                description="List the log artifacts that can be read with read_file.",
            ),
            self._list_artifacts,
        )

    def _register(self, spec: ToolSpec, handler: ToolHandler) -> None:
        self._specs[spec.name] = spec
        self._handlers[spec.name] = handler

    @property
    def allowed_paths(self) -> list[str]:
        """Absolute paths the model may read."""
        return sorted(self._allowed)

    def specs(self) -> list[ToolSpec]:
        """Return all tool specs."""
        return list(self._specs.values())

    def declarations(self) -> list[dict[str, JSONValue]]:
        """Return function declarations for every tool."""
        return [spec.declaration() for spec in self._specs.values()]

    def execute(self, name: str, args: Mapping[str, object]) -> dict[str, JSONValue]:
        """Run a tool and return its result payload.

        Problems are reported back to the model in an ``error`` key rather
        than raised, so a bad call does not end the analysis.
        """
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Model requested unknown tool %s", name)
            return {"error": f"unknown tool: {name}"}
        return handler(args)

    def _resolve(self, requested: str) -> Path | None:
        if requested in self._names:
            return self._names[requested]
        if requested in self._allowed:
            return self._allowed[requested]
        try:
            resolved = str(Path(requested).resolve())
        except (OSError, RuntimeError):
            return None
        return self._allowed.get(resolved)

    def _read_file(self, args: Mapping[str, object]) -> dict[str, JSONValue]:
        requested = args.get("path")
        if not isinstance(requested, str) or not requested:
            return {"error": "path is required"}

        max_lines = args.get("max_lines", DEFAULT_MAX_LINES)
        if isinstance(max_lines, float):
            max_lines = int(max_lines)
        if not isinstance(max_lines, int) or max_lines <= 0:
            max_lines = DEFAULT_MAX_LINES
        max_lines = min(max_lines, MAX_LINES_LIMIT)

        path = self._resolve(requested)
        if path is None:
            logger.warning("Model requested file outside the artifact list: %s", requested)
            return {"error": f"access denied: {requested} is not a known artifact"}

        try:
            with path.open(errors="replace") as f:
                total = 0
                tail: deque[str] = deque(maxlen=max_lines)
                for line in f:
                    total += 1
                    tail.append(line)
        except OSError as e:
            return {"error": f"could not read {requested}: {e}"}

        logger.debug("read_file %s: %d of %d lines", path, len(tail), total)
        return {
            "path": str(path),
            "content": "".join(tail),
            "total_lines": total,
            "truncated": total > len(tail),
        }

    def _list_artifacts(self, args: Mapping[str, object]) -> dict[str, JSONValue]:
        _ = args
        return {"artifacts": sorted(self._names)}
