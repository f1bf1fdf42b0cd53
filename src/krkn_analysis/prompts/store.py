# Copyright (c) Syntropy Systems
"""YAML prompt templates rendered with LangChain."""
from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Protocol, Union, cast

import yaml
from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, Field, ValidationError

from krkn_analysis.errors import PromptError
from krkn_analysis.models.base import AnalysisBaseModel

if TYPE_CHECKING:
    from collections.abc import Mapping
    from importlib.resources.abc import Traversable

logger = logging.getLogger(__name__)


class ModelParams(AnalysisBaseModel):
    """Model invocation parameters for one prompt."""

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    system_instruction: Optional[str] = None


class PromptTemplateSpec(AnalysisBaseModel):
    """A prompt template as stored on disk."""

    id: str
    description: str = ""
    system_instruction: Optional[str] = None
    parameters: ModelParams = Field(default_factory=ModelParams)
    template: str


class PromptRenderer(Protocol):
    """Anything that can render a named prompt."""

    def render_prompt(
        self,
        template_id: str,
        variables: Mapping[str, object],
    ) -> tuple[str, ModelParams]:
        ...


def default_templates_dir() -> Traversable:
    """Return the directory of templates shipped with the package."""
    return resources.files("krkn_analysis.prompts") / "templates"


def format_variable(value: object) -> str:
    """Render a template variable as text.

    Models and containers become YAML blocks so the model sees the same
    structure that lands in summary.yaml.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return str(value)
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", exclude_none=True)
    elif isinstance(value, (list, tuple)):
        value = [
            v.model_dump(mode="json", exclude_none=True) if isinstance(v, BaseModel) else v
            for v in value
        ]
    if value is None or value == [] or value == {}:
        return "(none)"
    return yaml.safe_dump(value, sort_keys=False, default_flow_style=False).rstrip()


class PromptStore:
    """Loads prompt templates from a directory of YAML files."""

    _templates: dict[str, PromptTemplateSpec]

    def __init__(self, templates_dir: Union[Path, Traversable, None] = None) -> None:
        """Load every *.yaml template.

        Args:
            templates_dir: Directory to load from; defaults to the packaged templates

        Raises:
            PromptError: If a template file is invalid or an id is duplicated.

        """
        if templates_dir is None:
            templates_dir = default_templates_dir()

        self._templates = {}
        for entry in sorted(templates_dir.iterdir(), key=lambda e: e.name):
            if not entry.name.endswith((".yaml", ".yml")):
                continue
            spec = self._load(entry)
            if spec.id in self._templates:
                msg = f"duplicate prompt template id: {spec.id}"
                raise PromptError(msg)
            self._templates[spec.id] = spec

        logger.debug("Loaded %d prompt templates", len(self._templates))

    @staticmethod
    def _load(entry: Union[Path, Traversable]) -> PromptTemplateSpec:
        try:
            data = cast("dict[str, object]", yaml.safe_load(entry.read_text()) or {})
            spec = PromptTemplateSpec.model_validate(data)
        except (yaml.YAMLError, ValidationError, OSError) as e:
            msg = f"invalid prompt template {entry.name}: {e}"
            raise PromptError(msg) from e
        if spec.parameters.system_instruction is None and spec.system_instruction:
            spec.parameters.system_instruction = spec.system_instruction
        return spec

    def template_ids(self) -> list[str]:
        """Return the ids of all loaded templates."""
        return sorted(self._templates)

    def get(self, template_id: str) -> PromptTemplateSpec:
        """Return a template by id."""
        try:
            return self._templates[template_id]
        except KeyError:
            msg = f"prompt template not found: {template_id}"
            raise PromptError(msg) from None

    def render_prompt(
        self,
        template_id: str,
        variables: Mapping[str, object],
    ) -> tuple[str, ModelParams]:
        """Render a template.

        Returns:
            The prompt text and a copy of the template's default parameters.

        Raises:
            PromptError: If the template is unknown or a variable is missing.

        """
        spec = self.get(template_id)
        prompt = PromptTemplate.from_template(spec.template)

        missing = [name for name in prompt.input_variables if name not in variables]
        if missing:
            msg = f"prompt template {template_id} is missing variables: {', '.join(sorted(missing))}"
            raise PromptError(msg)

        text = prompt.format(
            **{name: format_variable(variables[name]) for name in prompt.input_variables}
        )
        return text, spec.parameters.model_copy()
