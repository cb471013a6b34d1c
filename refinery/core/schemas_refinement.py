"""Pydantic models for layered idea refinement.

A refinement session walks free text through an ordered sequence of layers:
- Layers: declared stages (Vision, Category, ...) with focus text and questions
- Branches: attributes extracted from the text, accumulated in an idea tree
- History: per-layer record of submitted and refined text (template engine)
- Output: the final export assembled once the terminal layer is reached
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
)

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class RefinementInputError(ValueError):
    """Raised when caller-supplied refinement state is structurally invalid."""


# =============================================================================
# Enums
# =============================================================================


class ReadinessStatus(str, Enum):
    """How ready a piece of text is for its layer."""

    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


class LayerStatus(str, Enum):
    """Progression state of a layer within a session."""

    COMPLETED = "completed"
    CURRENT = "current"
    UPCOMING = "upcoming"


class OutputFormatKind(str, Enum):
    """Variants of final output a template can declare."""

    JSON = "json"
    MARKDOWN = "markdown"
    TEXT = "text"
    EXECUTION_PLAN = "execution_plan"
    CUSTOM = "custom"


class StructureFieldType(str, Enum):
    """Where a structured output field takes its value from."""

    LAYER_DATA = "layer_data"
    LAYER_RESPONSES = "layer_responses"
    STATIC = "static"
    COMPUTED = "computed"


# =============================================================================
# Layer vocabulary
# =============================================================================


class BranchRule(BaseModel):
    """Several trigger phrasings that map to one branch."""

    label: NonEmptyStr
    value: NonEmptyStr
    triggers: list[NonEmptyStr] = Field(default_factory=list)


class ReadinessSignal(BaseModel):
    """A weighted category of terms that moves the readiness score."""

    name: str
    terms: list[NonEmptyStr] = Field(default_factory=list)
    weight: float = 0.1  # Per occurrence, negative for vagueness
    bonus: float = 0.0  # Added once when any term occurs


class ReadinessThresholds(BaseModel):
    red: float
    yellow: float
    green: float


class LayerVocabulary(BaseModel):
    """Declared keywords for one layer."""

    indicators: list[NonEmptyStr] = Field(default_factory=list)
    branch_rules: list[BranchRule] = Field(
        default_factory=list, validation_alias=AliasChoices("branch_rules", "branchRules")
    )
    signals: list[ReadinessSignal] = Field(default_factory=list)
    thresholds: ReadinessThresholds | None = None


# =============================================================================
# Layers & tree
# =============================================================================


class LayerDefinition(BaseModel):
    """Immutable metadata for one stage of refinement."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    focus: str = ""
    questions: list[str] = Field(default_factory=list)
    transition: str = ""
    is_output_layer: bool = False
    vocabulary: LayerVocabulary = Field(default_factory=LayerVocabulary)


class Branch(BaseModel):
    """A single extracted attribute, tagged with the layer it was found at."""

    model_config = ConfigDict(frozen=True)

    label: NonEmptyStr
    value: NonEmptyStr
    layer_id: NonEmptyStr = Field(
        validation_alias=AliasChoices("layer_id", "layerId", "altitude"),
    )

    @property
    def key(self) -> tuple[str, str]:
        return (self.label, self.value)


class LayerHistoryEntry(BaseModel):
    """One submission at one layer of a template session."""

    layer_id: NonEmptyStr = Field(validation_alias=AliasChoices("layer_id", "layerId"))
    prompt: str
    refined_prompt: str = Field(
        default="", validation_alias=AliasChoices("refined_prompt", "refinedPrompt")
    )
    responses: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# =============================================================================
# Output format & blueprint
# =============================================================================


class StructureField(BaseModel):
    """One entry of a declared output structure."""

    type: StructureFieldType
    layer_id: str | None = Field(default=None, validation_alias=AliasChoices("layer_id", "layerId"))
    value: Any = None  # For static fields
    default: Any = ""  # For computed fields
    compute: str | None = None  # Named computation for computed fields


class OutputFormat(BaseModel):
    """Tagged output declaration: a known kind, or a custom type name."""

    model_config = ConfigDict(frozen=True)

    kind: OutputFormatKind = OutputFormatKind.JSON
    custom_type: str | None = None
    structure: dict[str, StructureField] = Field(default_factory=dict)

    @property
    def type_name(self) -> str:
        return self.custom_type or self.kind.value

    @classmethod
    def from_declared(cls, declared: Any) -> "OutputFormat":
        """Build from a blueprint's ``{type, structure}`` declaration."""
        if declared is None:
            return cls()
        if isinstance(declared, OutputFormat):
            return declared
        if not isinstance(declared, dict):
            raise ValueError("outputFormat must be an object with a 'type'")
        if "kind" in declared:
            return cls.model_validate(declared)

        type_name = str(declared.get("type") or OutputFormatKind.JSON.value).strip().lower()
        structure = declared.get("structure") or {}
        try:
            kind = OutputFormatKind(type_name)
        except ValueError:
            kind = OutputFormatKind.CUSTOM

        custom_type = type_name if kind == OutputFormatKind.CUSTOM else None
        return cls(kind=kind, custom_type=custom_type, structure=structure)


class BlueprintLayer(BaseModel):
    id: str | None = None
    name: NonEmptyStr
    description: str = ""
    focus: str = ""
    questions: list[str] = Field(default_factory=list)
    transition: str = ""
    vocabulary: LayerVocabulary | None = None


class Blueprint(BaseModel):
    """Declarative description a layer sequence is built from."""

    name: NonEmptyStr
    description: str = ""
    layers: list[BlueprintLayer] = Field(default_factory=list)
    output_format: OutputFormat = Field(
        default_factory=OutputFormat,
        validation_alias=AliasChoices("output_format", "outputFormat"),
    )

    @field_validator("output_format", mode="before")
    @classmethod
    def _coerce_output_format(cls, value: Any) -> OutputFormat:
        return OutputFormat.from_declared(value)


# =============================================================================
# Service response & results
# =============================================================================


class RefinementSuggestion(BaseModel):
    """Decoded text generation response."""

    refined_prompt: NonEmptyStr = Field(
        validation_alias=AliasChoices("refined_prompt", "refinedPrompt")
    )
    questions: list[str] = Field(default_factory=list)

    @field_validator("questions", mode="before")
    @classmethod
    def _drop_blank_questions(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [q.strip() for q in value if isinstance(q, str) and q.strip()]
        return value


class StructuredOutput(BaseModel):
    """Simple export shape of an idea tree."""

    core_idea: str
    branches: list[Branch] = Field(default_factory=list)
    readiness_status: ReadinessStatus


class RefinementResult(BaseModel):
    """Everything one refinement call hands back to the caller."""

    original_prompt: str
    refined_prompt: str
    current_layer: str
    next_layer: str
    readiness_status: ReadinessStatus
    input_readiness: ReadinessStatus | None = None
    idea_tree: list[Branch] = Field(default_factory=list)
    layer_history: list[LayerHistoryEntry] = Field(default_factory=list)
    new_branches: list[Branch] = Field(default_factory=list)
    suggested_questions: list[str] = Field(default_factory=list)
    layer_info: LayerDefinition | None = None
    next_layer_info: LayerDefinition | None = None
    transition_guidance: str = ""
    instruction_prompt: str | None = None
    used_fallback: bool = False
    is_output_layer: bool = False
    output: dict[str, Any] | None = None
    structured_output: StructuredOutput | None = None
    template_name: str = ""


class LayerProgress(BaseModel):
    layer_id: str
    name: str
    description: str = ""
    status: LayerStatus
    iterations: int = 0
    last_prompt: str | None = None


class LayerAdvance(BaseModel):
    """Outcome of moving a template session past its current layer."""

    action: Literal["next_layer", "generate_output"]
    current_layer: str
    next_layer: str | None = None
    layer_info: LayerDefinition | None = None
    layer_history: list[LayerHistoryEntry] = Field(default_factory=list)
    output: dict[str, Any] | None = None
