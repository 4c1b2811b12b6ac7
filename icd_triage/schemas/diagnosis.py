"""
Diagnosis Candidate Schemas
Pydantic models for classifier candidates, ranking options and scores.

Upstream payloads use camelCase keys (``validationError``,
``maxResults``); both spellings are accepted.
"""

from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel, to_snake

from icd_triage.core.enums import DiagnosisPriority, DiagnosisStatus
from icd_triage.utils.logging import get_logger

logger = get_logger(__name__)


class Candidate(BaseModel):
    """
    Diagnosis suggestion produced by the upstream classifier.

    The validation fields are attached by the validation service before
    ranking; ``priority`` is overwritten by the ranking pipeline.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: str
    description: str
    confidence: float
    status: Union[DiagnosisStatus, str]
    evidence: str = ""
    priority: DiagnosisPriority = DiagnosisPriority.SECONDARY

    validated: Optional[bool] = None
    validation_error: Optional[str] = None
    official_description: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> Any:
        """Known statuses become enum members, anything else stays a string."""
        if isinstance(v, str):
            try:
                return DiagnosisStatus(v.strip().lower())
            except ValueError:
                return v
        return v

    @field_validator("evidence", mode="before")
    @classmethod
    def coerce_evidence(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def has_validation_failure(self) -> bool:
        """Explicitly rejected by the validation service."""
        return self.validated is False and bool(self.validation_error)


class ScoredCandidate(Candidate):
    """Candidate with its weighted priority score attached."""

    priority_score: float


class ScoringWeights(BaseModel):
    """Weights of the six scoring components. Each must be non-negative."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    confidence: float = Field(default=0.30, ge=0.0)
    status: float = Field(default=0.25, ge=0.0)
    specificity: float = Field(default=0.15, ge=0.0)
    frequency: float = Field(default=0.15, ge=0.0)
    code_type: float = Field(default=0.10, ge=0.0)
    acute: float = Field(default=0.05, ge=0.0)

    @property
    def total(self) -> float:
        return (
            self.confidence
            + self.status
            + self.specificity
            + self.frequency
            + self.code_type
            + self.acute
        )


class RankingOptions(BaseModel):
    """
    Options for the ranking pipeline.

    ``weights`` may be given partially; missing weights keep their defaults.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_results: int = Field(default=12, ge=1)  # CMS-1500 diagnosis lines
    min_confidence: float = 0.3
    enable_acute_boost: bool = True
    enable_z_code_filtering: bool = True
    weights: ScoringWeights = Field(default_factory=ScoringWeights)

    @classmethod
    def from_overrides(
        cls,
        options: Union["RankingOptions", Mapping[str, Any], None] = None,
    ) -> "RankingOptions":
        """
        Build options from a partial mapping.

        Unusable values fall back to their defaults instead of raising.
        """
        if options is None:
            return cls()
        if isinstance(options, RankingOptions):
            return options

        data = dict(options)
        weights = data.get("weights")
        if weights is not None and not isinstance(weights, (Mapping, ScoringWeights)):
            logger.warning(f"Ignoring ranking weights of type {type(weights).__name__}")
            data.pop("weights")
        elif isinstance(weights, Mapping):
            data["weights"] = dict(weights)

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            for error in e.errors():
                loc = error["loc"]
                logger.warning(
                    f"Invalid ranking option {'.'.join(str(p) for p in loc)}: "
                    f"{error['msg']}; using default"
                )
                if len(loc) >= 2 and loc[0] == "weights" and isinstance(data.get("weights"), dict):
                    _drop_key(data["weights"], str(loc[1]))
                else:
                    _drop_key(data, str(loc[0]))
            return cls.model_validate(data)


def _drop_key(data: dict, key: str) -> None:
    # Error locations are reported by alias; input may use either spelling.
    data.pop(key, None)
    data.pop(to_snake(key), None)
    data.pop(to_camel(key), None)


class ScoreBreakdown(BaseModel):
    """Per-component contributions to a candidate's priority score."""

    confidence: float
    status: float
    specificity: float
    frequency: float
    code_type: float
    acute: float
    total: float

    def components(self) -> dict[str, float]:
        """The six weighted components, without the total."""
        return self.model_dump(exclude={"total"})
