import json
import os
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class ConfigurationError(ValueError):
    pass


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


CONFIG_VERSION = os.getenv("MATCHING_CONFIG_VERSION", "v2.3")
ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")
MATCH_WORKERS = _env_int("MATCH_WORKERS", "1")

DEFAULT_CONFLICT_MATRIX: dict[str, dict[str, float]] = {
    "compromise": {"compromise": 1.0, "solution": 0.9, "emotion": 0.6, "analysis": 0.7, "space": 0.5, "direct": 0.6},
    "solution": {"compromise": 0.9, "solution": 1.0, "emotion": 0.7, "analysis": 0.9, "space": 0.6, "direct": 0.8},
    "emotion": {"compromise": 0.6, "solution": 0.7, "emotion": 1.0, "analysis": 0.5, "space": 0.7, "direct": 0.5},
    "analysis": {"compromise": 0.7, "solution": 0.9, "emotion": 0.5, "analysis": 1.0, "space": 0.6, "direct": 0.7},
    "space": {"compromise": 0.5, "solution": 0.6, "emotion": 0.7, "analysis": 0.6, "space": 1.0, "direct": 0.3},
    "direct": {"compromise": 0.6, "solution": 0.8, "emotion": 0.5, "analysis": 0.7, "space": 0.3, "direct": 1.0},
}


class DirectionalStrategy(str, Enum):
    # 0/1 satisfaction on the ordered relation between the two answers.
    HARD = "hard"
    # alpha/beta multipliers applied to the raw numeric similarity.
    SOFT = "soft"


_SUM_TOLERANCE = 1e-6


class ImportanceWeights(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    not_important: float = Field(default=0.0, ge=0.0)
    somewhat_important: float = Field(default=0.5, ge=0.0)
    important: float = Field(default=1.0, ge=0.0)
    very_important: float = Field(default=2.0, ge=0.0)


class SectionWeights(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    lifestyle: float = Field(default=0.65, ge=0.0, le=1.0)
    personality: float = Field(default=0.35, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _sums_to_one(self):
        if abs(self.lifestyle + self.personality - 1.0) > _SUM_TOLERANCE:
            raise ValueError("section weights must sum to 1.0")
        return self


class MatchingConfig(BaseModel):
    """Immutable tuning for one matching run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = CONFIG_VERSION

    importance_weights: ImportanceWeights = Field(default_factory=ImportanceWeights)
    section_weights: SectionWeights = Field(default_factory=SectionWeights)

    mutuality_alpha: float = Field(default=0.65, ge=0.0, le=1.0)
    relative_threshold_beta: float = Field(default=0.6, ge=0.0, le=1.0)
    absolute_threshold_min: float = Field(default=50.0, ge=0.0, le=100.0)

    neutral_similarity: float = Field(default=0.5, ge=0.0, le=1.0)
    uncertainty_similarity: float = Field(default=0.3, ge=0.0, le=1.0)
    likert_min: int = 1
    likert_max: int = 5

    directional_strategy: DirectionalStrategy = DirectionalStrategy.HARD
    directional_alpha: float = Field(default=1.0, ge=0.0, le=2.0)
    directional_beta: float = Field(default=0.7, ge=0.0, le=1.0)

    love_language_show_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    love_language_receive_weight: float = Field(default=0.4, ge=0.0, le=1.0)

    conflict_overlap_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    conflict_matrix_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    conflict_matrix: dict[str, dict[str, float]] = Field(default_factory=lambda: {k: dict(v) for k, v in DEFAULT_CONFLICT_MATRIX.items()})

    sleep_mismatch_similarity: float = Field(default=0.3, ge=0.0, le=1.0)
    sleep_both_irregular_similarity: float = Field(default=0.6, ge=0.0, le=1.0)

    diagnostic_top_n: int = Field(default=5, ge=0)
    solver_weight_scale: int = Field(default=1000, ge=1)
    solver_max_cardinality: bool = True
    workers: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _check_consistency(self):
        if self.likert_min >= self.likert_max:
            raise ValueError("likert_min must be lower than likert_max")
        if abs(self.love_language_show_weight + self.love_language_receive_weight - 1.0) > _SUM_TOLERANCE:
            raise ValueError("love language show/receive weights must sum to 1.0")
        if abs(self.conflict_overlap_weight + self.conflict_matrix_weight - 1.0) > _SUM_TOLERANCE:
            raise ValueError("conflict overlap/matrix weights must sum to 1.0")

        styles = set(self.conflict_matrix)
        for style, row in self.conflict_matrix.items():
            if set(row) != styles:
                raise ValueError(f"conflict matrix row '{style}' must list every style")
        for style, row in self.conflict_matrix.items():
            for other, value in row.items():
                if not 0.0 <= value <= 1.0:
                    raise ValueError(f"conflict matrix value {style}/{other} must be within [0, 1]")
                if abs(value - self.conflict_matrix[other][style]) > _SUM_TOLERANCE:
                    raise ValueError(f"conflict matrix must be symmetric ({style}/{other})")
        return self

    def importance_weight(self, importance) -> float:
        return float(getattr(self.importance_weights, importance.value, self.importance_weights.somewhat_important))

    def section_weight(self, section) -> float:
        return float(getattr(self.section_weights, section.value))

    def with_overrides(self, overrides: dict[str, Any] | None) -> "MatchingConfig":
        if not overrides:
            return self
        merged = self.model_dump()
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict) and key != "conflict_matrix":
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
        return build_matching_config(merged)


DEFAULT_MATCHING_CONFIG: dict[str, Any] = {
    "version": CONFIG_VERSION,
    "importance_weights": {
        "not_important": _env_float("IMPORTANCE_NOT_IMPORTANT_W", "0.0"),
        "somewhat_important": _env_float("IMPORTANCE_SOMEWHAT_IMPORTANT_W", "0.5"),
        "important": _env_float("IMPORTANCE_IMPORTANT_W", "1.0"),
        "very_important": _env_float("IMPORTANCE_VERY_IMPORTANT_W", "2.0"),
    },
    "section_weights": {
        "lifestyle": _env_float("LIFESTYLE_SECTION_W", "0.65"),
        "personality": _env_float("PERSONALITY_SECTION_W", "0.35"),
    },
    "mutuality_alpha": _env_float("MUTUALITY_ALPHA", "0.65"),
    "relative_threshold_beta": _env_float("RELATIVE_THRESHOLD_BETA", "0.6"),
    "absolute_threshold_min": _env_float("ABSOLUTE_THRESHOLD_MIN", "50"),
    "neutral_similarity": _env_float("NEUTRAL_SIMILARITY", "0.5"),
    "uncertainty_similarity": _env_float("UNCERTAINTY_SIMILARITY", "0.3"),
    "directional_strategy": os.getenv("DIRECTIONAL_STRATEGY", DirectionalStrategy.HARD.value),
    "directional_alpha": _env_float("DIRECTIONAL_ALPHA", "1.0"),
    "directional_beta": _env_float("DIRECTIONAL_BETA", "0.7"),
    "love_language_show_weight": _env_float("LOVE_LANGUAGE_SHOW_W", "0.6"),
    "love_language_receive_weight": _env_float("LOVE_LANGUAGE_RECEIVE_W", "0.4"),
    "conflict_overlap_weight": _env_float("CONFLICT_OVERLAP_W", "0.6"),
    "conflict_matrix_weight": _env_float("CONFLICT_MATRIX_W", "0.4"),
    "sleep_mismatch_similarity": _env_float("SLEEP_MISMATCH_SIMILARITY", "0.3"),
    "sleep_both_irregular_similarity": _env_float("SLEEP_BOTH_IRREGULAR_SIMILARITY", "0.6"),
    "diagnostic_top_n": _env_int("DIAGNOSTIC_TOP_N", "5"),
    "workers": MATCH_WORKERS,
}


def build_matching_config(values: dict[str, Any] | None = None) -> MatchingConfig:
    try:
        return MatchingConfig(**(values or {}))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid matching configuration: {exc}") from exc


def load_matching_config(env_json: str | None = None) -> MatchingConfig:
    values: dict[str, Any] = json.loads(json.dumps(DEFAULT_MATCHING_CONFIG))
    raw = env_json if env_json is not None else os.getenv("MATCHING_CONFIG_JSON", "")
    if raw:
        try:
            overrides = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"MATCHING_CONFIG_JSON is not valid JSON: {exc}") from exc
        if not isinstance(overrides, dict):
            raise ConfigurationError("MATCHING_CONFIG_JSON must be a JSON object")
        return build_matching_config(values).with_overrides(overrides)
    return build_matching_config(values)
