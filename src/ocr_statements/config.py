"""
Configuration management.

This module defines ALL configuration for the statement extractor.
All config keys are defined here; no other module should invent config keys.

Key invariants:
- The review threshold and signal weights are policy, not contract
- A missing config file means defaults, not an error
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

from .confidence.scorer import ConfidenceThresholds, ScoringWeights


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class PaperlessConfig:
    """Paperless-ngx configuration (optional OCR text source)."""

    base_url: str = ""
    token: str = ""
    filter_tag: str = "finance/statements"

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)


@dataclass
class ScoringConfig:
    """Confidence policy.

    ``weights`` overrides individual ScoringWeights fields by name, e.g.
    ``{"known_merchant": 0.25}``.
    """

    review_threshold: float = 0.70
    weights: dict[str, float] = field(default_factory=dict)

    def to_thresholds(self) -> ConfidenceThresholds:
        return ConfidenceThresholds(review_threshold=self.review_threshold)

    def to_weights(self) -> ScoringWeights:
        defaults = ScoringWeights()
        overrides = {}
        for f in fields(ScoringWeights):
            if f.name in self.weights:
                # Keep each field's type (Decimal limits, int lengths, float weights)
                kind = type(getattr(defaults, f.name))
                overrides[f.name] = kind(str(self.weights[f.name]))
        return ScoringWeights(**overrides)


@dataclass
class Config:
    """Application configuration.

    All configuration is centralized here. No other module should define
    configuration keys or defaults.
    """

    paperless: PaperlessConfig = field(default_factory=PaperlessConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    state_db_path: Path = field(default_factory=lambda: Path("data/patterns.db"))
    # Year for statement dates printed without one (None: current year)
    statement_year: Optional[int] = None

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not 0.0 <= self.scoring.review_threshold <= 1.0:
            errors.append("scoring.review_threshold must be between 0 and 1")

        known = {f.name for f in fields(ScoringWeights)}
        for key in self.scoring.weights:
            if key not in known:
                errors.append(f"scoring.weights.{key} is not a known signal weight")

        if self.statement_year is not None and not 1900 <= self.statement_year <= 2100:
            errors.append("statement_year must be between 1900 and 2100")

        if self.paperless.base_url and not self.paperless.token:
            errors.append("paperless.token is required when paperless.base_url is set")

        return errors


def _optional_int(value) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(f"Expected an integer, got {value!r}") from e


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - OCR_STATEMENTS_STATE_DB
    - OCR_STATEMENTS_REVIEW_THRESHOLD
    - OCR_STATEMENTS_YEAR
    - PAPERLESS_URL
    - PAPERLESS_TOKEN
    """
    if config_path.exists():
        with open(config_path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigValidationError(f"Invalid YAML in {config_path}: {e}") from e
    else:
        data = {}

    # Paperless config
    paperless_data = data.get("paperless") or {}
    paperless = PaperlessConfig(
        base_url=os.environ.get("PAPERLESS_URL", paperless_data.get("base_url") or ""),
        token=os.environ.get("PAPERLESS_TOKEN", paperless_data.get("token") or ""),
        filter_tag=paperless_data.get("filter_tag", "finance/statements"),
    )

    # Scoring config
    scoring_data = data.get("scoring") or {}
    review_threshold = scoring_data.get("review_threshold", 0.70)
    threshold_env = os.environ.get("OCR_STATEMENTS_REVIEW_THRESHOLD", "")
    if threshold_env:
        try:
            review_threshold = float(threshold_env)
        except ValueError as e:
            raise ConfigValidationError(
                f"OCR_STATEMENTS_REVIEW_THRESHOLD must be a number: {threshold_env!r}"
            ) from e

    scoring = ScoringConfig(
        review_threshold=float(review_threshold),
        weights=dict(scoring_data.get("weights") or {}),
    )

    # State DB
    state_db = os.environ.get(
        "OCR_STATEMENTS_STATE_DB", data.get("state_db_path", "data/patterns.db")
    )

    statement_year = _optional_int(
        os.environ.get("OCR_STATEMENTS_YEAR", data.get("statement_year"))
    )

    return Config(
        paperless=paperless,
        scoring=scoring,
        state_db_path=Path(state_db),
        statement_year=statement_year,
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# OCR statement extractor configuration

# Learned merchant patterns and the correction log
state_db_path: "data/patterns.db"

# Year for statement dates printed as month/day only (null: current year)
statement_year: null

# Confidence policy
scoring:
  review_threshold: 0.70                   # Below this: needs review
  weights: {}                              # Override signal weights, e.g. known_merchant: 0.25

# Optional: read OCR text from Paperless-ngx
paperless:
  base_url: null                           # e.g. "http://localhost:8000"
  token: null
  filter_tag: "finance/statements"
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
