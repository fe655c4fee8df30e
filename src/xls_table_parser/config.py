"""Configuration management for xls table parsing.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
XTP_ prefix, or via a .env file in the working directory.

Environment Variables:
    XTP_LOG_LEVEL: Logging level used by configure_logging (default: INFO)
    XTP_CARDINALITY_WARNING_SCOPE: How often the "more cells than extractors"
        warning is emitted at WARNING level: once per "stage" or once per
        "plan" run (default: stage)
    XTP_MISSING_CELL_POLICY: What a column extractor receives for an absent
        cell: "sentinel" logs a diagnostic and passes a MissingCell, "raise"
        aborts the stage with MissingCellError (default: sentinel)
    XTP_STRICT_CARDINALITY: Abort a stage when a row spans fewer cells than
        there are column extractors (default: true)
    XTP_LOAD_FORMULA_VALUES: Load cached formula results when opening .xlsx
        files (default: true)
"""

import logging
from enum import Enum
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WarningScope(str, Enum):
    """Window in which the cardinality warning is logged only once."""

    STAGE = "stage"
    PLAN = "plan"


class MissingCellPolicy(str, Enum):
    """Handling of a column extractor whose target cell is absent."""

    SENTINEL = "sentinel"
    RAISE = "raise"


class Settings(BaseSettings):
    """Parser settings loaded from environment variables.

    Example .env file:
        XTP_LOG_LEVEL=DEBUG
        XTP_CARDINALITY_WARNING_SCOPE=plan
        XTP_MISSING_CELL_POLICY=raise
    """

    model_config = SettingsConfigDict(
        env_prefix="XTP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL."""

    cardinality_warning_scope: WarningScope = WarningScope.STAGE
    """Scope of the once-only "more cells than extractors" warning."""

    # =========================================================================
    # Extraction Settings
    # =========================================================================

    missing_cell_policy: MissingCellPolicy = MissingCellPolicy.SENTINEL
    """What happens when a column extractor targets an absent cell."""

    strict_cardinality: bool = True
    """Abort a stage on rows narrower than the declared extractors."""

    # =========================================================================
    # Workbook Loading Settings
    # =========================================================================

    load_formula_values: bool = True
    """Load cached formula results alongside formulas for .xlsx files."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level

    def to_safe_dict(self) -> dict[str, Any]:
        """Convert settings to a plain dictionary for logging.

        Returns:
            Dictionary representation of all settings.
        """
        return {
            "log_level": self.log_level,
            "cardinality_warning_scope": self.cardinality_warning_scope.value,
            "missing_cell_policy": self.missing_cell_policy.value,
            "strict_cardinality": self.strict_cardinality,
            "load_formula_values": self.load_formula_values,
        }


# Create the global settings instance
settings = Settings()
