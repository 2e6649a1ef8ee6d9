# eval_bar/config/settings.py
"""
Configuration settings for the evaluation bar, powered by Pydantic.

This module centralizes all tunable parameters: which engine builds to try and
how long to wait for them, the search budget of a single evaluation, and the
constants that shape the bar. Settings can be loaded from environment
variables, keeping configuration separate from code.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Nested Models for Configuration Schemas ---

class EngineSettings(BaseModel):
    """Configuration for the shared engine process and its fallback builds."""
    compatible_candidates: List[str] = Field(
        default_factory=lambda: ["stockfish-lite-single", "stockfish-asm"],
        description="Engine builds tried in order, most broadly compatible first. Paths or names on PATH.",
    )
    threaded_candidate: Optional[str] = Field(
        "stockfish",
        description="Multi-threaded build, appended last and only on hosts that support it.",
    )
    force_threaded: Optional[bool] = Field(
        None, description="Overrides the host capability probe for the threaded build when set."
    )
    init_timeout_s: float = Field(
        2.5, gt=0, description="Seconds a started candidate has to acknowledge the UCI handshake."
    )

class SearchSettings(BaseModel):
    """Bounds for a single interactive evaluation."""
    movetime_ms: int = Field(250, gt=0, description="Time budget passed to 'go movetime'.")
    safety_timeout_s: float = Field(
        2.6, gt=0, description="Seconds after which 'thinking' is cleared if no bestmove arrived."
    )
    default_depth: int = Field(16, description="Depth hint accepted from consumers. The movetime budget is the real bound.")

    @model_validator(mode='after')
    def validate_safety_exceeds_budget(self) -> 'SearchSettings':
        """The safety timer must not fire before the engine's own time budget has elapsed."""
        if self.safety_timeout_s * 1000 <= self.movetime_ms:
            raise ValueError("Configuration error: safety_timeout_s must exceed the movetime budget.")
        return self

class DisplaySettings(BaseModel):
    """Constants shaping the evaluation bar."""
    scale_cp: float = Field(400.0, gt=0, description="Centipawn scale of the tanh compression.")
    cp_cap: int = Field(4000, gt=0, description="Centipawn magnitude beyond which the bar no longer moves.")
    min_fraction: float = Field(0.01, description="Lower bound of White's share of the bar.")
    max_fraction: float = Field(0.99, description="Upper bound of White's share of the bar.")
    height: int = Field(520, gt=0)
    width: int = Field(24, gt=0)

    @model_validator(mode='after')
    def validate_fraction_bounds(self) -> 'DisplaySettings':
        if not 0.0 < self.min_fraction < 0.5 < self.max_fraction < 1.0:
            raise ValueError("Configuration error: fraction bounds must satisfy 0 < min < 0.5 < max < 1.")
        return self

# --- Main Application Settings Class ---

class Settings(BaseSettings):
    """
    Main configuration class for the application.

    It loads settings from environment variables with the prefix 'EVAL_BAR_'.
    Nested models can be configured using a double underscore delimiter, e.g.,
    `EVAL_BAR_SEARCH__MOVETIME_MS=500`.
    """
    model_config = SettingsConfigDict(env_prefix='EVAL_BAR_', env_nested_delimiter='__')

    engine: EngineSettings = Field(default_factory=EngineSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    log_level: str = "INFO"
    trace_engine_io: bool = False

# A singleton instance of the settings, used when no explicit settings are passed.
settings = Settings()
