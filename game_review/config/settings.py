"""
Configuration settings for the Game Review application, powered by Pydantic.

This module centralizes all tunable parameters, default values, and configuration
schemas. Using Pydantic allows for type-safe, self-documenting configuration
that can be loaded from environment variables, providing a clear separation of
configuration from code.
"""
from typing import Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Nested Models for Configuration Schemas ---

class ClassificationThresholdsModel(BaseModel):
    """
    Defines the Centipawn Loss (CPL) and win-chance thresholds of the
    classification ladder.

    A move is placed in the first tier (from blunder downwards) whose CPL or
    win-chance threshold it exceeds. Thresholds are exclusive: a loss equal to
    a threshold stays in the tier below it.
    """
    good: int = Field(10, description="CPL above this is at best 'Good'.")
    inaccuracy: int = Field(30, description="CPL above this is an 'Inaccuracy'.")
    mistake: int = Field(100, description="CPL above this is a 'Mistake'.")
    blunder: int = Field(250, description="CPL above this is a 'Blunder'.")

    inaccuracy_win_chance: float = Field(10.0, description="Win-chance loss (0-100 scale) above this is an 'Inaccuracy'.")
    mistake_win_chance: float = Field(20.0, description="Win-chance loss above this is a 'Mistake'.")
    blunder_win_chance: float = Field(30.0, description="Win-chance loss above this is a 'Blunder'.")

    book_max_cpl: int = Field(25, description="Maximum CPL for a move inside the opening horizon to count as 'Book'.")
    best_max_cpl: int = Field(10, description="The engine's preferred move is 'Best' up to this CPL.")

    lost_position_blunder_eval: int = Field(-500, description="Below this pre-move score a nominal blunder is downgraded.")
    lost_position_good_max_cpl: int = Field(100, description="A downgraded blunder with CPL up to this becomes 'Good'.")
    lost_position_mistake_eval: int = Field(-400, description="Below this pre-move score a nominal mistake may be downgraded.")
    lost_position_inaccuracy_max_cpl: int = Field(150, description="A downgraded mistake with CPL up to this becomes an 'Inaccuracy'.")

    @model_validator(mode='after')
    def validate_thresholds_are_sorted(self) -> 'ClassificationThresholdsModel':
        """Ensures that CPL and win-chance thresholds are sorted in ascending order."""
        cpl_values = [self.good, self.inaccuracy, self.mistake, self.blunder]
        wc_values = [self.inaccuracy_win_chance, self.mistake_win_chance, self.blunder_win_chance]
        for values in (cpl_values, wc_values):
            if not all(values[i] <= values[i + 1] for i in range(len(values) - 1)):
                raise ValueError("Configuration error: Classification thresholds must be sorted.")
        return self

class BrilliantMoveCriteriaModel(BaseModel):
    """Defines the criteria for a move to be classified as 'Brilliant' (!!)."""
    min_net_sacrifice: int = Field(2, description="Net material given up (in pawns) must be at least this.")
    max_cpl: int = Field(15, description="A move's CPL cannot exceed this to be considered for brilliance.")
    min_eval_before: int = Field(-300, description="The pre-move score must be strictly above this (not already lost).")
    max_eval_before: int = Field(600, description="The pre-move score must be strictly below this (not already winning).")
    min_eval_after: int = Field(-50, description="The post-move score must be strictly above this (the sacrifice is sound).")

class GreatMoveCriteriaModel(BaseModel):
    """Defines the criteria for a move to be classified as a 'Great Move' (!)."""
    max_cpl: int = Field(10, description="A move's CPL cannot exceed this to be considered great.")
    min_second_best_gap: int = Field(150, description="The second-best line must be at least this much worse.")
    min_eval_before: int = Field(-200, description="The pre-move score must be strictly above this.")

class AccuracyConstantsModel(BaseModel):
    """Constants used in the formula to convert ACPL to an accuracy percentage."""
    const_a: float = 103.1668
    const_b: float = -0.004354
    const_c: float = -3.1668

class OpeningSettingsModel(BaseModel):
    """Controls how far into the game a cheap move may be labelled 'Book'."""
    default_opening_ply_limit: int = Field(8, description="Opening horizon (in plies) for games without an ECO code.")
    eco_opening_ply_limit: int = Field(12, description="Opening horizon (in plies) for games tagged with an ECO code.")

class PassSettings(BaseModel):
    """Search parameters for the two analysis passes."""
    primary_depth: int = Field(18, description="Search depth for the before/after evaluation of every move.")
    primary_timeout_ms: int = Field(8000, description="Per-request deadline for the evaluation pass.")
    secondary_depth: int = Field(14, description="Search depth for the two-line lookup used by the 'Great' check.")
    secondary_timeout_ms: int = Field(5000, description="Per-request deadline for the secondary lookup.")

class AnalysisSettings(BaseModel):
    """Groups all settings related to the core chess analysis logic."""
    mate_score_equivalent_cp: int = Field(10000, description="The centipawn value a mate in one is measured against.")
    mate_distance_penalty_cp: int = Field(10, description="Centipawns subtracted per ply of mate distance.")
    win_chance_coefficient: float = Field(0.00368208, description="Slope of the logistic centipawn-to-win-chance curve.")

    passes: PassSettings = Field(default_factory=PassSettings)
    opening: OpeningSettingsModel = Field(default_factory=OpeningSettingsModel)
    classification_thresholds: ClassificationThresholdsModel = Field(default_factory=ClassificationThresholdsModel)
    brilliant_move: BrilliantMoveCriteriaModel = Field(default_factory=BrilliantMoveCriteriaModel)
    great_move: GreatMoveCriteriaModel = Field(default_factory=GreatMoveCriteriaModel)
    accuracy: AccuracyConstantsModel = Field(default_factory=AccuracyConstantsModel)

class EngineSettings(BaseModel):
    """Configuration for the evaluation engine process."""
    path: Optional[str] = Field(None, description="The file path to the Stockfish executable. Searched for when unset.")
    hash_mb: int = Field(32, description="Transposition table size sent during the handshake.")
    handshake_timeout_ms: int = Field(10000, description="How long to wait for the engine to become ready.")
    default_depth: int = Field(18, description="Search depth used when a request gives neither depth nor time.")
    default_timeout_ms: int = Field(8000, description="Per-request deadline used when a request does not give one.")

# --- Main Application Settings Class ---

class Settings(BaseSettings):
    """
    Main configuration class for the application.

    It loads settings from environment variables with the prefix 'GAME_REVIEW_'.
    Nested models can be configured using a double underscore delimiter, e.g.,
    `GAME_REVIEW_ANALYSIS_SETTINGS__PASSES__PRIMARY_DEPTH=20`.
    """
    model_config = SettingsConfigDict(env_prefix='GAME_REVIEW_', env_nested_delimiter='__')

    analysis_settings: AnalysisSettings = Field(default_factory=AnalysisSettings)
    engine_settings: EngineSettings = Field(default_factory=EngineSettings)
    default_log_level: str = "INFO"

# A singleton instance of the settings, accessible throughout the application.
settings = Settings()
