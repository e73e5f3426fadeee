"""
Recursive Cognition Engine Configuration
Single source of truth for thresholds & budgets
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# =========================
# Cycle budgets
# =========================

CYCLE_DEFAULTS = {
    "retry_budget": 3,
    "history_size": 16,
    "claim_lookup_timeout": 2.0,
}

# =========================
# Self-validation thresholds
# =========================

VALIDATION_THRESHOLDS = {
    # consecutive sign flips before escalation (K)
    "oscillation_threshold": 2,

    # a framework falling below this after refinement is a regression
    "regression_floor": -0.3,

    # CONTESTED when one score > +t and another < -t
    "contest_threshold": 0.2,
}

# =========================
# Refinement trade-off policy
# =========================

REFINEMENT_POLICY = {
    "tolerance": 0.1,
    "step": 0.5,
    "min_confidence": 0.5,
    "protected_threshold": 0.5,
    "max_backoff": 3,
}


class EngineConfig(BaseModel):
    """
    Every knob of the cognition cycle.

    Settable at engine construction; defaults come from the tables above.
    """
    model_config = ConfigDict(frozen=True)

    retry_budget: int = Field(default=CYCLE_DEFAULTS["retry_budget"], ge=0)
    history_size: int = Field(default=CYCLE_DEFAULTS["history_size"], ge=1)
    claim_lookup_timeout: float = Field(default=CYCLE_DEFAULTS["claim_lookup_timeout"], gt=0.0)

    oscillation_threshold: int = Field(default=VALIDATION_THRESHOLDS["oscillation_threshold"], ge=1)
    regression_floor: float = Field(default=VALIDATION_THRESHOLDS["regression_floor"], ge=-1.0, le=1.0)
    contest_threshold: float = Field(default=VALIDATION_THRESHOLDS["contest_threshold"], ge=0.0, le=1.0)

    refinement_tolerance: float = Field(default=REFINEMENT_POLICY["tolerance"], ge=0.0, le=2.0)
    refinement_step: float = Field(default=REFINEMENT_POLICY["step"], gt=0.0, le=2.0)
    refinement_min_confidence: float = Field(default=REFINEMENT_POLICY["min_confidence"], ge=0.0, le=1.0)
    protected_threshold: float = Field(default=REFINEMENT_POLICY["protected_threshold"], ge=-1.0, le=1.0)
    max_backoff: int = Field(default=REFINEMENT_POLICY["max_backoff"], ge=0)

    # None lets the executor pick its own pool size
    max_workers: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _floor_below_protection(self) -> "EngineConfig":
        if self.regression_floor >= self.protected_threshold:
            raise ValueError("regression_floor must be below protected_threshold")
        return self

    @classmethod
    def from_env(cls, prefix: str = "RCE_") -> "EngineConfig":
        """
        Build a config from environment variables.

        RCE_RETRY_BUDGET=5 RCE_CLAIM_LOOKUP_TIMEOUT=0.5 ...
        Unset variables keep their defaults.
        """
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        return cls(**values)
