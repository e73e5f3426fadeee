import base64
import binascii
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recursive_cognition.models import ContentKind, Stimulus

# =============================================================================
# Human Feedback
# =============================================================================


class FeedbackSignal(BaseModel):
    """
    Human correction for a stimulus.

    Either per-framework score deltas (applied to framework weights for
    future cycles only) or a veto that forces the next cycle to retry.
    """
    model_config = ConfigDict(frozen=True)

    stimulus_id: str
    score_deltas: Dict[str, float] = Field(default_factory=dict)
    veto: bool = False
    veto_reason: Optional[str] = None

    feedback_id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("score_deltas")
    @classmethod
    def _deltas_in_range(cls, value: Dict[str, float]) -> Dict[str, float]:
        for name, delta in value.items():
            if not -1.0 <= delta <= 1.0:
                raise ValueError(f"score delta for {name} out of range [-1, 1]: {delta}")
        return value


# =============================================================================
# Operator API
# =============================================================================


class StimulusRequest(BaseModel):
    """
    Body of POST /cycles

    Image content travels as base64 text and is decoded to bytes.
    """
    id: str = Field(min_length=1)
    content: str
    stakeholders: List[str] = Field(default_factory=list)
    content_kind: ContentKind = ContentKind.TEXT
    metadata: Dict[str, str] = Field(default_factory=dict)
    signals: Dict[str, float] = Field(default_factory=dict)

    response: Optional[str] = None  # defaults to the stimulus content
    seed: Optional[int] = None

    def raw_content(self) -> Union[str, bytes]:
        if self.content_kind is not ContentKind.IMAGE:
            return self.content
        try:
            return base64.b64decode(self.content, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Image content must be base64: {e}") from e

    def to_stimulus(self) -> Stimulus:
        return Stimulus(
            id=self.id,
            content=self.raw_content(),
            stakeholders=frozenset(self.stakeholders),
            content_kind=self.content_kind,
            metadata=self.metadata,
            signals=self.signals,
        )
