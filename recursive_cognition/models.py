"""
COGNITION CYCLE MODELS

Immutable value types that flow through one cognition cycle:

- Stimulus: one unit of input requiring ethical assessment
- CandidateResponse: the response under assessment, revised by refinement
- FrameworkScore / EthicalAssessmentReport: output of the assessor
- RefinementDelta: proposed adjustment produced by the refinement stage
- ValidationVerdict / CycleOutcome: terminal results of the self-validator

Mutable cross-cycle state lives in state.CognitiveState.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union


def _frozen_mapping(values: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(values or {}))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


# =============================================================================
# STIMULUS & RESPONSE
# =============================================================================

class ContentKind(str, Enum):
    """Shape of the raw stimulus content"""
    TEXT = "text"
    IMAGE = "image"  # raw bytes
    STRUCTURED = "structured"  # JSON document as a string


@dataclass(frozen=True)
class Stimulus:
    """
    One unit of input. Immutable once created.

    `stakeholders` is the declared stakeholder context used to decide which
    frameworks apply. `signals` carries numeric inputs for signal-driven
    frameworks (harm, benefit, consent, ...).
    """
    id: str
    content: Union[str, bytes]
    stakeholders: FrozenSet[str] = frozenset()
    timestamp: datetime = field(default_factory=_utcnow)
    content_kind: ContentKind = ContentKind.TEXT
    metadata: Mapping[str, str] = field(default_factory=dict)
    signals: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if not self.id:
            raise ValueError("Stimulus id must not be empty")
        kind = ContentKind(self.content_kind)
        if kind is ContentKind.IMAGE and not isinstance(self.content, (bytes, bytearray)):
            raise ValueError("Image stimulus content must be bytes")
        if kind is not ContentKind.IMAGE and not isinstance(self.content, str):
            raise ValueError(f"{kind.value} stimulus content must be str")
        object.__setattr__(self, "content_kind", kind)
        if isinstance(self.content, bytearray):
            object.__setattr__(self, "content", bytes(self.content))
        object.__setattr__(self, "stakeholders", frozenset(self.stakeholders))
        object.__setattr__(self, "metadata", _frozen_mapping(self.metadata))
        object.__setattr__(
            self, "signals",
            _frozen_mapping({k: float(v) for k, v in dict(self.signals).items()})
        )


@dataclass(frozen=True)
class CandidateResponse:
    """
    Response under assessment.

    `adjustments` accumulates, per framework, how far refinement has pushed
    the response towards that framework. Scoring functions may read it.
    """
    content: str
    revision: int = 0
    adjustments: Mapping[str, float] = field(default_factory=dict)
    mitigations: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "adjustments", _frozen_mapping(self.adjustments))
        object.__setattr__(self, "mitigations", tuple(self.mitigations))

    def adjustment_for(self, framework: str) -> float:
        return self.adjustments.get(framework, 0.0)


# =============================================================================
# CLAIMS
# =============================================================================

class ClaimStatus(str, Enum):
    """Authenticity of a historical/cultural claim"""
    AUTHENTIC = "authentic"
    DISPUTED = "disputed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ClaimReference:
    """Reference into Mythos Memory triggered by a framework score"""
    claim_id: str
    marked_unverified: bool = False
    status: Optional[ClaimStatus] = None

    @property
    def resolved(self) -> bool:
        """Only an authentic, unflagged claim counts as resolved (fail-closed)"""
        return self.status is ClaimStatus.AUTHENTIC and not self.marked_unverified


def _as_claim(value: Union[str, ClaimReference]) -> ClaimReference:
    if isinstance(value, ClaimReference):
        return value
    return ClaimReference(claim_id=str(value))


# =============================================================================
# SCORES & REPORTS
# =============================================================================

@dataclass(frozen=True)
class FrameworkScore:
    """
    One framework's verdict on a stimulus/response pair.

    score in [-1, 1] (negative = violation), confidence in [0, 1].
    A confidence of 0 excludes the score from the composite.
    """
    framework: str
    score: float
    confidence: float
    claims: Tuple[ClaimReference, ...] = ()
    error: Optional[str] = None

    def __post_init__(self):
        if not -1.0 <= self.score <= 1.0:
            raise ValueError(f"score out of range [-1, 1]: {self.score}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range [0, 1]: {self.confidence}")
        object.__setattr__(self, "claims", tuple(_as_claim(c) for c in self.claims))

    @classmethod
    def failed(cls, framework: str, error: str) -> "FrameworkScore":
        return cls(framework=framework, score=0.0, confidence=0.0, error=error)

    @property
    def usable(self) -> bool:
        return self.confidence > 0.0

    def with_claims(self, claims: Iterable[ClaimReference]) -> "FrameworkScore":
        return replace(self, claims=tuple(claims))


class ReportFlag(str, Enum):
    CONTESTED = "contested"  # frameworks disagree in sign
    UNRESOLVED_CLAIM = "unresolved_claim"  # a claim is not authentic
    STABLE = "stable"


class AlignmentStatus(str, Enum):
    ALIGNED = "aligned"
    REQUIRES_REVIEW = "requires_review"
    MISALIGNED = "misaligned"


def compute_composite(scores: Iterable[FrameworkScore], weights: Mapping[str, float]) -> float:
    """
    Weighted mean of usable scores, re-normalized by the weights actually used.

    Iteration order is the order of `scores`, so callers passing the report's
    name-ordered sequence always get a bit-identical result.
    """
    numerator = 0.0
    denominator = 0.0
    for item in scores:
        if not item.usable:
            continue
        weight = weights.get(item.framework, 0.0)
        if weight <= 0.0:
            continue
        numerator += weight * item.score
        denominator += weight
    if denominator == 0.0:
        return 0.0
    return max(-1.0, min(1.0, numerator / denominator))


@dataclass(frozen=True)
class EthicalAssessmentReport:
    """
    Reconciled assessment of one response. Immutable once produced.

    `scores` is ordered by framework name; `weights` holds the snapshot
    weights of every scored framework so the composite can be recomputed.
    """
    stimulus_id: str
    scores: Tuple[FrameworkScore, ...]
    composite: float
    flags: FrozenSet[ReportFlag]
    weights: Mapping[str, float] = field(default_factory=dict)
    skipped: Tuple[str, ...] = ()
    response_revision: int = 0

    def __post_init__(self):
        object.__setattr__(self, "scores", tuple(self.scores))
        object.__setattr__(self, "flags", frozenset(self.flags))
        object.__setattr__(self, "weights", _frozen_mapping(self.weights))
        object.__setattr__(self, "skipped", tuple(self.skipped))

    def has_flag(self, flag: ReportFlag) -> bool:
        return flag in self.flags

    def score_for(self, framework: str) -> Optional[FrameworkScore]:
        for item in self.scores:
            if item.framework == framework:
                return item
        return None

    def recompute_composite(self) -> float:
        return compute_composite(self.scores, self.weights)

    @property
    def unresolved_claims(self) -> Tuple[ClaimReference, ...]:
        return tuple(c for s in self.scores for c in s.claims if not c.resolved)

    @property
    def assessed(self) -> bool:
        """At least one framework produced a usable score"""
        return any(s.usable for s in self.scores)

    @property
    def concerns(self) -> Tuple[str, ...]:
        """Frameworks currently reporting a violation"""
        return tuple(s.framework for s in self.scores if s.usable and s.score < 0)

    @property
    def alignment_status(self) -> AlignmentStatus:
        if self.composite < 0:
            return AlignmentStatus.MISALIGNED
        if self.composite >= 0.5 and ReportFlag.STABLE in self.flags:
            return AlignmentStatus.ALIGNED
        return AlignmentStatus.REQUIRES_REVIEW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stimulus_id": self.stimulus_id,
            "composite": self.composite,
            "flags": sorted(f.value for f in self.flags),
            "alignment_status": self.alignment_status.value,
            "response_revision": self.response_revision,
            "skipped": list(self.skipped),
            "concerns": list(self.concerns),
            "scores": [
                {
                    "framework": s.framework,
                    "score": s.score,
                    "confidence": s.confidence,
                    "weight": self.weights.get(s.framework),
                    "error": s.error,
                    "claims": [
                        {
                            "claim_id": c.claim_id,
                            "status": c.status.value if c.status else None,
                            "marked_unverified": c.marked_unverified,
                        }
                        for c in s.claims
                    ],
                }
                for s in self.scores
            ],
        }


# =============================================================================
# REFINEMENT
# =============================================================================

@dataclass(frozen=True)
class RefinementDelta:
    """
    Proposed adjustment to a response.

    adjustments: framework -> amount the response is pushed towards it
    target_scores: framework -> score the adjustment aims to reach
    protected_floors: framework -> lowest acceptable score after refinement
    """
    adjustments: Mapping[str, float] = field(default_factory=dict)
    target_scores: Mapping[str, float] = field(default_factory=dict)
    protected_floors: Mapping[str, float] = field(default_factory=dict)
    mitigations: Tuple[str, ...] = ()
    base_revision: int = 0

    def __post_init__(self):
        object.__setattr__(self, "adjustments", _frozen_mapping(self.adjustments))
        object.__setattr__(self, "target_scores", _frozen_mapping(self.target_scores))
        object.__setattr__(self, "protected_floors", _frozen_mapping(self.protected_floors))
        object.__setattr__(self, "mitigations", tuple(self.mitigations))

    @classmethod
    def empty(cls, base_revision: int = 0, protected_floors: Optional[Mapping[str, float]] = None) -> "RefinementDelta":
        return cls(base_revision=base_revision, protected_floors=protected_floors or {})

    @property
    def is_empty(self) -> bool:
        return not self.adjustments

    def apply(self, response: CandidateResponse) -> CandidateResponse:
        """New revision of `response` with this delta folded in (no-op when empty)"""
        if self.is_empty:
            return response
        merged = dict(response.adjustments)
        for name, amount in self.adjustments.items():
            merged[name] = merged.get(name, 0.0) + amount
        return CandidateResponse(
            content=response.content,
            revision=response.revision + 1,
            adjustments=merged,
            mitigations=response.mitigations + self.mitigations,
        )

    def floors_held(self, report: EthicalAssessmentReport) -> bool:
        for name, floor in self.protected_floors.items():
            item = report.score_for(name)
            if item is not None and item.usable and item.score < floor:
                return False
        return True


# =============================================================================
# VERDICTS
# =============================================================================

class VerdictType(str, Enum):
    ACCEPT = "accept"
    RETRY = "retry"
    ESCALATE = "escalate_to_human"
    REJECT = "reject"


class VerdictReason(str, Enum):
    IMPROVED = "improved"
    ALREADY_SATISFACTORY = "already_satisfactory"
    NOT_IMPROVED = "not_improved"
    REGRESSION = "regression"
    VETOED = "vetoed"
    OSCILLATION = "oscillation"
    UNVERIFIABLE_CLAIM = "unverifiable_claim"
    NO_CONVERGENCE = "no_convergence"


@dataclass(frozen=True)
class ValidationVerdict:
    """Outcome of one self-validation pass"""
    type: VerdictType
    reason: VerdictReason
    frameworks: Tuple[str, ...] = ()

    @classmethod
    def accept(cls, reason: VerdictReason = VerdictReason.IMPROVED) -> "ValidationVerdict":
        return cls(VerdictType.ACCEPT, reason)

    @classmethod
    def retry(cls, reason: VerdictReason, frameworks: Iterable[str] = ()) -> "ValidationVerdict":
        return cls(VerdictType.RETRY, reason, tuple(frameworks))

    @classmethod
    def escalate(cls, reason: VerdictReason, frameworks: Iterable[str] = ()) -> "ValidationVerdict":
        return cls(VerdictType.ESCALATE, reason, tuple(frameworks))

    @classmethod
    def reject(cls, reason: VerdictReason = VerdictReason.NO_CONVERGENCE) -> "ValidationVerdict":
        return cls(VerdictType.REJECT, reason)

    @property
    def is_terminal(self) -> bool:
        return self.type is not VerdictType.RETRY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "reason": self.reason.value,
            "frameworks": list(self.frameworks),
        }


@dataclass(frozen=True)
class TraceEntry:
    """One processing step taken during a cycle"""
    stage: str
    attempt: int
    detail: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "detail", _frozen_mapping(self.detail))


@dataclass(frozen=True)
class CycleOutcome:
    """What the engine hands back to the conversational surface"""
    verdict: ValidationVerdict
    final_report: EthicalAssessmentReport
    refined_response: CandidateResponse
    initial_report: Optional[EthicalAssessmentReport] = None
    retries: int = 0
    trace: Tuple[TraceEntry, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verdict": self.verdict.to_dict(),
            "retries": self.retries,
            "final_report": self.final_report.to_dict(),
            "initial_composite": self.initial_report.composite if self.initial_report else None,
            "refined_response": {
                "content": self.refined_response.content,
                "revision": self.refined_response.revision,
                "adjustments": dict(self.refined_response.adjustments),
                "mitigations": list(self.refined_response.mitigations),
            },
            "trace": [
                {"stage": t.stage, "attempt": t.attempt, "detail": dict(t.detail)}
                for t in self.trace
            ],
        }
