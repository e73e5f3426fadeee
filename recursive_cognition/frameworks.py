"""
REFERENCE FRAMEWORKS

Signal-driven scoring functions. A stimulus carries numeric signals in
[0, 1] (harm, benefit, rights_violation, ...); each framework reads the
signals it cares about, adds whatever refinement has pushed the response
towards it, and clamps to [-1, 1].

A framework that finds none of its signals has no opinion: it returns
confidence 0 and is excluded from the composite.

Claims: when a stimulus lists claim ids in metadata["claims"]
(comma-separated), the cultural framework references them so they get
checked against Mythos Memory.
"""
from typing import Dict, Iterable, Mapping

from recursive_cognition.models import CandidateResponse, FrameworkScore, Stimulus
from recursive_cognition.registry import EthicalFramework, FrameworkRegistry, ScoringFunction

# framework -> (weight, positive signals, negative signals, stakeholder tags)
DEFAULT_FRAMEWORKS: Dict[str, Dict] = {
    "care": {
        "weight": 0.2,
        "positive": ("wellbeing",),
        "negative": ("neglect", "harm"),
        "tags": ("patients", "children", "elderly", "vulnerable"),
        "description": "Attention to the needs of dependent stakeholders",
    },
    "cultural": {
        "weight": 0.1,
        "positive": ("cultural_respect",),
        "negative": ("misrepresentation",),
        "tags": ("*",),
        "description": "Fidelity to historical and cultural record",
    },
    "deontological": {
        "weight": 0.35,
        "positive": ("rights_respected", "consent"),
        "negative": ("rights_violation", "deception"),
        "tags": ("*",),
        "description": "Duties and rights, regardless of outcome",
    },
    "utilitarian": {
        "weight": 0.35,
        "positive": ("benefit",),
        "negative": ("harm",),
        "tags": ("*",),
        "description": "Aggregate benefit minus aggregate harm",
    },
}

CLAIMS_METADATA_KEY = "claims"


def _clamp(value: float) -> float:
    return max(-1.0, min(1.0, value))


def stimulus_claims(stimulus: Stimulus) -> tuple:
    raw = stimulus.metadata.get(CLAIMS_METADATA_KEY, "")
    return tuple(c.strip() for c in raw.split(",") if c.strip())


def signal_scorer(
    name: str,
    positive: Iterable[str] = (),
    negative: Iterable[str] = (),
    reference_claims: bool = False
) -> ScoringFunction:
    """
    Build a scorer: mean(positive signals) - mean(negative signals),
    plus the response's accumulated adjustment for `name`.
    """
    positive = tuple(positive)
    negative = tuple(negative)

    def _mean(signals: Mapping[str, float], keys) -> float:
        values = [signals[k] for k in keys if k in signals]
        return sum(values) / len(values) if values else 0.0

    def scorer(stimulus: Stimulus, response: CandidateResponse, **_) -> FrameworkScore:
        present = [k for k in positive + negative if k in stimulus.signals]
        if not present:
            return FrameworkScore(framework=name, score=0.0, confidence=0.0)

        raw = _mean(stimulus.signals, positive) - _mean(stimulus.signals, negative)
        claims = stimulus_claims(stimulus) if reference_claims else ()
        return FrameworkScore(
            framework=name,
            score=_clamp(raw + response.adjustment_for(name)),
            confidence=min(1.0, len(present) / max(1, len(positive + negative)) + 0.5),
            claims=claims,
        )

    scorer.__name__ = f"{name}_scorer"
    return scorer


def constant_scorer(
    name: str,
    score: float,
    confidence: float = 1.0,
    claims: Iterable[str] = ()
) -> ScoringFunction:
    """Fixed base score, shifted by refinement adjustments"""
    claims = tuple(claims)

    def scorer(stimulus: Stimulus, response: CandidateResponse, **_) -> FrameworkScore:
        return FrameworkScore(
            framework=name,
            score=_clamp(score + response.adjustment_for(name)),
            confidence=confidence,
            claims=claims,
        )

    scorer.__name__ = f"{name}_constant_scorer"
    return scorer


def default_registry() -> FrameworkRegistry:
    registry = FrameworkRegistry()
    for name, params in DEFAULT_FRAMEWORKS.items():
        registry.register(EthicalFramework(
            name=name,
            weight=params["weight"],
            scorer=signal_scorer(
                name,
                positive=params["positive"],
                negative=params["negative"],
                reference_claims=name == "cultural",
            ),
            tags=frozenset(params["tags"]),
            description=params["description"],
        ))
    return registry
