"""
Pytest Configuration and Fixtures

Shared builders for registries, stimuli and a deterministic Mythos Memory.
"""
import pytest

from recursive_cognition.config import EngineConfig
from recursive_cognition.frameworks import constant_scorer
from recursive_cognition.models import ClaimStatus, Stimulus
from recursive_cognition.mythos_memory import HistoricalClaim, InMemoryMythosMemory, ProvenanceData
from recursive_cognition.registry import EthicalFramework, FrameworkRegistry


@pytest.fixture
def config() -> EngineConfig:
    """Explicit config so tests do not depend on defaults drifting."""
    return EngineConfig(
        retry_budget=3,
        history_size=4,
        claim_lookup_timeout=0.2,
        oscillation_threshold=2,
        regression_floor=-0.3,
        contest_threshold=0.2,
    )


@pytest.fixture
def make_registry():
    """
    Build a registry of constant-score frameworks.

        make_registry(a=(0.5, 0.4), b=(0.3, -0.6))
        make_registry(a=(0.5, 0.4, {"tags": {"patients"}, "claims": ["c1"]}))
    """
    def _make(**frameworks) -> FrameworkRegistry:
        registry = FrameworkRegistry()
        for name, params in frameworks.items():
            weight, score = params[0], params[1]
            extra = params[2] if len(params) > 2 else {}
            registry.register(EthicalFramework(
                name=name,
                weight=weight,
                scorer=constant_scorer(
                    name,
                    score,
                    confidence=extra.get("confidence", 1.0),
                    claims=extra.get("claims", ()),
                ),
                tags=frozenset(extra.get("tags", {"*"})),
            ))
        return registry

    return _make


@pytest.fixture
def make_stimulus():
    def _make(stimulus_id: str = "stim-1", stakeholders=("public",), **kwargs) -> Stimulus:
        return Stimulus(
            id=stimulus_id,
            content=kwargs.pop("content", "Should the city close the library on Sundays?"),
            stakeholders=frozenset(stakeholders),
            **kwargs,
        )

    return _make


@pytest.fixture
def memory() -> InMemoryMythosMemory:
    """Mythos Memory with one authentic and one disputed claim."""
    store = InMemoryMythosMemory(claims=[
        HistoricalClaim(
            claim_id="claim-authentic",
            narrative="The charter was signed in 1215",
            source="National Archives",
            context_tags=("law",),
            provenance=ProvenanceData(
                document_id="doc-1",
                author_id="archivist",
                timestamp=1700000000,
                signature="sig-1",
            ),
        ),
        HistoricalClaim(
            claim_id="claim-disputed",
            narrative="The founder never existed",
            provenance=ProvenanceData(document_id="doc-2"),
        ),
    ])
    assert store.lookup_claim("claim-authentic", 1.0).status is ClaimStatus.AUTHENTIC
    assert store.lookup_claim("claim-disputed", 1.0).status is ClaimStatus.DISPUTED
    store.lookup_count = 0
    return store
