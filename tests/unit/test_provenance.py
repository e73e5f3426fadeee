"""
Unit tests for the Provenance Validator
"""

import threading

from recursive_cognition.error_handler import CircuitBreakerOpen
from recursive_cognition.models import ClaimReference, ClaimStatus, FrameworkScore
from recursive_cognition.mythos_memory import ClaimLookup, InMemoryMythosMemory
from recursive_cognition.provenance import ProvenanceValidator


class BlockingMemory:
    """Lookups hang until released."""

    def __init__(self):
        self.release = threading.Event()

    def lookup_claim(self, claim_id, timeout):
        self.release.wait(5.0)
        return ClaimLookup(status=ClaimStatus.AUTHENTIC)


class RaisingMemory:
    def __init__(self, error):
        self.error = error

    def lookup_claim(self, claim_id, timeout):
        raise self.error


class TestProvenanceValidator:
    """Fail-closed claim resolution."""

    def test_authentic_and_disputed(self, memory):
        """Statuses come straight from Mythos Memory."""
        with ProvenanceValidator(memory, timeout=1.0) as provenance:
            assert provenance.validate_claim("claim-authentic") is ClaimStatus.AUTHENTIC
            assert provenance.validate_claim(ClaimReference("claim-disputed")) is ClaimStatus.DISPUTED

    def test_results_cached_within_cycle(self, memory):
        """Second validation of the same claim → no new lookup."""
        with ProvenanceValidator(memory, timeout=1.0) as provenance:
            provenance.validate_claim("claim-authentic")
            provenance.validate_claim("claim-authentic")

            assert memory.lookup_count == 1
            assert provenance.cached == {"claim-authentic": ClaimStatus.AUTHENTIC}

    def test_duplicates_looked_up_once(self, memory):
        """Repeated ids in one batch → one lookup each."""
        with ProvenanceValidator(memory, timeout=1.0) as provenance:
            statuses = provenance.validate_all(["claim-authentic", "claim-authentic", "nope"])

        assert statuses == {"claim-authentic": ClaimStatus.AUTHENTIC, "nope": ClaimStatus.UNKNOWN}
        assert memory.lookup_count == 2

    def test_fresh_validator_sees_revision(self, memory):
        """A claim revised between cycles is re-checked by the next cycle's validator."""
        with ProvenanceValidator(memory, timeout=1.0) as provenance:
            assert provenance.validate_claim("claim-authentic") is ClaimStatus.AUTHENTIC

        memory.revise("claim-authentic", ClaimStatus.DISPUTED)

        with ProvenanceValidator(memory, timeout=1.0) as provenance:
            assert provenance.validate_claim("claim-authentic") is ClaimStatus.DISPUTED

    def test_simulated_timeout_is_unknown(self):
        """Memory raising ClaimLookupTimeout → UNKNOWN."""
        store = InMemoryMythosMemory(latency=10.0, sleep=lambda seconds: None)
        store.set_status("c1", ClaimStatus.AUTHENTIC)

        with ProvenanceValidator(store, timeout=0.1) as provenance:
            assert provenance.validate_claim("c1") is ClaimStatus.UNKNOWN

    def test_hanging_lookup_times_out(self):
        """Lookup exceeding the deadline → UNKNOWN without waiting for it."""
        blocking = BlockingMemory()
        try:
            with ProvenanceValidator(blocking, timeout=0.05) as provenance:
                assert provenance.validate_claim("c1") is ClaimStatus.UNKNOWN
        finally:
            blocking.release.set()

    def test_collaborator_errors_are_unknown(self):
        """Open breaker or arbitrary failure → UNKNOWN, never raised."""
        for error in (CircuitBreakerOpen("open"), ConnectionError("refused")):
            with ProvenanceValidator(RaisingMemory(error), timeout=1.0) as provenance:
                assert provenance.validate_claim("c1") is ClaimStatus.UNKNOWN

    def test_missing_memory_is_unknown(self):
        """No Mythos Memory configured → every claim UNKNOWN."""
        with ProvenanceValidator(None, timeout=1.0) as provenance:
            assert provenance.validate_claim("c1") is ClaimStatus.UNKNOWN

    def test_annotate_attaches_statuses(self, memory):
        """annotate() copies the score with resolved claim statuses."""
        score = FrameworkScore(
            framework="cultural",
            score=0.3,
            confidence=1.0,
            claims=("claim-authentic", ClaimReference("claim-disputed", marked_unverified=True)),
        )

        with ProvenanceValidator(memory, timeout=1.0) as provenance:
            annotated = provenance.annotate(score)

        authentic, disputed = annotated.claims
        assert authentic.resolved
        assert disputed.status is ClaimStatus.DISPUTED
        assert disputed.marked_unverified
        assert score.claims[0].status is None

    def test_marked_unverified_never_resolves(self, memory):
        """Authentic claim explicitly marked unverified stays unresolved."""
        score = FrameworkScore(
            framework="cultural",
            score=0.3,
            confidence=1.0,
            claims=(ClaimReference("claim-authentic", marked_unverified=True),),
        )

        with ProvenanceValidator(memory, timeout=1.0) as provenance:
            annotated = provenance.annotate(score)

        assert annotated.claims[0].status is ClaimStatus.AUTHENTIC
        assert not annotated.claims[0].resolved
