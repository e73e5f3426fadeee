"""
Unit tests for Mythos Memory collaborators
"""

import httpx
import pytest

from recursive_cognition.error_handler import CircuitBreaker, CircuitBreakerOpen
from recursive_cognition.exceptions import ClaimLookupTimeout
from recursive_cognition.models import ClaimStatus
from recursive_cognition.mythos_memory import (
    HistoricalClaim,
    HttpMythosMemory,
    InMemoryMythosMemory,
    ProvenanceData,
    integrity_score,
)


class TestInMemoryMythosMemory:
    """Deterministic in-memory store."""

    def test_integrity_drives_default_status(self):
        """Signed, sourced, attributed, tagged claim → AUTHENTIC; bare claim → DISPUTED."""
        signed = HistoricalClaim(
            claim_id="c1",
            narrative="n",
            source="archive",
            context_tags=("law",),
            provenance=ProvenanceData(document_id="d", author_id="a", signature="s"),
        )
        bare = HistoricalClaim(claim_id="c2", narrative="n")

        assert integrity_score(signed) == 1.0
        assert integrity_score(bare) == 0.0

        store = InMemoryMythosMemory(claims=[signed, bare])
        assert store.lookup_claim("c1", 1.0).status is ClaimStatus.AUTHENTIC
        assert store.lookup_claim("c2", 1.0).status is ClaimStatus.DISPUTED

    def test_unknown_claim(self, memory):
        """Never-seen claim id → UNKNOWN, no provenance."""
        result = memory.lookup_claim("nope", 1.0)

        assert result.status is ClaimStatus.UNKNOWN
        assert result.provenance is None

    def test_revise_known_claim(self, memory):
        """Revision changes the status of a stored claim."""
        memory.revise("claim-authentic", ClaimStatus.DISPUTED)

        assert memory.lookup_claim("claim-authentic", 1.0).status is ClaimStatus.DISPUTED

    def test_revise_unknown_claim_raises(self, memory):
        """Only stored claims can be revised."""
        with pytest.raises(KeyError):
            memory.revise("nope", ClaimStatus.AUTHENTIC)

    def test_claims_by_context(self, memory):
        """Claims are indexed by cultural context tag."""
        claims = memory.claims_by_context("law")

        assert [c.claim_id for c in claims] == ["claim-authentic"]

    def test_latency_beyond_timeout_raises(self):
        """Simulated latency above the timeout → ClaimLookupTimeout after waiting the timeout."""
        slept = []
        store = InMemoryMythosMemory(latency=5.0, sleep=slept.append)
        store.set_status("c1", ClaimStatus.AUTHENTIC)

        with pytest.raises(ClaimLookupTimeout):
            store.lookup_claim("c1", 0.5)

        assert slept == [0.5]


def transport_for(routes):
    def handler(request: httpx.Request) -> httpx.Response:
        claim_id = request.url.path.rsplit("/", 1)[-1]
        reply = routes.get(claim_id)
        if callable(reply):
            return reply(request)
        if reply is None:
            return httpx.Response(404)
        return httpx.Response(200, json=reply)

    return httpx.MockTransport(handler)


class TestHttpMythosMemory:
    """HTTP adapter over httpx."""

    def make(self, routes, breaker=None):
        client = httpx.Client(base_url="http://mythos.test", transport=transport_for(routes))
        return HttpMythosMemory("http://mythos.test", client=client, breaker=breaker)

    def test_authentic_status_parsed(self):
        """200 with status → parsed ClaimLookup."""
        memory = self.make({"c1": {"status": "AUTHENTIC", "provenance": {"document_id": "d1"}}})

        result = memory.lookup_claim("c1", 1.0)

        assert result.status is ClaimStatus.AUTHENTIC
        assert result.provenance == {"document_id": "d1"}

    def test_404_is_unknown(self):
        """Missing claim → UNKNOWN."""
        memory = self.make({})

        assert memory.lookup_claim("missing", 1.0).status is ClaimStatus.UNKNOWN

    def test_unrecognized_status_is_unknown(self):
        """Garbage status value → UNKNOWN."""
        memory = self.make({"c1": {"status": "probably"}})

        assert memory.lookup_claim("c1", 1.0).status is ClaimStatus.UNKNOWN

    def test_timeout_maps_to_claim_lookup_timeout(self):
        """httpx timeout → ClaimLookupTimeout."""
        def slow(request):
            raise httpx.ReadTimeout("too slow", request=request)

        memory = self.make({"c1": slow})

        with pytest.raises(ClaimLookupTimeout):
            memory.lookup_claim("c1", 0.1)

    def test_breaker_opens_after_failures(self):
        """Repeated 500s open the breaker; further lookups fail fast."""
        calls = []

        def broken(request):
            calls.append(request)
            return httpx.Response(500)

        memory = self.make({"c1": broken}, breaker=CircuitBreaker(failure_threshold=2, timeout=60))

        for _ in range(2):
            with pytest.raises(httpx.HTTPStatusError):
                memory.lookup_claim("c1", 1.0)

        with pytest.raises(CircuitBreakerOpen):
            memory.lookup_claim("c1", 1.0)

        assert memory.breaker.state == "open"
        assert len(calls) == 2
