"""
MYTHOS MEMORY - Claim Lookup Collaborators

The engine only consumes one operation from Mythos Memory:

    lookup_claim(claim_id, timeout) -> ClaimLookup(status, provenance)

Implementations must be safe to call concurrently and must respect the
caller-supplied timeout.

Implementations:
- InMemoryMythosMemory: deterministic store of historical claims, used in
  tests and demos. Claims can be revised between cycles.
- HttpMythosMemory: client for a remote knowledge service
  (GET /claims/{claim_id}), guarded by a circuit breaker.
"""
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Tuple, runtime_checkable

import httpx

from recursive_cognition.error_handler import CircuitBreaker
from recursive_cognition.exceptions import ClaimLookupTimeout
from recursive_cognition.logging_config import get_logger
from recursive_cognition.models import ClaimStatus

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClaimLookup:
    """Answer of a Mythos Memory lookup. `provenance` is opaque to the engine."""
    status: ClaimStatus
    provenance: Any = None


@runtime_checkable
class MythosMemory(Protocol):
    def lookup_claim(self, claim_id: str, timeout: float) -> ClaimLookup:
        ...


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

@dataclass(frozen=True)
class ProvenanceData:
    document_id: str
    author_id: str = ""
    timestamp: int = 0
    signature: Optional[str] = None


@dataclass(frozen=True)
class HistoricalClaim:
    """A historical/cultural assertion and where it came from"""
    claim_id: str
    narrative: str
    source: str = ""
    context_tags: Tuple[str, ...] = ()
    provenance: ProvenanceData = field(default_factory=lambda: ProvenanceData(document_id=""))

    def __post_init__(self):
        object.__setattr__(self, "context_tags", tuple(self.context_tags))


# Fraction of integrity checks a claim must pass to be considered authentic
AUTHENTIC_INTEGRITY = 0.75


def integrity_score(claim: HistoricalClaim) -> float:
    """
    Share of integrity checks the claim passes:
    signed, sourced, attributed, and placed in a cultural context.
    """
    checks = [
        bool(claim.provenance.signature),
        bool(claim.source),
        bool(claim.provenance.author_id),
        bool(claim.context_tags),
    ]
    return sum(checks) / len(checks)


class InMemoryMythosMemory:
    """
    Deterministic Mythos Memory.

    A claim's status is either set explicitly or derived from its
    integrity score. `latency` simulates a slow backend: a lookup whose
    latency exceeds the caller's timeout raises ClaimLookupTimeout after
    waiting for the timeout.
    """

    def __init__(
        self,
        claims: Iterable[HistoricalClaim] = (),
        latency: float = 0.0,
        sleep: Callable[[float], None] = time.sleep
    ):
        self._claims: Dict[str, HistoricalClaim] = {}
        self._statuses: Dict[str, ClaimStatus] = {}
        self._lock = threading.Lock()
        self._sleep = sleep
        self.latency = latency
        self.lookup_count = 0
        for claim in claims:
            self.add_claim(claim)

    def add_claim(self, claim: HistoricalClaim, status: Optional[ClaimStatus] = None) -> None:
        if status is None:
            score = integrity_score(claim)
            status = ClaimStatus.AUTHENTIC if score >= AUTHENTIC_INTEGRITY else ClaimStatus.DISPUTED
        with self._lock:
            self._claims[claim.claim_id] = claim
            self._statuses[claim.claim_id] = ClaimStatus(status)

    def set_status(self, claim_id: str, status: ClaimStatus) -> None:
        """Record a status for a claim id, creating a bare claim if needed"""
        with self._lock:
            self._claims.setdefault(claim_id, HistoricalClaim(claim_id=claim_id, narrative=""))
            self._statuses[claim_id] = ClaimStatus(status)

    def revise(self, claim_id: str, status: ClaimStatus) -> None:
        """Change the status of a known claim (takes effect from the next cycle)"""
        with self._lock:
            if claim_id not in self._claims:
                raise KeyError(claim_id)
            self._statuses[claim_id] = ClaimStatus(status)
        logger.info("claim_revised", claim_id=claim_id, status=ClaimStatus(status).value)

    def get_claim(self, claim_id: str) -> Optional[HistoricalClaim]:
        with self._lock:
            return self._claims.get(claim_id)

    def claims_by_context(self, tag: str) -> Tuple[HistoricalClaim, ...]:
        with self._lock:
            return tuple(c for c in self._claims.values() if tag in c.context_tags)

    def lookup_claim(self, claim_id: str, timeout: float) -> ClaimLookup:
        with self._lock:
            self.lookup_count += 1

        if self.latency > timeout:
            self._sleep(timeout)
            raise ClaimLookupTimeout(claim_id, timeout)
        if self.latency > 0:
            self._sleep(self.latency)

        with self._lock:
            claim = self._claims.get(claim_id)
            status = self._statuses.get(claim_id, ClaimStatus.UNKNOWN)

        if claim is None:
            return ClaimLookup(status=ClaimStatus.UNKNOWN)
        return ClaimLookup(status=status, provenance=claim.provenance)


# =============================================================================
# HTTP ADAPTER
# =============================================================================

class HttpMythosMemory:
    """
    Mythos Memory served over HTTP.

    Expected response body for GET /claims/{claim_id}:
        {"status": "authentic|disputed|unknown", "provenance": {...}}

    404 means the claim is unknown. Timeouts raise ClaimLookupTimeout.
    Repeated failures open the circuit breaker, after which lookups fail
    fast until the breaker timeout passes.
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.Client] = None,
        breaker: Optional[CircuitBreaker] = None
    ):
        self._client = client or httpx.Client(base_url=base_url)
        self._owns_client = client is None
        self._breaker = breaker or CircuitBreaker(failure_threshold=5, timeout=30)

    def __enter__(self) -> "HttpMythosMemory":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def lookup_claim(self, claim_id: str, timeout: float) -> ClaimLookup:
        return self._breaker.call(self._fetch, claim_id, timeout)

    def _fetch(self, claim_id: str, timeout: float) -> ClaimLookup:
        try:
            response = self._client.get(f"/claims/{claim_id}", timeout=timeout)
        except httpx.TimeoutException as e:
            raise ClaimLookupTimeout(claim_id, timeout) from e

        if response.status_code == 404:
            return ClaimLookup(status=ClaimStatus.UNKNOWN)
        response.raise_for_status()

        data = response.json()
        try:
            status = ClaimStatus(str(data.get("status", "unknown")).lower())
        except ValueError:
            logger.warning("claim_status_unrecognized", claim_id=claim_id, status=data.get("status"))
            status = ClaimStatus.UNKNOWN
        return ClaimLookup(status=status, provenance=data.get("provenance"))
