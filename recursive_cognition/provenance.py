"""
PROVENANCE VALIDATOR - Claim Authenticity Checks

Resolves the claims triggered by framework scores against Mythos Memory.

Rules:
- Results are cached for one cycle only. The engine builds a fresh
  validator per cycle because claims can be revised between cycles.
- Every lookup is bounded by the claim-lookup timeout.
- Fail-closed: a timeout, an unknown claim or a failing collaborator all
  resolve to UNKNOWN, which flags exactly like DISPUTED. Nothing raised by
  Mythos Memory escapes this module.
"""
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from typing import Dict, Iterable, Mapping, Optional, Union

from recursive_cognition.error_handler import CircuitBreakerOpen
from recursive_cognition.exceptions import ClaimLookupTimeout
from recursive_cognition.logging_config import get_logger, log_error
from recursive_cognition.models import ClaimReference, ClaimStatus, FrameworkScore
from recursive_cognition.mythos_memory import MythosMemory

logger = get_logger(__name__)


class ProvenanceValidator:
    """
    Per-cycle claim validator.

    Usage:
        with ProvenanceValidator(memory, timeout=2.0) as provenance:
            status = provenance.validate_claim("claim-1")
    """

    def __init__(
        self,
        memory: Optional[MythosMemory],
        timeout: float,
        max_workers: Optional[int] = None
    ):
        if timeout <= 0:
            raise ValueError("claim lookup timeout must be positive")
        self._memory = memory
        self._timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="claim-lookup"
        )
        self._cache: Dict[str, ClaimStatus] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> "ProvenanceValidator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        # A lookup that timed out may still be running; never wait for it
        self._executor.shutdown(wait=False, cancel_futures=True)

    @property
    def cached(self) -> Mapping[str, ClaimStatus]:
        with self._lock:
            return dict(self._cache)

    def validate_claim(self, claim_ref: Union[str, ClaimReference]) -> ClaimStatus:
        claim_id = claim_ref.claim_id if isinstance(claim_ref, ClaimReference) else str(claim_ref)
        return self.validate_all([claim_id])[claim_id]

    def validate_all(self, claim_refs: Iterable[Union[str, ClaimReference]]) -> Dict[str, ClaimStatus]:
        """
        Validate several claims, issuing uncached lookups concurrently.

        All lookups of one call share a single deadline of `timeout`.
        """
        claim_ids = []
        for ref in claim_refs:
            claim_id = ref.claim_id if isinstance(ref, ClaimReference) else str(ref)
            if claim_id not in claim_ids:
                claim_ids.append(claim_id)

        with self._lock:
            pending = [c for c in claim_ids if c not in self._cache]

        if pending:
            resolved = self._lookup_many(pending)
            with self._lock:
                for claim_id, status in resolved.items():
                    self._cache.setdefault(claim_id, status)

        with self._lock:
            return {claim_id: self._cache[claim_id] for claim_id in claim_ids}

    def annotate(self, score: FrameworkScore) -> FrameworkScore:
        """Copy of `score` whose claims carry their validated status"""
        if not score.claims:
            return score
        statuses = self.validate_all(score.claims)
        return score.with_claims(
            ClaimReference(
                claim_id=c.claim_id,
                marked_unverified=c.marked_unverified,
                status=statuses[c.claim_id],
            )
            for c in score.claims
        )

    # =========================
    # Lookups
    # =========================

    def _lookup_many(self, claim_ids) -> Dict[str, ClaimStatus]:
        if self._memory is None:
            logger.warning("claim_lookup_without_memory", claims=list(claim_ids))
            return {claim_id: ClaimStatus.UNKNOWN for claim_id in claim_ids}

        deadline = time.monotonic() + self._timeout
        futures = {
            claim_id: self._executor.submit(self._memory.lookup_claim, claim_id, self._timeout)
            for claim_id in claim_ids
        }
        return {
            claim_id: self._collect(claim_id, future, deadline)
            for claim_id, future in futures.items()
        }

    def _collect(self, claim_id: str, future: Future, deadline: float) -> ClaimStatus:
        remaining = max(0.0, deadline - time.monotonic())
        try:
            result = future.result(timeout=remaining)
        except (FuturesTimeout, ClaimLookupTimeout):
            future.cancel()
            logger.warning("claim_lookup_timeout", claim_id=claim_id, timeout=self._timeout)
            return ClaimStatus.UNKNOWN
        except CircuitBreakerOpen:
            logger.warning("claim_lookup_circuit_open", claim_id=claim_id)
            return ClaimStatus.UNKNOWN
        except Exception as e:
            log_error(e, {"claim_id": claim_id, "operation": "lookup_claim"}, "WARNING")
            return ClaimStatus.UNKNOWN

        try:
            status = ClaimStatus(result.status)
        except (AttributeError, ValueError):
            logger.warning("claim_lookup_malformed", claim_id=claim_id, result=repr(result))
            return ClaimStatus.UNKNOWN

        logger.debug("claim_validated", claim_id=claim_id, status=status.value)
        return status
