"""
FEEDBACK INTEGRATOR - Human Corrections Between Cycles

Flow:
1. Human feedback arrives at any time -> FeedbackChannel.submit()
2. At the next cycle boundary the engine takes at most one signal
3. integrate() folds it into the cognitive state:
   - score deltas become weight adjustments for FUTURE snapshots
   - a veto forces the next cycle's first verdict to RETRY

Committed history is append-only: feedback never touches a past report.
"""
import threading
from collections import deque
from typing import Collection, Deque, Mapping, Optional

from recursive_cognition.logging_config import get_logger
from recursive_cognition.schemas import FeedbackSignal
from recursive_cognition.state import CognitiveState

logger = get_logger(__name__)


class FeedbackChannel:
    """
    Thread-safe FIFO of pending feedback signals.

    Signals submitted while a cycle is in flight wait for the next
    boundary; there is no mid-cycle interruption.
    """

    def __init__(self):
        self._pending: Deque[FeedbackSignal] = deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def submit(self, signal: FeedbackSignal) -> None:
        with self._lock:
            self._pending.append(signal)
        logger.info(
            "feedback_queued",
            feedback_id=signal.feedback_id,
            stimulus_id=signal.stimulus_id,
            veto=signal.veto,
        )

    def take(self) -> Optional[FeedbackSignal]:
        with self._lock:
            return self._pending.popleft() if self._pending else None

    def restore(self, signal: FeedbackSignal) -> None:
        """Put a taken signal back at the head (its cycle was cancelled)"""
        with self._lock:
            self._pending.appendleft(signal)


class FeedbackIntegrator:
    """
    base_weights: registered weight per framework. Stored adjustments are
    bounded to [-weight, 1 - weight] so later corrections always move the
    effective weight; without it they stay within [-1, 1].
    """

    def __init__(
        self,
        known_frameworks: Optional[Collection[str]] = None,
        base_weights: Optional[Mapping[str, float]] = None
    ):
        if known_frameworks is None and base_weights is not None:
            known_frameworks = set(base_weights)
        self.known_frameworks = known_frameworks
        self.base_weights = dict(base_weights or {})

    def _bounded(self, name: str, adjustment: float) -> float:
        weight = self.base_weights.get(name)
        if weight is None:
            return max(-1.0, min(1.0, adjustment))
        return max(-weight, min(1.0 - weight, adjustment))

    def integrate(self, state: CognitiveState, signal: FeedbackSignal) -> CognitiveState:
        """
        Fold `signal` into `state` and return it.

        `state` must be the working copy of the cycle about to start.
        """
        applied = {}
        for name, delta in sorted(signal.score_deltas.items()):
            if self.known_frameworks is not None and name not in self.known_frameworks:
                logger.warning(
                    "feedback_unknown_framework",
                    feedback_id=signal.feedback_id,
                    framework=name,
                )
                continue
            before = state.weight_adjustments.get(name, 0.0)
            after = self._bounded(name, before + delta)
            state.weight_adjustments[name] = after
            applied[name] = after - before

        if signal.veto:
            state.pending_veto = True

        state.last_feedback = signal

        logger.info(
            "feedback_integrated",
            feedback_id=signal.feedback_id,
            stimulus_id=signal.stimulus_id,
            weight_deltas=applied,
            veto=signal.veto,
            veto_reason=signal.veto_reason,
        )
        return state
