"""
COGNITIVE STATE - Cross-Cycle Memory of the Engine

Single-owner record carried across cycles. Only the engine mutates it,
and only at cycle boundaries: a cycle works on fork() and the engine
commits the fork once the cycle reaches a terminal verdict. An aborted
cycle simply drops its fork.
"""
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional, Tuple

from recursive_cognition.config import CYCLE_DEFAULTS
from recursive_cognition.models import EthicalAssessmentReport, Stimulus
from recursive_cognition.schemas import FeedbackSignal


@dataclass
class CognitiveState:
    history_size: int = CYCLE_DEFAULTS["history_size"]
    current_stimulus: Optional[Stimulus] = None
    history: Deque[EthicalAssessmentReport] = field(default_factory=deque)
    oscillation_counts: Dict[str, int] = field(default_factory=dict)
    last_feedback: Optional[FeedbackSignal] = None

    # Weight changes from human feedback, applied to future snapshots
    weight_adjustments: Dict[str, float] = field(default_factory=dict)
    pending_veto: bool = False
    cycles_committed: int = 0

    def __post_init__(self):
        if self.history_size < 1:
            raise ValueError("history_size must be at least 1")
        self.history = deque(self.history, maxlen=self.history_size)

    def record(self, report: EthicalAssessmentReport) -> None:
        """Append a committed report; the oldest one is evicted on overflow"""
        self.history.append(report)

    @property
    def last_report(self) -> Optional[EthicalAssessmentReport]:
        return self.history[-1] if self.history else None

    def reports(self) -> Tuple[EthicalAssessmentReport, ...]:
        """Committed reports, oldest first"""
        return tuple(self.history)

    def oscillation_count(self, framework: str) -> int:
        return self.oscillation_counts.get(framework, 0)

    def fork(self) -> "CognitiveState":
        """Independent working copy. Reports are immutable and shared."""
        return CognitiveState(
            history_size=self.history_size,
            current_stimulus=self.current_stimulus,
            history=deque(self.history),
            oscillation_counts=dict(self.oscillation_counts),
            last_feedback=self.last_feedback,
            weight_adjustments=dict(self.weight_adjustments),
            pending_veto=self.pending_veto,
            cycles_committed=self.cycles_committed,
        )

    def commit(self, working: "CognitiveState") -> None:
        """Adopt the contents of a finished working copy"""
        self.current_stimulus = working.current_stimulus
        self.history = deque(working.history, maxlen=self.history_size)
        self.oscillation_counts = dict(working.oscillation_counts)
        self.last_feedback = working.last_feedback
        self.weight_adjustments = dict(working.weight_adjustments)
        self.pending_veto = working.pending_veto
        self.cycles_committed = working.cycles_committed
