"""
RECURSIVE COGNITION ENGINE - Cycle Orchestrator

Drives one cognition cycle per stimulus:

    [feedback boundary] -> Assess -> Refine -> Self-Validate
                                      ^              |
                                      +---- RETRY ---+

- Feedback: at most one pending human signal is integrated at the
  boundary, before the registry snapshot is taken.
- Assess: every applicable framework scores the response; claims are
  validated inline through a per-cycle ProvenanceValidator.
- Refine / Self-Validate: an explicit loop bounded by the retry budget,
  always ending in ACCEPT, ESCALATE or REJECT.
- Commit: the final report is appended to the history ring buffer and
  the working state replaces the engine's state.

The whole cycle runs on a fork of the cognitive state; cancelling it (or
any error) leaves the engine's state exactly as it was.

Usage:
    engine = RecursiveCognitionEngine(registry, memory=memory, config=EngineConfig())
    outcome = engine.run(stimulus)
    if outcome.verdict.type is VerdictType.ESCALATE:
        ...  # route to a human operator
"""
import threading
from typing import List, Optional

from recursive_cognition.assessor import PolyethicalAssessor
from recursive_cognition.config import EngineConfig
from recursive_cognition.exceptions import CycleCancelled, RegistryUnavailable
from recursive_cognition.feedback import FeedbackChannel, FeedbackIntegrator
from recursive_cognition.logging_config import cycle_context, get_logger, log_stage_transition
from recursive_cognition.models import (
    CandidateResponse,
    CycleOutcome,
    EthicalAssessmentReport,
    Stimulus,
    TraceEntry,
)
from recursive_cognition.mythos_memory import MythosMemory
from recursive_cognition.provenance import ProvenanceValidator
from recursive_cognition.refinement import RefinementStage
from recursive_cognition.registry import FrameworkRegistry, RegistrySnapshot
from recursive_cognition.schemas import FeedbackSignal
from recursive_cognition.self_validator import SelfValidator
from recursive_cognition.state import CognitiveState

logger = get_logger(__name__)


class RecursiveCognitionEngine:
    """
    Owns the cognitive state and enforces the termination policy.

    The registry is constructor-injected; no module-level registry exists.
    """

    def __init__(
        self,
        registry: FrameworkRegistry,
        memory: Optional[MythosMemory] = None,
        config: Optional[EngineConfig] = None,
        feedback: Optional[FeedbackChannel] = None,
        state: Optional[CognitiveState] = None
    ):
        self.config = config or EngineConfig()
        self.registry = registry
        self.memory = memory
        self.feedback = feedback or FeedbackChannel()
        self.state = state or CognitiveState(history_size=self.config.history_size)

        self.assessor = PolyethicalAssessor(
            contest_threshold=self.config.contest_threshold,
            max_workers=self.config.max_workers,
        )
        self.refinement = RefinementStage(
            tolerance=self.config.refinement_tolerance,
            step=self.config.refinement_step,
            min_confidence=self.config.refinement_min_confidence,
            protected_threshold=self.config.protected_threshold,
            max_backoff=self.config.max_backoff,
        )
        self.validator = SelfValidator(
            self.assessor,
            retry_budget=self.config.retry_budget,
            oscillation_threshold=self.config.oscillation_threshold,
            regression_floor=self.config.regression_floor,
        )
        self._cycle_lock = threading.Lock()

    # =========================
    # Public surface
    # =========================

    def submit_feedback(self, signal: FeedbackSignal) -> None:
        self.feedback.submit(signal)

    def system_alignment(self) -> Optional[float]:
        """Mean composite over the committed history, None before the first cycle"""
        reports = self.state.reports()
        if not reports:
            return None
        return sum(r.composite for r in reports) / len(reports)

    def run(
        self,
        stimulus: Stimulus,
        response: Optional[CandidateResponse] = None,
        cancel: Optional[threading.Event] = None,
        seed: Optional[int] = None
    ) -> CycleOutcome:
        """
        Process one stimulus to a terminal verdict.

        Raises:
            RegistryUnavailable: no framework is registered
            CycleCancelled: `cancel` was set before the cycle finished
        """
        if response is None:
            content = stimulus.content if isinstance(stimulus.content, str) else ""
            response = CandidateResponse(content=content)

        with self._cycle_lock, cycle_context(stimulus.id):
            return self._run_cycle(stimulus, response, cancel, seed)

    # =========================
    # Cycle
    # =========================

    def _run_cycle(
        self,
        stimulus: Stimulus,
        response: CandidateResponse,
        cancel: Optional[threading.Event],
        seed: Optional[int]
    ) -> CycleOutcome:
        working = self.state.fork()
        signal = self.feedback.take()

        logger.info(
            "cycle_started",
            stimulus_id=stimulus.id,
            stakeholders=sorted(stimulus.stakeholders),
            feedback_id=signal.feedback_id if signal else None,
        )

        try:
            if signal is not None:
                FeedbackIntegrator(base_weights=self.registry.base_weights()).integrate(working, signal)
            snapshot = self._snapshot(stimulus, working)
            working.current_stimulus = stimulus
            outcome = self._drive(stimulus, response, snapshot, working, cancel, seed)
        except BaseException:
            if signal is not None:
                self.feedback.restore(signal)
            raise

        working.record(outcome.final_report)
        working.cycles_committed += 1
        self.state.commit(working)

        logger.info(
            "cycle_committed",
            stimulus_id=stimulus.id,
            verdict=outcome.verdict.type.value,
            reason=outcome.verdict.reason.value,
            retries=outcome.retries,
            composite=round(outcome.final_report.composite, 6),
            history_length=len(self.state.history),
        )
        return outcome

    def _snapshot(self, stimulus: Stimulus, working: CognitiveState) -> RegistrySnapshot:
        if len(self.registry) == 0:
            logger.error("registry_unavailable", stimulus_id=stimulus.id)
            raise RegistryUnavailable(stimulus.id)
        return self.registry.snapshot(weight_adjustments=working.weight_adjustments)

    def _drive(
        self,
        stimulus: Stimulus,
        response: CandidateResponse,
        snapshot: RegistrySnapshot,
        working: CognitiveState,
        cancel: Optional[threading.Event],
        seed: Optional[int]
    ) -> CycleOutcome:
        trace: List[TraceEntry] = []

        with ProvenanceValidator(
            self.memory,
            timeout=self.config.claim_lookup_timeout,
            max_workers=self.config.max_workers,
        ) as provenance:

            def probe(candidate: CandidateResponse) -> EthicalAssessmentReport:
                return self.assessor.assess(stimulus, candidate, snapshot, provenance=provenance, seed=seed)

            self._checkpoint(cancel, stimulus, "assess")
            initial = probe(response)
            trace.append(TraceEntry("assess", 0, {
                "composite": initial.composite,
                "flags": sorted(f.value for f in initial.flags),
                "snapshot_version": snapshot.version,
            }))

            forced_retry = working.pending_veto
            working.pending_veto = False

            prior, current, retries = initial, response, 0
            while True:
                self._checkpoint(cancel, stimulus, "refine")
                log_stage_transition(stimulus.id, "assess" if retries == 0 else "retry", "refine", retries)
                delta = self.refinement.refine(current, prior, probe=probe)
                refined = delta.apply(current)
                trace.append(TraceEntry("refine", retries, {
                    "targets": dict(delta.target_scores),
                    "revision": refined.revision,
                }))

                self._checkpoint(cancel, stimulus, "validate")
                result = self.validator.validate(
                    stimulus,
                    refined,
                    delta,
                    prior,
                    working,
                    snapshot,
                    retries,
                    provenance=provenance,
                    seed=seed,
                    forced_retry=forced_retry,
                )
                forced_retry = False
                trace.append(TraceEntry("validate", retries, {
                    "verdict": result.verdict.type.value,
                    "reason": result.verdict.reason.value,
                    "composite": result.report.composite,
                }))

                if result.verdict.is_terminal:
                    break
                retries += 1
                prior, current = result.report, refined

        return CycleOutcome(
            verdict=result.verdict,
            final_report=result.report,
            refined_response=refined,
            initial_report=initial,
            retries=retries,
            trace=tuple(trace),
        )

    def _checkpoint(self, cancel: Optional[threading.Event], stimulus: Stimulus, stage: str) -> None:
        if cancel is not None and cancel.is_set():
            logger.warning("cycle_cancelled", stimulus_id=stimulus.id, stage=stage)
            raise CycleCancelled(stimulus.id, stage)
