"""
SELF-VALIDATOR - Introspective Consistency Check

State machine run once per refinement attempt:

    SCORING -> COMPARING -> {ACCEPT, RETRY, ESCALATE, REJECT}

SCORING re-assesses the refined response. COMPARING checks the new report
against the immediately prior report of the cycle, in priority order:

1. Forced retry (human veto) on the first verdict of a cycle
2. UNRESOLVED_CLAIM in both reports          -> ESCALATE (unverifiable_claim)
3. A framework flipped sign K times in a row -> ESCALATE (oscillation)
4. Composite strictly improved, no regression below the floor, protected
   floors held, no unresolved claim          -> ACCEPT
   (an empty delta over a report with no violation is already satisfactory)
   Never ACCEPT a report where no framework produced a usable score.
5. Retry budget left                          -> RETRY
6. Otherwise                                  -> REJECT (no_convergence)

The validator never loops itself; the engine re-enters refinement on RETRY.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from recursive_cognition.assessor import PolyethicalAssessor
from recursive_cognition.config import CYCLE_DEFAULTS, VALIDATION_THRESHOLDS
from recursive_cognition.logging_config import get_logger, log_stage_transition
from recursive_cognition.models import (
    CandidateResponse,
    EthicalAssessmentReport,
    RefinementDelta,
    ReportFlag,
    Stimulus,
    ValidationVerdict,
    VerdictReason,
    sign,
)
from recursive_cognition.provenance import ProvenanceValidator
from recursive_cognition.registry import RegistrySnapshot
from recursive_cognition.state import CognitiveState

logger = get_logger(__name__)


class ValidationState(str, Enum):
    SCORING = "scoring"
    COMPARING = "comparing"
    ACCEPT = "accept"
    RETRY = "retry"
    ESCALATE = "escalate"
    REJECT = "reject"


@dataclass(frozen=True)
class ValidationResult:
    verdict: ValidationVerdict
    report: EthicalAssessmentReport


class SelfValidator:

    def __init__(
        self,
        assessor: PolyethicalAssessor,
        retry_budget: int = CYCLE_DEFAULTS["retry_budget"],
        oscillation_threshold: int = VALIDATION_THRESHOLDS["oscillation_threshold"],
        regression_floor: float = VALIDATION_THRESHOLDS["regression_floor"]
    ):
        self.assessor = assessor
        self.retry_budget = retry_budget
        self.oscillation_threshold = oscillation_threshold
        self.regression_floor = regression_floor

    def validate(
        self,
        stimulus: Stimulus,
        refined: CandidateResponse,
        delta: RefinementDelta,
        prior: EthicalAssessmentReport,
        state: CognitiveState,
        snapshot: RegistrySnapshot,
        retries_used: int,
        provenance: Optional[ProvenanceValidator] = None,
        seed: Optional[int] = None,
        forced_retry: bool = False
    ) -> ValidationResult:
        log_stage_transition(stimulus.id, "refine", ValidationState.SCORING.value, retries_used)
        report = self.assessor.assess(stimulus, refined, snapshot, provenance=provenance, seed=seed)

        log_stage_transition(stimulus.id, ValidationState.SCORING.value, ValidationState.COMPARING.value, retries_used)
        verdict = self.compare(prior, report, delta, state, retries_used, forced_retry)

        log_stage_transition(
            stimulus.id,
            ValidationState.COMPARING.value,
            verdict.type.value,
            retries_used,
            reason=verdict.reason.value,
        )
        return ValidationResult(verdict=verdict, report=report)

    def compare(
        self,
        prior: EthicalAssessmentReport,
        report: EthicalAssessmentReport,
        delta: RefinementDelta,
        state: CognitiveState,
        retries_used: int,
        forced_retry: bool = False
    ) -> ValidationVerdict:
        """
        Decide the verdict for `report` given the `prior` one.

        Updates the oscillation counters of `state` (a working copy owned
        by the current cycle).
        """
        oscillating = self._track_oscillation(prior, report, state)

        if forced_retry:
            return self._retry_or_reject(VerdictReason.VETOED, retries_used)

        unresolved = report.has_flag(ReportFlag.UNRESOLVED_CLAIM)
        if unresolved and prior.has_flag(ReportFlag.UNRESOLVED_CLAIM):
            claims = sorted({c.claim_id for c in report.unresolved_claims})
            logger.warning("unverifiable_claim_persisted", stimulus_id=report.stimulus_id, claims=claims)
            return ValidationVerdict.escalate(VerdictReason.UNVERIFIABLE_CLAIM, claims)

        if oscillating:
            logger.warning(
                "oscillation_detected",
                stimulus_id=report.stimulus_id,
                frameworks=oscillating,
                counts={name: state.oscillation_count(name) for name in oscillating},
            )
            return ValidationVerdict.escalate(VerdictReason.OSCILLATION, oscillating)

        regressions = self.regressions(prior, report)
        floors_held = delta.floors_held(report)

        if not report.assessed:
            logger.warning(
                "no_usable_score",
                stimulus_id=report.stimulus_id,
                failed=[s.framework for s in report.scores],
                skipped=list(report.skipped),
            )
        elif not unresolved:
            if report.composite > prior.composite and not regressions and floors_held:
                return ValidationVerdict.accept(VerdictReason.IMPROVED)
            if delta.is_empty and not report.concerns:
                return ValidationVerdict.accept(VerdictReason.ALREADY_SATISFACTORY)

        if regressions or not floors_held:
            return self._retry_or_reject(VerdictReason.REGRESSION, retries_used, regressions)
        return self._retry_or_reject(VerdictReason.NOT_IMPROVED, retries_used)

    def regressions(self, prior: EthicalAssessmentReport, report: EthicalAssessmentReport) -> List[str]:
        """Frameworks that got worse and ended below the regression floor"""
        regressed = []
        for item in report.scores:
            before = prior.score_for(item.framework)
            if before is None or not before.usable or not item.usable:
                continue
            if item.score < before.score and item.score < self.regression_floor:
                regressed.append(item.framework)
        return regressed

    def _track_oscillation(
        self,
        prior: EthicalAssessmentReport,
        report: EthicalAssessmentReport,
        state: CognitiveState
    ) -> List[str]:
        """
        Count consecutive sign flips per framework.

        A comparison where the sign holds (or either side is zero) resets
        the framework's counter.
        """
        oscillating = []
        for item in report.scores:
            before = prior.score_for(item.framework)
            if before is None or not before.usable or not item.usable:
                continue
            previous, current = sign(before.score), sign(item.score)
            if previous and current and previous != current:
                state.oscillation_counts[item.framework] = state.oscillation_count(item.framework) + 1
            else:
                state.oscillation_counts[item.framework] = 0
            if state.oscillation_count(item.framework) >= self.oscillation_threshold:
                oscillating.append(item.framework)
        return oscillating

    def _retry_or_reject(
        self,
        reason: VerdictReason,
        retries_used: int,
        frameworks: List[str] = ()
    ) -> ValidationVerdict:
        if retries_used < self.retry_budget:
            return ValidationVerdict.retry(reason, frameworks)
        return ValidationVerdict.reject(VerdictReason.NO_CONVERGENCE)
