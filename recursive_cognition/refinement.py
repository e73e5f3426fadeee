"""
REFINEMENT STAGE - Bounded Trade-Off Adjustment

Proposes a RefinementDelta that raises the frameworks currently in
violation without giving up too much on the frameworks that are already
well aligned.

Policy:
- Targets: every framework with score < 0 and confidence >= min_confidence.
  Each is pushed up by min(step, |score|).
- Protected: every framework above protected_threshold gets a floor of
  (score - tolerance). The delta records these floors so the
  self-validator can refuse a refinement that broke them.
- With a probe (a callable assessing a candidate response), the trade-off
  is checked up front: adjustments are halved until the floors hold, at
  most max_backoff times; if they never hold the delta is empty.
- No target: no-op, empty delta.
"""
from typing import Callable, Dict, Optional

from recursive_cognition.config import REFINEMENT_POLICY
from recursive_cognition.logging_config import get_logger
from recursive_cognition.models import CandidateResponse, EthicalAssessmentReport, RefinementDelta

logger = get_logger(__name__)

Probe = Callable[[CandidateResponse], EthicalAssessmentReport]


class RefinementStage:

    def __init__(
        self,
        tolerance: float = REFINEMENT_POLICY["tolerance"],
        step: float = REFINEMENT_POLICY["step"],
        min_confidence: float = REFINEMENT_POLICY["min_confidence"],
        protected_threshold: float = REFINEMENT_POLICY["protected_threshold"],
        max_backoff: int = REFINEMENT_POLICY["max_backoff"]
    ):
        self.tolerance = tolerance
        self.step = step
        self.min_confidence = min_confidence
        self.protected_threshold = protected_threshold
        self.max_backoff = max_backoff

    def refine(
        self,
        response: CandidateResponse,
        report: EthicalAssessmentReport,
        probe: Optional[Probe] = None
    ) -> RefinementDelta:
        floors = self.protected_floors(report)
        adjustments = self._target_adjustments(report)

        if not adjustments:
            logger.debug("refinement_noop", stimulus_id=report.stimulus_id, revision=response.revision)
            return RefinementDelta.empty(base_revision=response.revision, protected_floors=floors)

        delta = self._build(response, report, adjustments, floors)
        if probe is None:
            return delta

        for attempt in range(self.max_backoff + 1):
            probed = probe(delta.apply(response))
            if delta.floors_held(probed):
                logger.info(
                    "refinement_proposed",
                    stimulus_id=report.stimulus_id,
                    revision=response.revision,
                    targets=sorted(delta.adjustments),
                    backoff=attempt,
                )
                return delta
            adjustments = {name: amount / 2 for name, amount in adjustments.items()}
            delta = self._build(response, report, adjustments, floors)

        logger.warning(
            "refinement_tradeoff_unsatisfiable",
            stimulus_id=report.stimulus_id,
            revision=response.revision,
            protected=sorted(floors),
        )
        return RefinementDelta.empty(base_revision=response.revision, protected_floors=floors)

    def protected_floors(self, report: EthicalAssessmentReport) -> Dict[str, float]:
        return {
            s.framework: s.score - self.tolerance
            for s in report.scores
            if s.usable and s.score > self.protected_threshold
        }

    def _target_adjustments(self, report: EthicalAssessmentReport) -> Dict[str, float]:
        return {
            s.framework: min(self.step, abs(s.score))
            for s in report.scores
            if s.score < 0 and s.confidence >= self.min_confidence
        }

    def _build(
        self,
        response: CandidateResponse,
        report: EthicalAssessmentReport,
        adjustments: Dict[str, float],
        floors: Dict[str, float]
    ) -> RefinementDelta:
        targets = {}
        mitigations = []
        for name, amount in sorted(adjustments.items()):
            current = report.score_for(name).score
            targets[name] = min(1.0, current + amount)
            mitigations.append(f"address {name} concern ({current:+.2f} -> {targets[name]:+.2f})")

        return RefinementDelta(
            adjustments=adjustments,
            target_scores=targets,
            protected_floors=floors,
            mitigations=tuple(mitigations),
            base_revision=response.revision,
        )
