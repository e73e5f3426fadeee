"""
POLYETHICAL ASSESSOR - Multi-Framework Scoring and Reconciliation

Scores a stimulus/response pair against every applicable framework of a
registry snapshot and reconciles the scores into one report.

Pipeline:
1. Filter: frameworks whose tags do not meet the stakeholder context are
   skipped (not scored, not counted in the composite).
2. Score: applicable frameworks run in parallel; each call is isolated so
   one failing framework yields a confidence-0 score instead of aborting.
3. Order: results are sorted by framework name.
4. Validate claims: triggered claims are resolved through the
   ProvenanceValidator (fail-closed).
5. Reconcile: weighted composite re-normalized by the weights actually
   used, plus CONTESTED / UNRESOLVED_CLAIM / STABLE flags.

Deterministic: the same stimulus, response and snapshot always yield the
same report. Frameworks that need randomness get a random.Random seeded
from (seed, framework name), never from the wall clock.
"""
import random
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Set

from recursive_cognition.config import VALIDATION_THRESHOLDS
from recursive_cognition.error_handler import ErrorHandler
from recursive_cognition.logging_config import get_logger
from recursive_cognition.models import (
    CandidateResponse,
    EthicalAssessmentReport,
    FrameworkScore,
    ReportFlag,
    Stimulus,
    compute_composite,
)
from recursive_cognition.provenance import ProvenanceValidator
from recursive_cognition.registry import EthicalFramework, RegistrySnapshot

logger = get_logger(__name__)


class PolyethicalAssessor:
    """
    Produces EthicalAssessmentReports.

    The assessor is stateless between calls; the thread pool only bounds
    how many scoring functions run at once.
    """

    def __init__(
        self,
        contest_threshold: float = VALIDATION_THRESHOLDS["contest_threshold"],
        max_workers: Optional[int] = None
    ):
        self.contest_threshold = contest_threshold
        self.max_workers = max_workers

    def assess(
        self,
        stimulus: Stimulus,
        response: CandidateResponse,
        snapshot: RegistrySnapshot,
        provenance: Optional[ProvenanceValidator] = None,
        seed: Optional[int] = None
    ) -> EthicalAssessmentReport:
        applicable = [f for f in snapshot if f.applies_to(stimulus.stakeholders)]
        skipped = tuple(f.name for f in snapshot if not f.applies_to(stimulus.stakeholders))

        scores = self._score_all(applicable, stimulus, response, seed)
        scores.sort(key=lambda s: s.framework)

        if provenance is not None:
            scores = [provenance.annotate(s) for s in scores]

        weights = {f.name: f.weight for f in applicable}
        composite = compute_composite(scores, weights)
        flags = self._flags(scores)

        report = EthicalAssessmentReport(
            stimulus_id=stimulus.id,
            scores=tuple(scores),
            composite=composite,
            flags=flags,
            weights=weights,
            skipped=skipped,
            response_revision=response.revision,
        )

        logger.info(
            "assessment_completed",
            stimulus_id=stimulus.id,
            revision=response.revision,
            composite=round(composite, 6),
            scored=len(scores),
            skipped=len(skipped),
            flags=sorted(f.value for f in flags),
        )
        return report

    # =========================
    # Scoring
    # =========================

    def _score_all(
        self,
        frameworks: List[EthicalFramework],
        stimulus: Stimulus,
        response: CandidateResponse,
        seed: Optional[int]
    ) -> List[FrameworkScore]:
        if not frameworks:
            return []
        if len(frameworks) == 1:
            return [self._score_one(frameworks[0], stimulus, response, seed)]

        with ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="framework-score"
        ) as pool:
            futures = [
                pool.submit(self._score_one, framework, stimulus, response, seed)
                for framework in frameworks
            ]
            return [future.result() for future in futures]

    def _score_one(
        self,
        framework: EthicalFramework,
        stimulus: Stimulus,
        response: CandidateResponse,
        seed: Optional[int]
    ) -> FrameworkScore:
        def call() -> FrameworkScore:
            kwargs = {}
            if framework.uses_rng:
                kwargs["rng"] = random.Random(f"{seed}:{framework.name}")
            result = framework.scorer(stimulus, response, **kwargs)
            if not isinstance(result, FrameworkScore):
                raise TypeError(
                    f"scorer returned {type(result).__name__}, expected FrameworkScore"
                )
            if result.framework != framework.name:
                result = FrameworkScore(
                    framework=framework.name,
                    score=result.score,
                    confidence=result.confidence,
                    claims=result.claims,
                    error=result.error,
                )
            return result

        failure: Dict[str, str] = {}

        def isolated() -> FrameworkScore:
            try:
                return call()
            except Exception as e:
                failure["error"] = f"{type(e).__name__}: {e}"
                raise

        result = ErrorHandler.safe_execute(
            isolated,
            default=None,
            context={"framework": framework.name, "stimulus_id": stimulus.id},
            log_level="WARNING",
        )
        if result is None:
            return FrameworkScore.failed(framework.name, failure.get("error", "scorer failed"))
        return result

    # =========================
    # Reconciliation
    # =========================

    def _flags(self, scores: List[FrameworkScore]) -> Set[ReportFlag]:
        usable = [s for s in scores if s.usable]
        flags = set()

        aligned = any(s.score > self.contest_threshold for s in usable)
        violated = any(s.score < -self.contest_threshold for s in usable)
        if aligned and violated:
            flags.add(ReportFlag.CONTESTED)

        if any(not c.resolved for s in scores for c in s.claims):
            flags.add(ReportFlag.UNRESOLVED_CLAIM)

        if not flags:
            flags.add(ReportFlag.STABLE)
        return flags
