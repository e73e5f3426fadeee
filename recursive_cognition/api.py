"""
OPERATOR API

HTTP surface over one RecursiveCognitionEngine.

Endpoints:
- POST /cycles   - Run one cognition cycle for a stimulus
- POST /feedback - Queue a human feedback signal for the next cycle boundary
- GET  /state    - Committed cognitive state (history, feedback, alignment)
- GET  /health   - Liveness and registry size
"""
from typing import Any, Dict

from fastapi import APIRouter, FastAPI, HTTPException

from recursive_cognition.engine import RecursiveCognitionEngine
from recursive_cognition.exceptions import BaseCognitionException, status_for
from recursive_cognition.logging_config import get_logger
from recursive_cognition.models import CandidateResponse
from recursive_cognition.schemas import FeedbackSignal, StimulusRequest

logger = get_logger(__name__)


def map_exception_to_http(exc: BaseCognitionException) -> HTTPException:
    """Map a domain exception to an HTTP error with a structured payload"""
    return HTTPException(status_code=status_for(exc), detail=exc.to_dict())


def build_router(engine: RecursiveCognitionEngine) -> APIRouter:
    router = APIRouter(tags=["cognition"])

    @router.post("/cycles")
    def run_cycle(payload: StimulusRequest) -> Dict[str, Any]:
        """
        Process one stimulus to a terminal verdict.

        ## Error Codes
        - 422: Invalid stimulus (e.g. image content that is not base64)
        - 500: Engine misconfigured
        - 503: No framework registered
        """
        try:
            stimulus = payload.to_stimulus()
        except ValueError as e:
            raise HTTPException(status_code=422, detail={"error": {"code": "InvalidStimulus", "message": str(e)}})

        response = None
        if payload.response is not None:
            response = CandidateResponse(content=payload.response)

        try:
            outcome = engine.run(stimulus, response=response, seed=payload.seed)
        except BaseCognitionException as e:
            logger.warning("cycle_request_failed", stimulus_id=payload.id, error=e.message)
            raise map_exception_to_http(e)

        return {"status": "ok", "outcome": outcome.to_dict()}

    @router.post("/feedback", status_code=202)
    def submit_feedback(signal: FeedbackSignal) -> Dict[str, Any]:
        """Queue feedback; it takes effect at the next cycle boundary"""
        engine.submit_feedback(signal)
        return {
            "status": "queued",
            "feedback_id": signal.feedback_id,
            "pending": len(engine.feedback),
        }

    @router.get("/state")
    def get_state() -> Dict[str, Any]:
        state = engine.state
        last_feedback = state.last_feedback
        return {
            "status": "ok",
            "current_stimulus_id": state.current_stimulus.id if state.current_stimulus else None,
            "cycles_committed": state.cycles_committed,
            "system_alignment": engine.system_alignment(),
            "pending_veto": state.pending_veto,
            "weight_adjustments": dict(state.weight_adjustments),
            "oscillation_counts": dict(state.oscillation_counts),
            "last_feedback_id": last_feedback.feedback_id if last_feedback else None,
            "history": [report.to_dict() for report in state.reports()],
        }

    @router.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "status": "ok",
            "frameworks": list(engine.registry.names()),
            "pending_feedback": len(engine.feedback),
        }

    return router


def create_app(engine: RecursiveCognitionEngine) -> FastAPI:
    app = FastAPI(
        title="Recursive Cognition Engine",
        description="Multi-framework ethical assessment with bounded self-refinement",
        version="0.1.0",
    )
    app.include_router(build_router(engine))
    app.state.engine = engine
    return app
