"""
RECURSIVE COGNITION ENGINE

Assesses each stimulus against several ethical frameworks, refines the
candidate response within a bounded retry budget and validates its own
output before committing it.

Components:
- FrameworkRegistry: named frameworks, immutable weighted snapshots
- PolyethicalAssessor: parallel multi-framework scoring and reconciliation
- ProvenanceValidator: fail-closed claim checks against Mythos Memory
- RefinementStage / SelfValidator: bounded refine -> validate loop
- FeedbackIntegrator: human corrections applied at cycle boundaries
- RecursiveCognitionEngine: cycle orchestration and state ownership
"""
from recursive_cognition.assessor import PolyethicalAssessor
from recursive_cognition.config import EngineConfig
from recursive_cognition.engine import RecursiveCognitionEngine
from recursive_cognition.exceptions import (
    BaseCognitionException,
    ClaimLookupTimeout,
    ConfigurationError,
    CycleCancelled,
    DuplicateFramework,
    RegistryUnavailable,
)
from recursive_cognition.feedback import FeedbackChannel, FeedbackIntegrator
from recursive_cognition.models import (
    CandidateResponse,
    ClaimStatus,
    CycleOutcome,
    EthicalAssessmentReport,
    FrameworkScore,
    ReportFlag,
    Stimulus,
    ValidationVerdict,
    VerdictReason,
    VerdictType,
)
from recursive_cognition.mythos_memory import HttpMythosMemory, InMemoryMythosMemory
from recursive_cognition.provenance import ProvenanceValidator
from recursive_cognition.refinement import RefinementStage
from recursive_cognition.registry import EthicalFramework, FrameworkRegistry, RegistrySnapshot
from recursive_cognition.schemas import FeedbackSignal
from recursive_cognition.self_validator import SelfValidator
from recursive_cognition.state import CognitiveState

__version__ = "0.1.0"

__all__ = [
    'PolyethicalAssessor',
    'EngineConfig',
    'RecursiveCognitionEngine',
    'BaseCognitionException',
    'ClaimLookupTimeout',
    'ConfigurationError',
    'CycleCancelled',
    'DuplicateFramework',
    'RegistryUnavailable',
    'FeedbackChannel',
    'FeedbackIntegrator',
    'CandidateResponse',
    'ClaimStatus',
    'CycleOutcome',
    'EthicalAssessmentReport',
    'FrameworkScore',
    'ReportFlag',
    'Stimulus',
    'ValidationVerdict',
    'VerdictReason',
    'VerdictType',
    'HttpMythosMemory',
    'InMemoryMythosMemory',
    'ProvenanceValidator',
    'RefinementStage',
    'EthicalFramework',
    'FrameworkRegistry',
    'RegistrySnapshot',
    'FeedbackSignal',
    'SelfValidator',
    'CognitiveState',
]
