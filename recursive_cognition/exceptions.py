"""
Domain Exceptions for the Recursive Cognition Engine

Only configuration problems and operator aborts are raised to callers.
Convergence failures, oscillation and unverifiable claims are terminal
cycle outcomes (see models.VerdictReason), not exceptions.
"""


class BaseCognitionException(Exception):
    """Root of every error the engine raises"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        """Structured payload for API error responses"""
        return {"error": {"code": self.code, "message": self.message, "details": self.details}}


# =============================================================================
# Configuration errors (fatal, never retried)
# =============================================================================

class ConfigurationError(BaseCognitionException):
    """Engine or registry is misconfigured"""


class DuplicateFramework(ConfigurationError):
    """A framework with the same name is already registered"""

    def __init__(self, name: str):
        super().__init__(
            message=f"Framework already registered: {name}",
            details={"framework": name}
        )


class RegistryUnavailable(ConfigurationError):
    """A stimulus cannot be assessed against zero frameworks"""

    def __init__(self, stimulus_id: str = None):
        super().__init__(
            message="No ethical frameworks are registered",
            details={"stimulus_id": stimulus_id}
        )


# =============================================================================
# Recoverable errors
# =============================================================================

class ClaimLookupTimeout(BaseCognitionException):
    """Mythos Memory did not answer within the lookup timeout"""

    def __init__(self, claim_id: str, timeout: float):
        super().__init__(
            message="Claim lookup timed out",
            details={"claim_id": claim_id, "timeout": timeout}
        )


class CycleCancelled(BaseCognitionException):
    """An in-flight cycle was aborted by an operator"""

    def __init__(self, stimulus_id: str, stage: str):
        super().__init__(
            message="Cycle cancelled before completion",
            details={"stimulus_id": stimulus_id, "stage": stage}
        )


# =============================================================================
# HTTP Status Mapping
# =============================================================================

EXCEPTION_TO_STATUS = {
    ConfigurationError: 500,
    DuplicateFramework: 409,
    RegistryUnavailable: 503,
    ClaimLookupTimeout: 504,
    CycleCancelled: 409,
}


def status_for(exc: BaseCognitionException) -> int:
    """HTTP status of the closest mapped class in the exception's MRO"""
    for cls in type(exc).__mro__:
        if cls in EXCEPTION_TO_STATUS:
            return EXCEPTION_TO_STATUS[cls]
    return 500
