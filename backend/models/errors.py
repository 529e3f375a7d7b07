# backend/models/errors.py
"""
Exception hierarchy for the prediction pipeline
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors"""


class ProviderError(PipelineError):
    """An upstream provider was unreachable or returned an unusable payload"""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        detail = f"{provider}: {message}"
        if status_code is not None:
            detail += f" (HTTP {status_code})"
        super().__init__(detail)


class AllProvidersFailedError(ProviderError):
    """Every provider in a fallback chain failed"""

    def __init__(self, concern: str, failures: Optional[list] = None):
        self.concern = concern
        self.failures = failures or []
        reasons = "; ".join(str(f) for f in self.failures) or "no providers configured"
        super().__init__(concern, f"all providers failed ({reasons})")


class UnknownTeamError(PipelineError, LookupError):
    """Team abbreviation is not in the catalog"""

    def __init__(self, abbreviation: str):
        self.abbreviation = abbreviation
        super().__init__(f"Team not found: {abbreviation}")


class PredictionError(PipelineError):
    """Raised when a prediction cannot be produced"""


class InvalidProbabilityError(PredictionError):
    def __init__(self, value: float):
        self.value = value
        super().__init__(f"Invalid probability: {value}. Must be between 0.01 and 0.99")


class InvalidConfidenceError(PredictionError):
    def __init__(self, value: float):
        self.value = value
        super().__init__(f"Invalid confidence: {value}. Must be between 0.0 and 1.0")


class InsufficientDataError(PredictionError):
    def __init__(self, message: str = "Insufficient data to make prediction"):
        super().__init__(message)
