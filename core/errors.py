"""
Error Taxonomy
==============

Every failure the solver can surface is a SolverError subclass carrying the
HTTP status it maps to. The API layer and the orchestrator both rely on
status_code to turn an exception into a response.

    Client errors    (4xx) - bad key, bad images, unknown variant
    Artifact errors  (500) - model download / manifest / filesystem
    Session errors   (500) - model unavailable or failed to run
    Fallback errors  (502) - remote solving provider refused the task
"""

from typing import Optional


class SolverError(Exception):
    """Base class for all solver errors"""
    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class ConfigError(Exception):
    """Raised at startup when the configuration is unusable"""
    pass


# =============================================================================
# CLIENT ERRORS
# =============================================================================

class ClientError(SolverError):
    status_code = 400


class InvalidApiKeyError(ClientError):
    status_code = 401

    def __init__(self):
        super().__init__("Invalid API key")


class InvalidImagesError(ClientError):
    def __init__(self):
        super().__init__("Invalid images")


class InvalidSubmitLimitError(ClientError):
    def __init__(self, count: int, limit: int):
        super().__init__(f"Invalid submit limit: {count} images, limit is {limit}")
        self.count = count
        self.limit = limit


class ImageDecodeError(ClientError):
    pass


class ImageSizeError(ClientError):
    pass


class UnknownVariantError(ClientError):
    def __init__(self, name: str):
        super().__init__(f"unknown variant type: {name}")
        self.name = name


# =============================================================================
# ARTIFACT ERRORS
# =============================================================================

class ArtifactError(SolverError):
    status_code = 500


class ArtifactFetchError(ArtifactError):
    """Network or backend failure while retrieving a key"""
    pass


class ManifestError(ArtifactError):
    pass


class InvalidModelNameError(ArtifactError):
    def __init__(self, name: str):
        super().__init__(f"Invalid model name: {name}")
        self.name = name


class ArtifactIOError(ArtifactError):
    pass


# =============================================================================
# SESSION ERRORS
# =============================================================================

class SessionError(SolverError):
    status_code = 500


class ModelUnavailableError(SessionError):
    pass


class PredictionError(SessionError):
    pass


# =============================================================================
# FALLBACK ERRORS
# =============================================================================

class FallbackError(SolverError):
    status_code = 502
