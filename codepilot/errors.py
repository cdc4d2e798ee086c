"""
Typed failures raised by completion backends.

Construction-time errors (ConfigurationError, ModelAcquisitionError) abort
backend creation. Everything else is per-request and surfaces to the caller
of the failing operation only.
"""


class BackendError(Exception):
    """Base class for all backend failures."""
    pass


class ConfigurationError(BackendError):
    """A required construction-time setting is missing or invalid."""
    pass


class ModelAcquisitionError(BackendError):
    """The model artifact could not be located, downloaded or loaded."""
    pass


class MalformedParameters(BackendError):
    """The run-parameter payload did not parse into typed run parameters."""
    pass


class MissingSpecialToken(BackendError):
    """A custom chat template needs a bos/eos token the model does not define."""
    pass


class TemplateRenderError(BackendError):
    """A custom (user supplied) chat template failed to render."""
    pass


class EngineTemplateError(BackendError):
    """The engine's named or embedded chat template failed."""
    pass


class EngineFailure(BackendError):
    """The inference engine reported an error while generating."""
    pass


class CapabilityUnavailable(BackendError):
    """The backend intentionally does not implement this operation."""
    pass
