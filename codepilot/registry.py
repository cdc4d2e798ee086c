"""
Backend Registry - central point for backend dependency injection.

Two tables:
- BACKEND_TYPES: backend type name -> (config model, factory), used to build
  a backend from an untyped configuration payload
- registered backends: instance name -> constructed backend, used by the
  worker to route requests

Usage:
    # At startup
    register_backend(build_backend("llama_cpp", {...}), name="default")

    # In the worker
    backend = get_backend("default")
    response = await backend.do_completion(prompt, params)
"""

import logging
from typing import Any, Callable, TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from codepilot.config import LlamaCppConfig
from codepilot.errors import ConfigurationError

if TYPE_CHECKING:
    from codepilot.adapters.base import TransformerBackend

logger = logging.getLogger(__name__)

_backends: dict[str, "TransformerBackend"] = {}


def _build_llamacpp(config: BaseModel) -> "TransformerBackend":
    from codepilot.adapters.llamacpp import LlamaCppAdapter
    return LlamaCppAdapter(config)


# Engine modules are imported lazily by each factory
BACKEND_TYPES: dict[str, tuple[type[BaseModel], Callable[[Any], "TransformerBackend"]]] = {
    "llama_cpp": (LlamaCppConfig, _build_llamacpp),
}


def build_backend(backend_type: str, config: Any) -> "TransformerBackend":
    """
    Construct a backend of `backend_type` from a configuration payload.

    Args:
        backend_type: Key of BACKEND_TYPES (e.g. "llama_cpp")
        config: Mapping or already-typed config model

    Raises:
        ConfigurationError: unknown type or invalid configuration
        ModelAcquisitionError: propagated from backend construction
    """
    if backend_type not in BACKEND_TYPES:
        raise ConfigurationError(
            f"Unknown backend type '{backend_type}'. Available: {sorted(BACKEND_TYPES)}"
        )

    config_model, factory = BACKEND_TYPES[backend_type]
    if not isinstance(config, config_model):
        try:
            config = config_model.model_validate(config)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {backend_type} configuration: {e}") from e

    logger.info("Building %s backend", backend_type)
    return factory(config)


def register_backend(backend: "TransformerBackend", name: str = "default") -> None:
    """
    Register a backend instance by name.

    Args:
        backend: A constructed TransformerBackend implementation
        name: Identifier requests use to route to it
    """
    _backends[name] = backend


def get_backend(name: str = "default") -> "TransformerBackend":
    """
    Get a registered backend.

    Raises:
        ConfigurationError: If no backend is registered under `name`
    """
    if name not in _backends:
        raise ConfigurationError(
            f"No backend registered as '{name}'. "
            f"Registered: {sorted(_backends)}"
        )
    return _backends[name]


def list_backends() -> list[str]:
    """Names of all registered backends."""
    return sorted(_backends)


def clear_backends() -> None:
    """
    Clear all registered backends.

    Primarily useful for testing to reset state between tests.
    """
    _backends.clear()


def register_default_backend(name: str = "default") -> None:
    """
    Build the backend described by the environment and register it as `name`.

    CODEPILOT_BACKEND selects the type (default: llama_cpp); the model is
    configured with CODEPILOT_MODEL_* variables.
    """
    from codepilot.config import get_backend_type, load_llamacpp_config_from_env

    backend_type = get_backend_type()
    if backend_type == "llama_cpp":
        config = load_llamacpp_config_from_env()
    else:
        config = {}
    register_backend(build_backend(backend_type, config), name=name)
