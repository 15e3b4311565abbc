"""
Framework configuration for tracedoc.

The process default is set with set_config(). config_context() scopes
overrides through a ContextVar, so nested contexts restore the outer
configuration on exit.
"""

import contextvars
import dataclasses
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from tracedoc.errors import ConfigError

logger = logging.getLogger(__name__)

CALLBACK_ERROR_POLICIES = ("raise", "log")


@dataclass(frozen=True)
class TraceDocConfig:
    """Behavior switches for dispatch.

    Attributes:
        callback_errors: "raise" propagates callback exceptions out of
            mapchange()/mapupdate(). "log" logs them at WARNING and keeps
            dispatching the remaining callbacks.
        log_diffs: Log every non-empty diff at DEBUG from mapchange().
    """
    callback_errors: str = "raise"
    log_diffs: bool = False

    def __post_init__(self):
        if self.callback_errors not in CALLBACK_ERROR_POLICIES:
            raise ConfigError(
                f"callback_errors must be one of {CALLBACK_ERROR_POLICIES}, "
                f"got {self.callback_errors!r}"
            )


_default_config = TraceDocConfig()
_current_config: contextvars.ContextVar[Optional[TraceDocConfig]] = contextvars.ContextVar(
    'tracedoc_config', default=None
)


def get_config() -> TraceDocConfig:
    """Return the active configuration (innermost config_context, else the default)."""
    config = _current_config.get()
    return config if config is not None else _default_config


def set_config(config: TraceDocConfig) -> None:
    """Replace the process default configuration."""
    global _default_config
    if not isinstance(config, TraceDocConfig):
        raise ConfigError(f"Expected TraceDocConfig, got {type(config).__name__}")
    _default_config = config
    logger.debug(f"Default config set: {config}")


def reset_config() -> None:
    """Restore the built-in default configuration. For testing only."""
    set_config(TraceDocConfig())


@contextmanager
def config_context(**overrides):
    """Run a block with some config fields overridden.

    Usage:
        with config_context(callback_errors="log"):
            mapchange(doc, changeset)
    """
    try:
        config = dataclasses.replace(get_config(), **overrides)
    except TypeError as e:
        raise ConfigError(str(e)) from e
    token = _current_config.set(config)
    try:
        yield config
    finally:
        _current_config.reset(token)
