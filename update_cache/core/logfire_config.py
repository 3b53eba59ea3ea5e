"""
Logfire Configuration Module

Logfire configuration and instrumentation for update-cache.

Usage:
    from update_cache.core.logfire_config import initialize_logfire

    results = initialize_logfire(app)  # idempotent; safe to call at startup
    # results: {"configured": bool, "instrumentation": {...}}
"""

import logging
from typing import Any, Dict, Optional

import logfire
from fastapi import FastAPI

from update_cache.core.config import settings
from update_cache.core.logger import setup_logfire_handler


class _LogfireState:
    """Internal state management for logfire configuration."""

    def __init__(self) -> None:
        self.configured = False
        self.instrumented = False
        self.instrument_results: Dict[str, bool] = {"redis": False}

    def get_instrument_results(self) -> Dict[str, bool]:
        """Get a copy of the current instrumentation results."""
        return self.instrument_results.copy()


_state = _LogfireState()


def _custom_scrub_callback(match: Any) -> Any:
    """
    Keep deployment keys and request IDs visible; redact everything else Logfire flags.

    Deployment keys look like secrets to the default scrubber but are needed
    to correlate metrics writes.
    """
    allowed_keys = {"rid", "deployment_key", "expiry_key"}
    if any(str(part).lower() in allowed_keys for part in match.path):
        return match.value
    return None


def setup_logfire() -> bool:
    """
    Set up basic logfire configuration.

    Returns:
        bool: True if logfire was successfully configured, False otherwise
    """
    logger = logging.getLogger("update_cache.logfire")

    if not settings.logfire__enabled or _state.configured:
        return _state.configured

    try:
        config_kwargs: Dict[str, Any] = {
            "service_name": settings.logfire__service_name,
            "environment": settings.logfire__environment,
        }

        if settings.logfire__disable_scrubbing:
            config_kwargs["scrubbing"] = False
        else:
            config_kwargs["scrubbing"] = logfire.ScrubbingOptions(
                callback=_custom_scrub_callback
            )

        if settings.logfire__token:
            config_kwargs["token"] = settings.logfire__token.get_secret_value()

        logfire.configure(**config_kwargs)
        logging.getLogger("update_cache.startup").info(
            "Logfire initialized for service: %s", settings.logfire__service_name
        )

        setup_logfire_handler()

        _state.configured = True
        return True

    except Exception as e:
        logger.error("Failed to initialize logfire: %s", e)
        return False


def instrument_logfire() -> Dict[str, bool]:
    """
    Set up logfire instrumentation for the redis client library.

    Returns:
        dict: Instrumentation result per library
    """
    logger = logging.getLogger("update_cache.logfire")

    if not settings.logfire__enabled or _state.instrumented:
        return _state.get_instrument_results()

    if settings.logfire__instrument__redis:
        try:
            logfire.instrument_redis()
            logger.info("Logfire Redis instrumentation enabled")
            _state.instrument_results["redis"] = True
        except Exception as e:
            logger.warning("Failed to instrument Redis with logfire: %s", e)

    _state.instrumented = True
    return _state.get_instrument_results()


def instrument_fastapi(app: FastAPI) -> bool:
    """
    Set up logfire instrumentation for FastAPI.

    Args:
        app: The FastAPI application instance

    Returns:
        bool: True if FastAPI was successfully instrumented, False otherwise
    """
    logger = logging.getLogger("update_cache.logfire")

    if not settings.logfire__enabled or not settings.logfire__instrument__fastapi:
        return False

    try:
        logfire.instrument_fastapi(app, capture_headers=True)
        logger.info("FastAPI instrumented with logfire")
        return True

    except Exception as e:
        logger.error("Failed to instrument FastAPI with logfire: %s", e)
        return False


def initialize_logfire(app: Optional[FastAPI] = None) -> Dict[str, Any]:
    """
    Complete logfire initialization including configuration and instrumentation.

    Args:
        app: Optional FastAPI application instance for instrumentation

    Returns:
        dict: Initialization results with status for each component
    """
    results: Dict[str, Any] = {
        "configured": False,
        "instrumentation": {"redis": False, "fastapi": False},
    }

    results["configured"] = setup_logfire()

    if results["configured"]:
        results["instrumentation"].update(instrument_logfire())
        if app is not None:
            results["instrumentation"]["fastapi"] = instrument_fastapi(app)

    return results


def is_logfire_enabled() -> bool:
    """Check if logfire is enabled in settings."""
    return settings.logfire__enabled
