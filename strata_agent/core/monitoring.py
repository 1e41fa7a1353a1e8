"""
Monitoring and tracing through Pydantic Logfire.

Monitoring is off unless ``LOGFIRE_ENABLED`` is set and a ``LOGFIRE_TOKEN`` is
available. When it is on, outgoing HTTPX requests (model calls and
``fetchUrl``) are traced and the helpers below send model-call and action
failure events. The helpers are no-ops until ``initialize_logfire`` succeeds,
so callers never need to check whether monitoring is configured.

Install the optional dependency with ``pip install strata-agent[monitoring]``.
"""

from __future__ import annotations

import os
from typing import Any, Optional

from .logging_config import get_logger

logger = get_logger(__name__)

# Logfire configuration from environment
LOGFIRE_ENABLED = os.getenv("LOGFIRE_ENABLED", "false").lower() in ("true", "1", "yes")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_PROJECT_NAME = os.getenv("LOGFIRE_PROJECT_NAME", "strata-agent")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "strata-agent")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")

# Sampling configuration
LOGFIRE_SAMPLE_RATE = float(os.getenv("LOGFIRE_SAMPLE_RATE", "1.0"))
LOGFIRE_TRACE_SAMPLE_RATE = float(os.getenv("LOGFIRE_TRACE_SAMPLE_RATE", "1.0"))

# Feature flags
LOGFIRE_TRACE_HTTPX = os.getenv("LOGFIRE_TRACE_HTTPX", "true").lower() in ("true", "1", "yes")

_logfire: Any = None


def is_monitoring_enabled() -> bool:
    return _logfire is not None


def initialize_logfire() -> bool:
    """
    Configure Logfire when monitoring is enabled.

    Safe to call more than once; later calls are ignored once configured.

    Returns:
        True if Logfire is configured after the call.
    """
    global _logfire

    if _logfire is not None:
        return True

    if not LOGFIRE_ENABLED:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return False

    if not LOGFIRE_TOKEN:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        return False

    try:
        import logfire
        from logfire import SamplingOptions

        logfire.configure(
            token=LOGFIRE_TOKEN,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
            sampling=SamplingOptions(
                head=LOGFIRE_SAMPLE_RATE,
                tail=LOGFIRE_TRACE_SAMPLE_RATE,
            ),
        )

        if LOGFIRE_TRACE_HTTPX:
            try:
                logfire.instrument_httpx()
                logger.info("Logfire: HTTPX instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument HTTPX: {e}")

        _logfire = logfire
        logger.info(
            f"Logfire monitoring initialized: "
            f"project={LOGFIRE_PROJECT_NAME}, "
            f"environment={LOGFIRE_ENVIRONMENT}, "
            f"service={LOGFIRE_SERVICE_NAME}"
        )
        return True

    except ImportError:
        logger.warning(
            "Logfire is enabled but 'logfire' package is not installed. "
            "Install it with: pip install strata-agent[monitoring]"
        )
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
    return False


def log_llm_call(model: str, tokens_used: Optional[int], retries: int = 0) -> None:
    """
    Log a completed model call.

    Args:
        model: The model name.
        tokens_used: Total tokens reported by the service, if any.
        retries: Backoff pauses taken before the call succeeded.
    """
    if _logfire is None:
        return
    try:
        _logfire.info(
            "LLM call completed",
            model=model,
            tokens_used=tokens_used,
            retries=retries,
        )
    except Exception:
        logger.debug(f"Could not log LLM call to Logfire: model={model}")


def log_error(error_type: str, error_message: str, context: Optional[dict] = None) -> None:
    if _logfire is None:
        return
    try:
        _logfire.error(
            f"{error_type}: {error_message}",
            **(context or {}),
        )
    except Exception:
        logger.debug(f"Could not log error to Logfire: {error_type}")
