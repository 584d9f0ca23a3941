"""Broker configuration helpers for the synchronisation actor.

This private module makes sure a Dramatiq broker exists before the actor is
declared, falling back to a StubBroker only for tests and explicit local runs.
"""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

_BROKER_LOCK = threading.Lock()
_broker_configured = False


def _is_running_tests() -> bool:
    """Return True when the current process is a pytest run."""
    return "pytest" in sys.modules or any(
        key in os.environ
        for key in ["PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS"]
    )


def _should_use_stub_broker() -> bool:
    """Return True if ``BOTHY_ALLOW_STUB_BROKER`` is truthy or under pytest."""
    allow_stub = os.environ.get("BOTHY_ALLOW_STUB_BROKER", "")
    return allow_stub.lower() in {"1", "true", "yes"} or _is_running_tests()


def ensure_broker_configured() -> None:
    """Ensure a Dramatiq broker is configured.

    Thread-safe and idempotent.

    Raises
    ------
    RuntimeError
        If no broker is available and stub brokers are not allowed.

    """
    global _broker_configured

    if _broker_configured:
        return

    with _BROKER_LOCK:
        if _broker_configured:
            return

        try:  # pragma: no cover - depends on installed broker extras
            current_broker = dramatiq.get_broker()
        except (ImportError, LookupError):
            # ImportError: the default RabbitMQ broker's client is not installed
            current_broker = None

        if current_broker is None:
            if _should_use_stub_broker():
                dramatiq.set_broker(StubBroker())
            else:  # pragma: no cover - guard for prod misconfigurations
                message = (
                    "No Dramatiq broker configured. "
                    "Set BOTHY_ALLOW_STUB_BROKER=1 for "
                    "local/test runs or configure a real broker."
                )
                raise RuntimeError(message)

        _broker_configured = True
