"""Context variables injected into every log record.

Uses contextvars so values follow asyncio tasks; each worker process
carries its own copy.
"""

from contextvars import ContextVar
from typing import Dict, Optional

_domain: ContextVar[Optional[str]] = ContextVar("log_domain", default=None)
_stage: ContextVar[Optional[str]] = ContextVar("log_stage", default=None)
_cycle_id: ContextVar[Optional[str]] = ContextVar("log_cycle_id", default=None)
_worker_id: ContextVar[Optional[str]] = ContextVar("log_worker_id", default=None)

_VARS = {
    "domain": _domain,
    "stage": _stage,
    "cycle_id": _cycle_id,
    "worker_id": _worker_id,
}


def set_log_context(
    domain: Optional[str] = None,
    stage: Optional[str] = None,
    cycle_id: Optional[str] = None,
    worker_id: Optional[str] = None,
) -> None:
    """Set context fields. Arguments left as None are not changed."""
    values = {
        "domain": domain,
        "stage": stage,
        "cycle_id": cycle_id,
        "worker_id": worker_id,
    }
    for key, value in values.items():
        if value is not None:
            _VARS[key].set(value)


def get_log_context() -> Dict[str, Optional[str]]:
    """Return all context fields (missing ones as None)."""
    return {key: var.get() for key, var in _VARS.items()}


def clear_log_context() -> None:
    """Reset all context fields to None."""
    for var in _VARS.values():
        var.set(None)
