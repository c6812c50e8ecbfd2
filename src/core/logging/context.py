"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_trace_id: ContextVar[str] = ContextVar("trace_id", default="")
_resource_key: ContextVar[str] = ContextVar("resource_key", default="")
_component: ContextVar[str] = ContextVar("component", default="")


def set_log_context(
    trace_id: Optional[str] = None,
    resource_key: Optional[str] = None,
    component: Optional[str] = None,
) -> None:
    if trace_id is not None:
        _trace_id.set(trace_id)
    if resource_key is not None:
        _resource_key.set(resource_key)
    if component is not None:
        _component.set(component)


def get_log_context() -> Dict[str, str]:
    return {
        "trace_id": _trace_id.get(),
        "resource_key": _resource_key.get(),
        "component": _component.get(),
    }


def clear_log_context() -> None:
    _trace_id.set("")
    _resource_key.set("")
    _component.set("")
