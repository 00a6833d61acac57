"""
Workflow hook bus: the one seam between the document and section machines.

The document state machine never writes section rows itself.  When a
document is approved it emits ``DOCUMENT_APPROVED``; the content workflow
subscribes and cascades the approval to every required section.  Keeping
the coupling behind this bus lets tests run either machine alone (no
subscribers) or both together.

Listeners run synchronously inside the emitter's transaction; an exception
in a listener propagates and the emitter rolls back.

Usage:
    from collab_portal.services import workflow_events

    @workflow_events.subscribe(workflow_events.DOCUMENT_APPROVED)
    def _on_document_approved(*, event, country_id, actor):
        ...

    workflow_events.emit(workflow_events.DOCUMENT_APPROVED,
                         event=event, country_id=country_id, actor=user)
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

DOCUMENT_APPROVED = "document_approved"

_listeners: dict[str, list[Callable]] = {}


def subscribe(name: str):
    """Decorator registering ``fn`` as a listener for hook ``name``."""
    def decorator(fn: Callable) -> Callable:
        bucket = _listeners.setdefault(name, [])
        if fn not in bucket:
            bucket.append(fn)
        return fn
    return decorator


def unsubscribe(name: str, fn: Callable) -> None:
    """Remove ``fn`` from hook ``name``; unknown listeners are ignored."""
    bucket = _listeners.get(name, [])
    if fn in bucket:
        bucket.remove(fn)


def listeners(name: str) -> list[Callable]:
    """Return a copy of the listeners registered for ``name``."""
    return list(_listeners.get(name, []))


def emit(name: str, **payload) -> int:
    """Call every listener of ``name`` with ``payload``; return how many ran."""
    handlers = listeners(name)
    for handler in handlers:
        logger.debug("Dispatching %s to %s", name, handler.__qualname__)
        handler(**payload)
    return len(handlers)
