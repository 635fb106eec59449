"""Per-scope handler table and synchronous dispatch.

A :class:`Registry` is not an application-wide bus. It only delivers
envelopes to its own subscribers, so communication stays between structurally
related nodes: whoever holds the registry for a scope (or its parent link).

Usage:
    registry = Registry("Tile")
    registry.subscribe(price_changed, view.on_price, predicate=is_my_symbol)
    registry.publish(price_changed.make(tick))
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import partial
import inspect
import json
import logging
from typing import Any
import weakref

from .events import EventEnvelope, EventKind
from .logging_utils import log

LOGGER = logging.getLogger(__name__)

Handler = Callable[[EventEnvelope[Any]], None]
Predicate = Callable[[EventEnvelope[Any]], bool]
DiagnosticSink = Callable[[str, str], None]


class Retention(str, Enum):
    """How a registry holds on to a subscribed handler."""

    WEAK = "weak"
    STRONG = "strong"


class _WeakBuiltinMethod:
    """Weak reference to a method implemented in C, e.g. ``some_list.append``.

    Such methods are not ``MethodType`` objects, so ``WeakMethod`` refuses
    them; track the owner and look the method up again on each call.
    """

    def __init__(self, method: Any) -> None:
        self._owner = weakref.ref(method.__self__)
        self._name = method.__name__

    def __call__(self) -> Handler | None:
        owner = self._owner()
        if owner is None:
            return None
        return getattr(owner, self._name)


def _make_ref(handler: Handler, retention: Retention) -> Any:
    if retention is Retention.STRONG:
        return handler
    # A bound method object is created per attribute access, so a plain
    # weakref to it would die immediately. WeakMethod tracks the instance.
    if inspect.ismethod(handler):
        return weakref.WeakMethod(handler)
    try:
        owner = getattr(handler, "__self__", None)
        if inspect.isbuiltin(handler) and not (owner is None or inspect.ismodule(owner)):
            return _WeakBuiltinMethod(handler)
        return weakref.ref(handler)
    except TypeError as exc:
        raise TypeError(
            f"{handler!r} cannot be weakly referenced; subscribe it with "
            "retain='strong' instead."
        ) from exc


@dataclass(eq=False)
class Subscription:
    """One handler reference plus its optional filter."""

    handler_ref: Any
    predicate: Predicate | None = None
    retention: Retention = Retention.WEAK

    def resolve(self) -> Handler | None:
        """Return the live handler, or None once a weak referent is gone."""
        if self.retention is Retention.WEAK:
            return self.handler_ref()
        return self.handler_ref

    def accepts(self, envelope: EventEnvelope[Any]) -> bool:
        return self.predicate is None or bool(self.predicate(envelope))


def _event_name(event: str | EventKind) -> str:
    if isinstance(event, EventKind):
        return event.name
    if isinstance(event, str):
        if not event:
            raise ValueError("event name must be a non-empty string.")
        return event
    raise TypeError(
        f"Expected an event name or EventKind, got {type(event).__name__}."
    )


def _render_value(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(value)


class Registry:
    """Event handlers for one scope, keyed by event name."""

    def __init__(
        self,
        name: str,
        *,
        default_retention: Retention | str = Retention.WEAK,
        log_payloads: bool = True,
        sink: DiagnosticSink | None = None,
    ) -> None:
        self._name = name
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._default_retention = Retention(default_retention)
        self._log_payloads = log_payloads
        self._sink = sink or log

    @property
    def name(self) -> str:
        """The scope name (position identifier) this registry was created for."""
        return self._name

    def __repr__(self) -> str:
        return f"<Registry {self._name!r} events={len(self._subscriptions)}>"

    def _emit(self, action: str, message: str) -> None:
        try:
            self._sink(action, message)
        except Exception:  # noqa: BLE001 - diagnostics must never break dispatch.
            LOGGER.debug("Diagnostic sink failed for %s", action, exc_info=True)

    def subscribe(
        self,
        event: str | EventKind,
        handler: Handler,
        *,
        retain: Retention | str | None = None,
        predicate: Predicate | None = None,
    ) -> None:
        """Register ``handler`` for ``event`` on this registry.

        Args:
            event: An event name or the :class:`EventKind` declaring it.
            handler: Called with each matching envelope.
            retain: ``"weak"`` (default) lets the handler's owner be reclaimed
                and the subscription pruned afterwards. ``"strong"`` keeps the
                handler alive as long as this registry; only appropriate for
                long-lived features, never for transient widgets.
            predicate: Optional filter over the envelope; the handler is only
                called when it returns true.
        """
        if not callable(handler):
            raise TypeError("handler must be callable.")
        if predicate is not None and not callable(predicate):
            raise TypeError("predicate must be callable.")
        name = _event_name(event)
        if retain is not None:
            retention = Retention(retain)
        else:
            retention = self._default_retention
        subscription = Subscription(
            handler_ref=_make_ref(handler, retention),
            predicate=predicate,
            retention=retention,
        )
        self._subscriptions.setdefault(name, []).append(subscription)

    on = subscribe

    def publish(self, envelope: EventEnvelope[Any]) -> None:
        """Deliver ``envelope`` synchronously to this registry's subscribers.

        Handlers run in subscription order. A handler exception propagates
        to the caller and the remaining handlers are not called. Weak
        handlers whose owner is gone are skipped and pruned after the pass.
        """
        if self._log_payloads:
            self._emit(
                "publish start", f"{envelope.name} = {_render_value(envelope.value)}"
            )
        else:
            self._emit("publish start", envelope.name)

        subscriptions = self._subscriptions.get(envelope.name)
        if subscriptions:
            stale: list[Subscription] = []
            # Snapshot: handlers subscribed during this pass wait for the next one.
            for subscription in tuple(subscriptions):
                handler = subscription.resolve()
                if handler is None:
                    stale.append(subscription)
                elif subscription.accepts(envelope):
                    handler(envelope)
            if stale:
                # A re-entrant publish may already have pruned some of these.
                stale_ids = {id(subscription) for subscription in stale}
                before = len(subscriptions)
                subscriptions[:] = [s for s in subscriptions if id(s) not in stale_ids]
                removed = before - len(subscriptions)
                if removed:
                    self._emit(
                        "cleanup", f"{removed} obsolete handler references removed"
                    )
        self._emit("publish done", envelope.name)

    def subscriber_count(self, event: str | EventKind) -> int:
        """Number of subscriptions held for ``event``, stale ones included."""
        return len(self._subscriptions.get(_event_name(event), ()))

    def event_names(self) -> list[str]:
        return list(self._subscriptions)


def registry_factory(dispatch_config: dict[str, Any]) -> Callable[[str], Registry]:
    """Build registries with the defaults from a ``[dispatch]`` config section."""
    return partial(
        Registry,
        default_retention=Retention(
            dispatch_config.get("default_retention", Retention.WEAK.value)
        ),
        log_payloads=bool(dispatch_config.get("log_payloads", True)),
    )
