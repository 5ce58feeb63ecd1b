"""
Event dispatcher: logs each classified event in a per-kind format and fans it
out to subscribed callbacks.

Transactions are logged whole in ``full`` mode and reduced by
:func:`~ws402.classifier.summarize_transaction` in ``summary`` mode.
"""

import json
import logging
from typing import Any, Callable, Union

from ws402.classifier import summarize_transaction
from ws402.models.events import (
    AccountEvent,
    EventKind,
    InboundEvent,
    LeaderboardEvent,
    LifecycleEvent,
    SlotEvent,
    StatusEvent,
    TickerEvent,
    TransactionEvent,
    Unrecognized,
)

logger = logging.getLogger(__name__)

ALL_EVENTS = "*"

EventCallback = Callable[[Union[InboundEvent, Unrecognized]], None]


def format_meta(meta: dict[str, Any]) -> str:
    try:
        return json.dumps(meta, default=str)
    except (TypeError, ValueError):
        return '"[unserializable]"'


class EventDispatcher:
    def __init__(self, mode: str = "full"):
        self.mode = mode
        self._callbacks: dict[str, list[EventCallback]] = {}

    def on(self, kind: str, callback: EventCallback) -> Callable[[], None]:
        """Subscribe to one event kind (or ``"*"``). Returns a cleanup function."""
        callbacks = self._callbacks.setdefault(kind, [])
        callbacks.append(callback)

        def remove() -> None:
            try:
                callbacks.remove(callback)
            except ValueError:
                pass
        return remove

    def describe(self, event: Union[InboundEvent, Unrecognized]) -> tuple[str, dict[str, Any]]:
        """Log label and metadata for an event."""
        if isinstance(event, StatusEvent):
            return "status", {
                "clientId": event.client_id,
                "grpcConnected": event.grpc_connected,
                "nodeHealthy": event.node_healthy,
                "watchedAccounts": event.watched_accounts,
                "watchedMints": event.watched_mints,
            }
        if isinstance(event, TransactionEvent):
            if self.mode == "summary":
                return "transaction", summarize_transaction(event)
            return "transaction", {"event": event.model_dump(by_alias=True, mode="json")}
        if isinstance(event, AccountEvent):
            return "account", {
                "pubkey": event.pubkey, "owner": event.owner,
                "slot": event.slot, "encoding": event.data_encoding,
            }
        if isinstance(event, SlotEvent):
            return "slot", {"slot": event.slot, "parent": event.parent, "status": event.status}
        if isinstance(event, TickerEvent):
            return "ticker", {
                "baseMint": event.base_mint, "quoteMint": event.quote_mint,
                "price": event.price, "dex": event.dex, "slot": event.slot,
            }
        if isinstance(event, LeaderboardEvent):
            return "leaderboard", {"items": len(event.items), "asOf": event.as_of}
        if isinstance(event, LifecycleEvent):
            return "ws event", {"op": event.op}
        return "ws event ignored", {"reason": event.reason}

    def dispatch(self, event: Union[InboundEvent, Unrecognized]) -> None:
        label, meta = self.describe(event)
        if event.kind == EventKind.UNRECOGNIZED:
            logger.warning("%s %s", label, format_meta(meta))
        else:
            logger.info("%s %s", label, format_meta(meta))

        for callback in [*self._callbacks.get(event.kind, ()), *self._callbacks.get(ALL_EVENTS, ())]:
            try:
                callback(event)
            except Exception:
                logger.exception("Event callback failed for %s", event.kind)
