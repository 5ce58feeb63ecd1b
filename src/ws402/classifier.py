"""
Inbound message classification.

``classify`` maps one raw websocket frame to exactly one event variant, or to
:class:`Unrecognized`. Predicates are tried in a fixed order and the first
match wins, since several variants share optional fields.
"""

import json
import math
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from ws402.errors import MalformedEvent
from ws402.models.events import (
    LIFECYCLE_MODELS,
    AccountEvent,
    EnhancedTransactionEvent,
    InboundEvent,
    LeaderboardEvent,
    RawTransactionEvent,
    ServerOp,
    SlotEvent,
    StatusEvent,
    TickerEvent,
    TransactionEvent,
    Unrecognized,
    WireModel,
)

MAX_SUMMARY_MINTS = 5

Record = dict[str, Any]


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _has_type(record: Record, type_: str) -> bool:
    return record.get("type") == type_


def _is_slot_number(value: Any) -> bool:
    return _is_number(value) and float(value).is_integer()


def _parse_transaction(record: Record) -> WireModel:
    model = EnhancedTransactionEvent if "nativeTransfers" in record else RawTransactionEvent
    return model.model_validate(record)


def _parse_lifecycle(record: Record) -> WireModel:
    """Lifecycle frames are decided by ``op``; optional fields that fail validation are dropped."""
    model = LIFECYCLE_MODELS[record["op"]]
    try:
        return model.model_validate(record)
    except ValidationError as e:
        bad = {err["loc"][0] for err in e.errors() if err["loc"]} - {"op"}
        return model.model_validate({key: value for key, value in record.items() if key not in bad})


_Rule = tuple[str, Callable[[Record], bool], Callable[[Record], WireModel]]

RULES: list[_Rule] = [
    ("status", lambda r: _has_type(r, "status") and _is_str(r.get("now")), StatusEvent.model_validate),
    ("transaction", lambda r: _has_type(r, "transaction") and _is_str(r.get("signature")), _parse_transaction),
    ("account", lambda r: _has_type(r, "account") and _is_str(r.get("pubkey")), AccountEvent.model_validate),
    ("slot", lambda r: _has_type(r, "slot") and _is_slot_number(r.get("slot")), SlotEvent.model_validate),
    ("ticker", lambda r: _has_type(r, "ticker") and _is_str(r.get("baseMint")), TickerEvent.model_validate),
    ("leaderboard", lambda r: _has_type(r, "leaderboard") and isinstance(r.get("items"), list),
     LeaderboardEvent.model_validate),
    ("lifecycle", lambda r: _is_str(r.get("op")) and r["op"] in ServerOp.ALL, _parse_lifecycle),
]


def decode(raw: Union[bytes, str, Record]) -> Any:
    """Decode a frame to JSON. Raises MalformedEvent."""
    if isinstance(raw, dict):
        return raw
    try:
        text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
        return json.loads(text)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedEvent(f"undecodable frame: {e}")


def classify(raw: Union[bytes, str, Record]) -> Union[InboundEvent, Unrecognized]:
    try:
        value = decode(raw)
    except MalformedEvent as e:
        return Unrecognized(reason=str(e), payload=raw if isinstance(raw, str) else None)

    if not isinstance(value, dict):
        return Unrecognized(reason="invalid shape: not a JSON object", payload=value)

    for name, matches, parse in RULES:
        if not matches(value):
            continue
        try:
            return parse(value)  # type: ignore[return-value]
        except ValidationError as e:
            return Unrecognized(reason=f"{name} event failed validation: {e.error_count()} error(s)", payload=value)

    return Unrecognized(reason="invalid shape", payload=value)


def _first_mints(mints: list[Optional[str]]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for mint in mints:
        if mint and mint not in seen:
            seen.add(mint)
            ordered.append(mint)
    return ordered[:MAX_SUMMARY_MINTS]


def summarize_transaction(event: TransactionEvent) -> dict[str, Any]:
    """Compact view: signature, slot, commitment, a transfer count and up to five distinct mints."""
    summary: dict[str, Any] = {
        "signature": event.signature,
        "slot": event.slot,
        "commitment": event.commitment,
    }
    if isinstance(event, EnhancedTransactionEvent):
        mints = [t.mint for t in event.token_transfers]
        for data in event.account_data:
            mints.extend(change.mint for change in data.token_balance_changes)
        summary["tokenTransfers"] = len(event.token_transfers)
    elif isinstance(event, RawTransactionEvent):
        changes = event.token_balance_changes or []
        mints = [change.mint for change in changes]
        summary["tokenBalanceChanges"] = len(changes)
    else:
        mints = []
    summary["mints"] = _first_mints(mints)
    return summary
