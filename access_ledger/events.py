from __future__ import annotations

"""
access_ledger.events
--------------------

Notifications emitted by the ledger. They are append-only audit records for
external observers (indexers, dashboards); the ledger never reads them back.

The ledger only needs an object with `emit(event)`. Provided sinks:

- MemoryEventSink   keeps every event in order (tests, CLI replay)
- LoggingEventSink  writes one INFO line per event
- FanoutSink        forwards to several sinks in order
- NullSink          drops everything

Event names and args:

    RoleGranted         {"role": bytes32, "account": str, "sender": str}
    RoleRevoked         {"role": bytes32, "account": str, "sender": str}
    AddressBlacklisted  {"account": str, "sender": str}
    AddressWhitelisted  {"account": str, "sender": str}
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any, Dict, Iterable, List, Mapping, Protocol, Sequence, Tuple

log = logging.getLogger(__name__)


class EventName(str, Enum):
    ROLE_GRANTED = "RoleGranted"
    ROLE_REVOKED = "RoleRevoked"
    ADDRESS_BLACKLISTED = "AddressBlacklisted"
    ADDRESS_WHITELISTED = "AddressWhitelisted"


@dataclass(frozen=True)
class LedgerEvent:
    name: EventName
    args: Mapping[str, Any]
    seq: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "name": self.name.value,
            "args": {k: _json_value(v) for k, v in self.args.items()},
        }

    def canonical(self) -> Dict[str, Any]:
        """
        Receipt-style encoding:

            name: "0x" + hex of the event name bytes
            args: sequence of {"k", "t", "v"} dicts
                  t="b" => bytes as 0x-prefixed hex
                  t="s" => string (addresses)
                  t="i" => integer
                  t="z" => boolean
        """
        enc: List[Dict[str, Any]] = []
        for k, v in self.args.items():
            if isinstance(v, (bytes, bytearray)):
                enc.append({"k": k, "t": "b", "v": "0x" + bytes(v).hex()})
            elif isinstance(v, bool):
                enc.append({"k": k, "t": "z", "v": v})
            elif isinstance(v, int):
                enc.append({"k": k, "t": "i", "v": int(v)})
            else:
                enc.append({"k": k, "t": "s", "v": str(v)})
        return {"name": "0x" + self.name.value.encode("ascii").hex(), "args": enc}


def _json_value(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, Enum):
        return v.value
    return v


class EventSink(Protocol):
    def emit(self, event: LedgerEvent) -> None: ...


class MemoryEventSink:
    """Append-only in-memory sink."""

    def __init__(self) -> None:
        self._events: List[LedgerEvent] = []
        self._lock = Lock()

    def emit(self, event: LedgerEvent) -> None:
        with self._lock:
            self._events.append(event)

    def events(self) -> Tuple[LedgerEvent, ...]:
        # Expose a stable snapshot
        with self._lock:
            return tuple(self._events)

    def names(self) -> List[str]:
        return [e.name.value for e in self.events()]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class LoggingEventSink:
    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._log = logger or log
        self._level = level

    def emit(self, event: LedgerEvent) -> None:
        d = event.to_dict()
        self._log.log(self._level, "event %s", d["name"], extra={"event_seq": d["seq"], "event_args": d["args"]})


class FanoutSink:
    def __init__(self, sinks: Iterable[EventSink]) -> None:
        self._sinks: Sequence[EventSink] = tuple(sinks)

    def emit(self, event: LedgerEvent) -> None:
        for s in self._sinks:
            s.emit(event)


class NullSink:
    def emit(self, event: LedgerEvent) -> None:
        return None


@dataclass
class EventBuffer:
    """
    Events staged by a single ledger call. Nothing reaches the sink until the
    call has finished mutating state; a rejected call discards its buffer.
    """

    pending: List[Tuple[EventName, Dict[str, Any]]] = field(default_factory=list)

    def add(self, name: EventName, **args: Any) -> None:
        self.pending.append((name, args))

    def __len__(self) -> int:
        return len(self.pending)


__all__ = [
    "EventName",
    "LedgerEvent",
    "EventSink",
    "MemoryEventSink",
    "LoggingEventSink",
    "FanoutSink",
    "NullSink",
    "EventBuffer",
]
