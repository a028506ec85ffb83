from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        if isinstance(o, (set, frozenset)):
            return sorted(o)
        return super().default(o)


@dataclass(frozen=True, slots=True)
class FanoutEnvelope:
    topic: str
    event: str
    data: dict[str, Any]
    exclude: frozenset[str] = frozenset()


def serialize_envelope(envelope: FanoutEnvelope) -> str:
    return json.dumps(
        {
            "topic": envelope.topic,
            "event": envelope.event,
            "data": envelope.data,
            "exclude": envelope.exclude,
        },
        cls=_Encoder,
    )


def deserialize_envelope(raw: str | bytes) -> FanoutEnvelope:
    data = json.loads(raw)
    return FanoutEnvelope(
        topic=data["topic"],
        event=data["event"],
        data=data.get("data") or {},
        exclude=frozenset(data.get("exclude") or ()),
    )
