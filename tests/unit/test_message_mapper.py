from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from ticket_chat.domain.entities.message import Attachment
from ticket_chat.infrastructure.db.mappers.message import (
    as_utc,
    entity_to_model,
    model_to_entity,
    to_naive_utc,
)
from tests.conftest import T0, make_message


def test_entity_to_model_stores_naive_utc():
    local = T0.astimezone(timezone(timedelta(hours=5, minutes=30)))
    model = entity_to_model(make_message(created_at=local))

    assert model.created_at.tzinfo is None
    assert model.created_at == datetime(2024, 5, 1, 12, 0)


def test_model_to_entity_attaches_utc():
    model = entity_to_model(make_message())
    model.created_at = datetime(2024, 5, 1, 12, 0, 0, 123000)

    entity = model_to_entity(model)

    assert entity.created_at == datetime(2024, 5, 1, 12, 0, 0, 123000, tzinfo=timezone.utc)
    assert entity.created_at.isoformat().endswith("+00:00")


def test_attachments_round_trip_through_s3_key():
    attachment = Attachment(
        file_name="grn.pdf",
        url="https://files.example.com/grn.pdf",
        storage_key="tickets/ticket-1/grn.pdf",
        mime_type="application/pdf",
        file_size=2048,
    )
    msg = replace(make_message(text=None), attachments=(attachment,))
    model = entity_to_model(msg)

    assert model.attachments == [
        {
            "fileName": "grn.pdf",
            "url": "https://files.example.com/grn.pdf",
            "s3Key": "tickets/ticket-1/grn.pdf",
            "mimeType": "application/pdf",
            "fileSize": 2048,
        }
    ]
    assert model_to_entity(model).attachments == (attachment,)


def test_time_helpers():
    assert to_naive_utc(T0) == datetime(2024, 5, 1, 12, 0)
    assert as_utc(datetime(2024, 5, 1, 12, 0)) == T0
    assert as_utc(T0.astimezone(timezone(timedelta(hours=-4)))).tzinfo == timezone.utc
