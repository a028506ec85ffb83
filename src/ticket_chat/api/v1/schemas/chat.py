from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ticket_chat.application.dto.message import HistoryPage, SendMessageDTO
from ticket_chat.domain.entities.ticket import Participant, TicketSummary
from ticket_chat.domain.value_objects.enums import MessageType
from ticket_chat.infrastructure.ws.protocol import AttachmentIn, ChatMessageOut


class _CamelSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginationResponse(_CamelSchema):
    page: int
    limit: int
    total: int
    has_more: bool


class TicketSummaryResponse(_CamelSchema):
    id: str
    ticket_number: str
    title: str
    status: str
    priority: str

    @classmethod
    def from_entity(cls, t: TicketSummary) -> TicketSummaryResponse:
        return cls(
            id=t.id,
            ticket_number=t.ticket_number,
            title=t.title,
            status=t.status,
            priority=t.priority,
        )


class ParticipantResponse(_CamelSchema):
    id: str
    name: str
    email: str | None = None
    role: str
    type: str
    company_name: str | None = None

    @classmethod
    def from_entity(cls, p: Participant) -> ParticipantResponse:
        return cls(
            id=p.id,
            name=p.name,
            email=p.email,
            role=p.role,
            type=p.type,
            company_name=p.company_name,
        )


class ParticipantsResponse(_CamelSchema):
    ticket: TicketSummaryResponse
    participants: list[ParticipantResponse]

    @classmethod
    def build(cls, ticket: TicketSummary, participants: list[Participant]) -> ParticipantsResponse:
        return cls(
            ticket=TicketSummaryResponse.from_entity(ticket),
            participants=[ParticipantResponse.from_entity(p) for p in participants],
        )


class ChatViewResponse(ParticipantsResponse):
    messages: list[ChatMessageOut]
    pagination: PaginationResponse

    @classmethod
    def build_view(
        cls,
        history: HistoryPage,
        ticket: TicketSummary,
        participants: list[Participant],
    ) -> ChatViewResponse:
        p = history.pagination
        return cls(
            messages=[ChatMessageOut.from_entity(m) for m in history.messages],
            pagination=PaginationResponse(
                page=p.page, limit=p.limit, total=p.total, has_more=p.has_more,
            ),
            ticket=TicketSummaryResponse.from_entity(ticket),
            participants=[ParticipantResponse.from_entity(x) for x in participants],
        )


class PresenceResponse(_CamelSchema):
    ticket_id: str
    active_users: list[str]


class SendChatMessageRequest(_CamelSchema):
    message: str | None = None
    message_type: MessageType = MessageType.TEXT
    attachments: list[AttachmentIn] = Field(default_factory=list)

    def to_dto(self, ticket_id: str) -> SendMessageDTO:
        return SendMessageDTO(
            ticket_id=ticket_id,
            text=self.message.strip() if self.message else None,
            attachments=tuple(a.to_entity() for a in self.attachments),
            message_type=self.message_type,
        )


class SentMessageResponse(_CamelSchema):
    message: ChatMessageOut
