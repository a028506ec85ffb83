from __future__ import annotations

from enum import StrEnum


class MessageType(StrEnum):
    TEXT = "TEXT"
    FILE = "FILE"
    IMAGE = "IMAGE"
    SYSTEM = "SYSTEM"


class Role(StrEnum):
    ADMIN = "ADMIN"
    OPS = "OPS"
    ACCOUNTS = "ACCOUNTS"
    VENDOR = "VENDOR"


class ChatErrorType(StrEnum):
    ACCESS_DENIED = "ACCESS_DENIED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    JOIN_ERROR = "JOIN_ERROR"
    SEND_ERROR = "SEND_ERROR"


class ParticipantType(StrEnum):
    CREATOR = "creator"
    ASSIGNEE = "assignee"
    VENDOR = "vendor"
    VERIFIER = "verifier"
