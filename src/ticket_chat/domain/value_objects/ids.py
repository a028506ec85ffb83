from __future__ import annotations


def ticket_topic(ticket_id: str) -> str:
    return f"ticket:{ticket_id}"


def user_topic(user_id: str) -> str:
    return f"user:{user_id}"
