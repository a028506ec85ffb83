"""Entrypoint: python -m ticket_chat"""
from __future__ import annotations

import uvicorn

from ticket_chat.config import settings
from ticket_chat.logging_config import configure_logging


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "ticket_chat.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
