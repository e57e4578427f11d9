"""Server entrypoint: ``uvicorn mealscan.main:app`` or the ``mealscan`` script."""

from __future__ import annotations

import os

import uvicorn

from mealscan.api.app import create_app

app = create_app()


def main() -> None:
    uvicorn.run(
        "mealscan.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
