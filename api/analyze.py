"""Vercel serverless entrypoint for ``/api/analyze``."""

from __future__ import annotations

from mealscan.api.app import create_app

app = create_app()

__all__ = ["app"]
