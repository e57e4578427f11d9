"""
Process configuration.

Read once at startup from the environment (``.env`` loaded first via
python-dotenv) and injected into the app factory. Nothing reads
``os.environ`` after ``load_settings()`` returns.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from mealscan import __version__
from mealscan.domain.meal.analysis.normalizer import TotalPolicy

DEFAULT_MODEL = "gpt-4o-mini"

VISION_PROVIDERS = ("openai", "stub")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the analysis service."""

    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = DEFAULT_MODEL
    temperature: float = 0.2
    max_tokens: int = 900
    timeout_s: float = 30.0
    vision_provider: str = "openai"
    total_policy: TotalPolicy = TotalPolicy.COMPUTED_WHEN_ZERO_OR_ABSENT
    log_level: str = "INFO"
    log_format: str = "console"
    app_version: str = __version__

    def masked_api_key(self) -> Optional[str]:
        """API key safe for logs."""
        key = self.openai_api_key
        if not key:
            return None
        if len(key) > 8:
            return key[:4] + "..." + key[-4:]
        return "***"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Build ``Settings`` from environment variables.

    Args:
        env_file: Optional path to a dotenv file (default: ``.env`` lookup)

    Raises:
        ValueError: On malformed values (unknown provider/policy, bad numbers)

    Example:
        >>> settings = load_settings()
        >>> settings.openai_model
        'gpt-4o-mini'
    """
    load_dotenv(env_file)

    provider = os.getenv("VISION_PROVIDER", "openai").strip().lower()
    if provider not in VISION_PROVIDERS:
        raise ValueError(
            f"VISION_PROVIDER must be one of {', '.join(VISION_PROVIDERS)}, got {provider!r}"
        )

    policy_raw = os.getenv("TOTAL_RECONCILIATION", TotalPolicy.COMPUTED_WHEN_ZERO_OR_ABSENT.value)
    try:
        policy = TotalPolicy(policy_raw.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(p.value for p in TotalPolicy)
        raise ValueError(f"TOTAL_RECONCILIATION must be one of {allowed}") from exc

    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
        openai_model=os.getenv("OPENAI_VISION_MODEL", DEFAULT_MODEL),
        temperature=_env_float("OPENAI_TEMPERATURE", 0.2),
        max_tokens=_env_int("OPENAI_MAX_TOKENS", 900),
        timeout_s=_env_float("OPENAI_TIMEOUT_S", 30.0),
        vision_provider=provider,
        total_policy=policy,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "console").lower(),
        app_version=os.getenv("APP_VERSION", __version__),
    )
