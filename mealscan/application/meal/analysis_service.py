"""
Meal analysis service.

Validate the photo, call the vision model once, decode its reply and
normalize it into a ``MealAnalysisResult``.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from mealscan.config import Settings
from mealscan.domain.meal.analysis.models import MealAnalysisResult
from mealscan.domain.meal.analysis.normalizer import normalize
from mealscan.domain.meal.analysis.prompts import (
    PROMPT_VERSION,
    build_vision_messages,
    extract_json_object,
)
from mealscan.domain.shared.errors import (
    EmptyModelResponseError,
    MissingImageError,
    ModelOutputError,
    UpstreamHTTPError,
)
from mealscan.infrastructure.ai.factory import VisionClient
from mealscan.metrics import analysis as metrics

logger = structlog.get_logger(__name__)


class MealAnalysisService:
    """
    Use case: meal photo -> bounded nutrition estimate.

    Stateless apart from the injected client and settings; safe to share
    across concurrent requests.

    Example:
        >>> service = MealAnalysisService(client=OpenAIClient(), settings=load_settings())
        >>> result = await service.analyze(image_base64)
        >>> print(result.total.kcal)
    """

    def __init__(self, client: VisionClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or Settings()

    @staticmethod
    def validate_image(image_base64: Any) -> str:
        """
        Return the image payload or raise ``MissingImageError``.

        Only non-blank strings are accepted.
        """
        if not isinstance(image_base64, str) or not image_base64.strip():
            raise MissingImageError()
        return image_base64

    async def analyze(self, image_base64: Any) -> MealAnalysisResult:
        """
        Analyze one meal photo.

        Args:
            image_base64: Base64 JPEG (or a ``data:`` URL)

        Returns:
            Normalized MealAnalysisResult

        Raises:
            MissingImageError: No usable image
            UpstreamHTTPError: Vision API answered non-2xx
            EmptyModelResponseError: Completion had no content
            NonJSONModelContentError: Completion content is not JSON
        """
        try:
            image = self.validate_image(image_base64)
        except MissingImageError:
            metrics.record_request("invalid_input")
            raise

        logger.info(
            "analyze.request",
            model=self.client.model,
            prompt_version=PROMPT_VERSION,
            image_chars=len(image),
        )

        with metrics.time_analysis():
            try:
                response = await self.client.complete(
                    messages=build_vision_messages(image),
                    response_format={"type": "json_object"},
                    temperature=self.settings.temperature,
                    max_tokens=self.settings.max_tokens,
                )
            except UpstreamHTTPError as exc:
                metrics.record_request("upstream_error")
                metrics.record_upstream_error(exc.status_code)
                logger.warning("analyze.upstream_error", status=exc.status_code)
                raise
            except Exception:
                metrics.record_request("failed")
                raise

            try:
                parsed = self._decode(response)
            except ModelOutputError as exc:
                status = "empty_response" if isinstance(exc, EmptyModelResponseError) else "non_json"
                metrics.record_request(status)
                logger.warning("analyze.model_output_error", reason=status)
                raise

            result = normalize(parsed, policy=self.settings.total_policy)

        metrics.record_request("completed")
        metrics.record_items(result.item_count())
        logger.info(
            "analyze.completed",
            items=result.item_count(),
            kcal=result.total.kcal,
            confidence=result.confidence,
            finish_reason=response.get("finish_reason"),
        )
        return result

    @staticmethod
    def _decode(response: dict[str, Any]) -> Any:
        content = response.get("content") or ""
        if not isinstance(content, str) or not content.strip():
            raise EmptyModelResponseError(response.get("raw_text"))
        return extract_json_object(content)
