"""
Meal photo analysis service.

Accepts a base64 meal photo, asks a vision-language model for a nutrition
estimate and returns a normalized, bounded result.

Structure:
- domain/: result models, normalizer, prompts, errors
- infrastructure/: OpenAI and stub vision clients
- application/: analysis use case
- metrics/: in-memory counters and histograms
- api/: FastAPI app
"""

__version__ = "1.0.0"
