import logging
from typing import Optional

from google import genai

from veo_generator.config import settings

logger = logging.getLogger(__name__)


class GenAIClientError(RuntimeError):
    """Raised when the Gemini API client cannot be created."""


_genai_client: Optional[genai.Client] = None


def _create_client() -> genai.Client:
    try:
        client = genai.Client(api_key=settings.api_key)
    except ValueError as exc:
        logger.exception("Failed to create Gemini API client")
        raise GenAIClientError("Unable to create the Gemini API client. Check API_KEY.") from exc
    logger.info("Gemini API client ready (model %s)", settings.veo_model)
    return client


def get_genai_client() -> genai.Client:
    global _genai_client
    if _genai_client is None:
        _genai_client = _create_client()
    return _genai_client
