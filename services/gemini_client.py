"""
Gemini client for the issue enhancer.

One synchronous generateContent call per enhancement. No retries, and no
timeout unless one is configured.
"""
from typing import Any, Dict, Optional
import logging

import requests

from src.aava_jira_connect.config import AppConfig

logger = logging.getLogger(__name__)


class GeminiConfigError(Exception):
    """Raised before any network I/O when the Gemini API key is not configured."""
    pass


class GeminiClientError(Exception):
    """Raised when the Gemini call fails or returns no candidate text."""
    pass


class GeminiClient:
    """Client for the Gemini generateContent endpoint."""

    def __init__(self, config: AppConfig):
        """
        Initialize Gemini client.

        Args:
            config: App configuration (API key, model, endpoint root, timeout)
        """
        self.api_key = config.GEMINI_API_KEY
        self.model = config.GEMINI_MODEL
        self.base_url = config.GEMINI_API_BASE_URL.rstrip("/")
        self.timeout = config.GEMINI_TIMEOUT

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _redact(self, message: str) -> str:
        """Remove the API key from a message; requests errors embed the full URL."""
        if self.api_key:
            return message.replace(self.api_key, "***")
        return message

    def enhance(self, prompt_text: str, generation_config: Optional[Dict[str, Any]] = None) -> str:
        """
        Send one prompt to Gemini and return the first candidate's text.

        Args:
            prompt_text: Fully rendered prompt
            generation_config: Optional generationConfig (temperature, response schema)

        Returns:
            Text of candidates[0].content.parts[0]

        Raises:
            GeminiConfigError: If no API key is configured
            GeminiClientError: If the request fails or the response has no candidate text
        """
        if not self.api_key:
            raise GeminiConfigError("GEMINI_API_KEY not set")

        body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt_text}]}]}
        if generation_config:
            body["generationConfig"] = generation_config

        try:
            response = requests.post(
                self.endpoint,
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise GeminiClientError(f"Gemini request failed: {self._redact(str(e))}")

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            message = None
            if isinstance(data, dict) and isinstance(data.get("error"), dict):
                message = data["error"].get("message")
            raise GeminiClientError(
                self._redact(f"Gemini API error ({response.status_code}): {message or response.reason}")
            )

        text = extract_candidate_text(data)
        if not text:
            raise GeminiClientError("Invalid Gemini response")

        logger.info(f"Gemini returned {len(text)} characters (model={self.model})")
        return text


def extract_candidate_text(data: Any) -> Optional[str]:
    """
    Read candidates[0].content.parts[0].text from a Gemini response.

    Returns None if any level of that path is missing or has the wrong shape.
    """
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None
