"""
Advisory generators.

HttpAdvisoryGenerator calls an OpenAI-compatible chat-completions endpoint and
returns the first choice's text. It raises on timeouts, HTTP errors and empty
answers; the scheduler treats every one of those as "no advisory".
"""

import logging
from typing import Optional

import httpx

from core.interfaces.advisory import AdvisoryError, AdvisoryGenerator

log = logging.getLogger("cartcare.advisory")

SYSTEM_PROMPT = (
    "You are a maintenance prediction AI. Analyze equipment usage patterns and "
    "predict maintenance needs with specific, actionable recommendations."
)

USER_PROMPT = """Shopping cart maintenance metrics (rolling window):
{summary}

Based on this data, provide:
1. Predicted days until maintenance is needed
2. Key concerns identified
3. Recommended maintenance actions
4. Preventive measures

Keep your response concise and actionable."""


class HttpAdvisoryGenerator(AdvisoryGenerator):

    def __init__(self, api_url: str, api_key: Optional[str] = None,
                 model: str = "google/gemini-2.5-flash", timeout: float = 15.0,
                 temperature: float = 0.3):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature

    def generate_advisory(self, summary_text: str) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        resp = httpx.post(
            self.api_url,
            headers=headers,
            json={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": USER_PROMPT.format(summary=summary_text)},
                ],
                "temperature": self.temperature,
            },
            timeout=self.timeout,
        )
        if resp.status_code >= 400:
            raise AdvisoryError(f"Advisory API returned {resp.status_code}: {resp.text[:200]}")

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AdvisoryError(f"Unexpected advisory response shape: {e}") from e
        if not content or not content.strip():
            raise AdvisoryError("Advisory API returned empty content")
        return content.strip()


class NullAdvisoryGenerator(AdvisoryGenerator):
    """Used when no advisory endpoint is configured."""

    def generate_advisory(self, summary_text: str) -> str:
        return ""
