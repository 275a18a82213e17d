"""
Advisory generator tests. httpx is mocked; no network calls are made.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import pytest

from core.interfaces.advisory import AdvisoryError
from modules.advisory import build_advisory_generator
from modules.advisory.generator import HttpAdvisoryGenerator, NullAdvisoryGenerator, SYSTEM_PROMPT


def _response(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    resp.json.return_value = payload
    return resp


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestHttpAdvisoryGenerator:
    def test_posts_chat_completion_and_returns_text(self):
        gen = HttpAdvisoryGenerator("https://ai.example.test/v1/chat/completions", api_key="sk-test", timeout=4)
        with patch("modules.advisory.generator.httpx.post",
                   return_value=_response(payload=_completion("  Inspect casters within 3 days. "))) as post:
            text = gen.generate_advisory("Issues: 6, Avg downtime: 130min")

        assert text == "Inspect casters within 3 days."
        args, kwargs = post.call_args
        assert args[0] == "https://ai.example.test/v1/chat/completions"
        assert kwargs["timeout"] == 4
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        body = kwargs["json"]
        assert body["model"] == "google/gemini-2.5-flash"
        assert body["temperature"] == 0.3
        assert body["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert "Issues: 6" in body["messages"][1]["content"]

    def test_no_key_means_no_auth_header(self):
        gen = HttpAdvisoryGenerator("https://ai.example.test/v1/chat/completions")
        with patch("modules.advisory.generator.httpx.post", return_value=_response(payload=_completion("ok"))) as post:
            gen.generate_advisory("summary")
        assert "Authorization" not in post.call_args.kwargs["headers"]

    def test_http_error_raises(self):
        gen = HttpAdvisoryGenerator("https://ai.example.test")
        with patch("modules.advisory.generator.httpx.post", return_value=_response(status=429, text="rate limited")):
            with pytest.raises(AdvisoryError, match="429"):
                gen.generate_advisory("summary")

    @pytest.mark.parametrize("payload", [{}, {"choices": []}, _completion(""), _completion("   ")])
    def test_unusable_answers_raise(self, payload):
        gen = HttpAdvisoryGenerator("https://ai.example.test")
        with patch("modules.advisory.generator.httpx.post", return_value=_response(payload=payload)):
            with pytest.raises(AdvisoryError):
                gen.generate_advisory("summary")

    def test_timeout_propagates_to_caller(self):
        gen = HttpAdvisoryGenerator("https://ai.example.test", timeout=0.1)
        with patch("modules.advisory.generator.httpx.post", side_effect=httpx.ReadTimeout("slow")):
            with pytest.raises(httpx.TimeoutException):
                gen.generate_advisory("summary")


class TestBuild:
    def test_unconfigured_is_null(self):
        gen = build_advisory_generator(SimpleNamespace(advisory_api_url=None))
        assert isinstance(gen, NullAdvisoryGenerator)
        assert gen.generate_advisory("anything") == ""

    def test_configured_is_http(self):
        settings = SimpleNamespace(
            advisory_api_url="https://ai.example.test", advisory_api_key="k",
            advisory_model="some/model", advisory_timeout_seconds=7.5,
        )
        gen = build_advisory_generator(settings)
        assert isinstance(gen, HttpAdvisoryGenerator)
        assert gen.model == "some/model"
        assert gen.timeout == 7.5
