import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from services.errors import ModelInvocationFailed
from services.providers import GeminiProvider, OpenAICompatibleProvider, parse_verdict
from fakes import verdict_json


def run(coro):
    return asyncio.run(coro)


def test_parse_verdict_tolerates_code_fences():
    verdict = parse_verdict("Gemini", "```json\n" + verdict_json(is_suspect=True) + "\n```")

    assert verdict.is_suspect
    assert verdict.drug_name == "Amoxicillin 500mg"


@pytest.mark.parametrize("raw", ["no json here", "{not json}", "[1, 2]", '{"reason": "missing is_suspect"}'])
def test_parse_verdict_rejects_bad_output(raw):
    with pytest.raises(ModelInvocationFailed):
        parse_verdict("Gemini", raw)


def completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def test_openai_provider_posts_chat_completion():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return completion(verdict_json())

    provider = OpenAICompatibleProvider("gpt-4o-mini", "OpenAI", api_key="sk-test",
                                        transport=httpx.MockTransport(handler))
    verdict = run(provider.generate_verdict("system", "prompt"))

    assert verdict.drug_name == "Amoxicillin 500mg"
    assert seen["url"] == "https://api.openai.com/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "gpt-4o-mini"
    assert seen["body"]["response_format"] == {"type": "json_object"}
    assert seen["body"]["messages"][0] == {"role": "system", "content": "system"}


def test_openai_provider_plain_text_has_no_response_format():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return completion("Hello")

    provider = OpenAICompatibleProvider("gpt-4o-mini", "OpenAI", api_key="sk-test",
                                        transport=httpx.MockTransport(handler))

    assert run(provider.generate_text("system", "prompt")) == "Hello"
    assert "response_format" not in seen["body"]


@pytest.mark.parametrize("response", [
    httpx.Response(500),
    httpx.Response(200, json={"choices": []}),
    httpx.Response(200, content=b"not json"),
    completion(""),
])
def test_openai_provider_failures_raise_invocation_failed(response):
    provider = OpenAICompatibleProvider("gpt-4o-mini", "OpenAI", api_key="sk-test",
                                        transport=httpx.MockTransport(lambda request: response))

    with pytest.raises(ModelInvocationFailed):
        run(provider.generate_text("system", "prompt"))


def test_openai_provider_without_key_does_not_call_out():
    def handler(request):
        raise AssertionError("should not be called")

    provider = OpenAICompatibleProvider("gpt-4o-mini", "OpenAI", transport=httpx.MockTransport(handler))

    with pytest.raises(ModelInvocationFailed):
        run(provider.generate_text("system", "prompt"))


class FakeModels:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


def gemini_with(models):
    client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return GeminiProvider("gemini-2.5-flash", "Gemini 2.5 Flash", client=client)


def test_gemini_verdict_requests_json_schema():
    models = FakeModels(text=verdict_json())

    verdict = run(gemini_with(models).generate_verdict("system", "prompt"))

    assert verdict.manufacturer == "Teva"
    config = models.calls[0]["config"]
    assert models.calls[0]["model"] == "gemini-2.5-flash"
    assert config.response_mime_type == "application/json"
    assert config.system_instruction == "system"


@pytest.mark.parametrize("models", [FakeModels(text=""), FakeModels(error=RuntimeError("quota"))])
def test_gemini_failures_raise_invocation_failed(models):
    with pytest.raises(ModelInvocationFailed):
        run(gemini_with(models).generate_text("system", "prompt"))


def test_gemini_reads_barcode():
    models = FakeModels(text='{"barcode": " 00312345678906 "}')

    assert run(gemini_with(models).read_barcode(b"jpeg-bytes")) == "00312345678906"
    assert len(models.calls[0]["contents"]) == 2


def test_gemini_unreadable_barcode_is_none():
    models = FakeModels(text='{"barcode": null}')

    assert run(gemini_with(models).read_barcode(b"jpeg-bytes")) is None
