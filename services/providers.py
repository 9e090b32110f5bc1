"""
Model providers.

A provider wraps one hosted model behind two calls: free text (chat) and a
verdict constrained to the ModelVerdict schema. Every failure mode (SDK error,
HTTP error, empty output, unparseable output) surfaces as ModelInvocationFailed
so the caller can move on to the next provider in the chain.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from google import genai
from google.genai import types
from pydantic import BaseModel, ValidationError

from config.system_prompts import BARCODE_READER
from services.errors import ModelInvocationFailed
from services.schemas import ModelVerdict

logger = logging.getLogger(__name__)


def extract_json(provider: str, raw: str) -> dict:
    """Pull the first JSON object out of a model response, tolerating code fences and chatter."""
    start = raw.find("{")
    end = raw.rfind("}") + 1
    if start < 0 or end <= start:
        raise ModelInvocationFailed(provider, "response contained no JSON object", {"raw_response": raw})
    try:
        data = json.loads(raw[start:end])
    except json.JSONDecodeError as e:
        raise ModelInvocationFailed(provider, f"invalid JSON: {e}", {"raw_response": raw}) from e
    if not isinstance(data, dict):
        raise ModelInvocationFailed(provider, "JSON response is not an object", {"raw_response": raw})
    return data


def parse_verdict(provider: str, raw: str) -> ModelVerdict:
    data = extract_json(provider, raw)
    try:
        return ModelVerdict.model_validate(data)
    except ValidationError as e:
        raise ModelInvocationFailed(provider, "response does not match the verdict schema", {"errors": e.errors()}) from e


class ModelProvider(ABC):
    name: str = "model"

    @abstractmethod
    async def generate_text(self, system_prompt: str, prompt: str,
                            response_schema: Optional[type[BaseModel]] = None) -> str:
        ...

    async def generate_verdict(self, system_prompt: str, prompt: str) -> ModelVerdict:
        raw = await self.generate_text(system_prompt, prompt, response_schema=ModelVerdict)
        return parse_verdict(self.name, raw)


class GeminiProvider(ModelProvider):
    def __init__(self, model: str, name: str, api_key: str = "", client=None):
        self.model = model
        self.name = name
        self.api_key = api_key
        self._client = client

    @property
    def client(self):
        if self._client is None:
            try:
                # Without an explicit key the SDK falls back to GOOGLE_API_KEY
                self._client = genai.Client(api_key=self.api_key or None)
            except Exception as e:
                raise ModelInvocationFailed(self.name, f"could not create client: {e}") from e
        return self._client

    async def _generate(self, contents, config: types.GenerateContentConfig) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except ModelInvocationFailed:
            raise
        except Exception as e:
            logger.warning("Gemini SDK error: %s", e)
            raise ModelInvocationFailed(self.name, f"Gemini API error: {e}") from e

        text = response.text
        if not text or not text.strip():
            raise ModelInvocationFailed(self.name, "Gemini returned empty response")
        return text

    async def generate_text(self, system_prompt: str, prompt: str,
                            response_schema: Optional[type[BaseModel]] = None) -> str:
        config = types.GenerateContentConfig(system_instruction=system_prompt)
        if response_schema is not None:
            config = types.GenerateContentConfig(
                system_instruction=system_prompt,
                response_mime_type="application/json",
                response_schema=response_schema,
            )
        return await self._generate(prompt, config)

    async def read_barcode(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> Optional[str]:
        """Ask the vision model for the barcode digits in a packaging photo. None if unreadable."""
        contents = [
            "Packaging photo. Read the barcode.",
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
        ]
        config = types.GenerateContentConfig(
            system_instruction=BARCODE_READER,
            response_mime_type="application/json",
        )
        data = extract_json(self.name, await self._generate(contents, config))
        barcode = data.get("barcode")
        if isinstance(barcode, (int, float)):
            barcode = str(barcode)
        if not isinstance(barcode, str) or not barcode.strip():
            return None
        return barcode.strip()


class OpenAICompatibleProvider(ModelProvider):
    """Any endpoint that speaks the OpenAI chat completions API."""

    def __init__(self, model: str, name: str, api_key: str = "", base_url: str = "https://api.openai.com/v1",
                 timeout: float = 60.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.model = model
        self.name = name
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport

    async def generate_text(self, system_prompt: str, prompt: str,
                            response_schema: Optional[type[BaseModel]] = None) -> str:
        if not self.api_key:
            raise ModelInvocationFailed(self.name, "no API key configured")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.1,
        }
        if response_schema is not None:
            payload["response_format"] = {"type": "json_object"}

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout,
                                         transport=self.transport) as client:
                response = await client.post("/chat/completions", json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
            text = data["choices"][0]["message"]["content"]
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            raise ModelInvocationFailed(self.name, f"chat completion failed: {e}") from e

        if not text or not text.strip():
            raise ModelInvocationFailed(self.name, "empty response")
        return text
