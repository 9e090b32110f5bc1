"""Wiring of the verification services from settings, exposed as FastAPI dependencies."""
from functools import lru_cache
from pathlib import Path

from config.settings import get_settings
from services.chat import ChatAssistant
from services.lookups import DailyMedLookup, InternalDatasetLookup, OpenFDALookup
from services.orchestrator import ModelAttempt, VerificationOrchestrator
from services.providers import GeminiProvider, OpenAICompatibleProvider


@lru_cache()
def get_lookups() -> tuple:
    settings = get_settings()
    return (
        InternalDatasetLookup(path=Path(settings.ndc_dataset_path) if settings.ndc_dataset_path else None),
        OpenFDALookup(settings.openfda_base_url, settings.openfda_api_key, settings.lookup_timeout_seconds),
        DailyMedLookup(settings.dailymed_base_url, settings.lookup_timeout_seconds),
    )


@lru_cache()
def get_gemini_provider() -> GeminiProvider:
    settings = get_settings()
    return GeminiProvider(settings.gemini_model, settings.gemini_model_label, settings.google_api_key)


@lru_cache()
def get_fallback_provider() -> OpenAICompatibleProvider:
    settings = get_settings()
    return OpenAICompatibleProvider(
        settings.openai_model,
        settings.openai_model_label,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.llm_timeout_seconds,
    )


@lru_cache()
def get_orchestrator() -> VerificationOrchestrator:
    # Primary model reasons over the database evidence; the fallback answers from knowledge alone
    attempts = [
        ModelAttempt(get_gemini_provider(), use_evidence=True),
        ModelAttempt(get_fallback_provider(), use_evidence=False),
    ]
    return VerificationOrchestrator(get_lookups(), attempts, get_settings().approved_drugs)


@lru_cache()
def get_chat_assistant() -> ChatAssistant:
    return ChatAssistant(get_lookups(), [get_gemini_provider(), get_fallback_provider()])
