from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-me-drugverify-development-signing-key"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Database
    database_url: str = "sqlite:///drug_verify.db"

    # Primary model (Gemini)
    google_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_model_label: str = "Gemini 2.5 Flash"

    # Fallback model (any OpenAI-compatible chat completions endpoint)
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openai_model_label: str = "OpenAI GPT-4o Mini"
    llm_timeout_seconds: float = 60.0

    # Evidence sources
    openfda_base_url: str = "https://api.fda.gov"
    openfda_api_key: str = ""
    dailymed_base_url: str = "https://dailymed.nlm.nih.gov/dailymed/services/v2"
    lookup_timeout_seconds: float = 10.0
    ndc_dataset_path: str = ""  # empty means the dataset shipped with the package

    # Drug names that are never suspect unless a source reports a withdrawal.
    # Comma-separated in the environment: APPROVED_DRUGS=Paracetamol,Amoxicillin
    approved_drugs: Annotated[list[str], NoDecode] = []

    # Auth
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_expire_minutes: int = 60 * 24

    # Regulator reports
    mail_username: str = ""
    mail_password: str = ""
    mail_from: str = ""
    mail_port: int = 587
    mail_server: str = "smtp.gmail.com"
    mail_from_name: str = "DrugVerify Report"
    regulator_email: str = ""
    dev_mode: bool = True

    log_level: str = "INFO"
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("approved_drugs", "cors_origins", mode="before")
    @classmethod
    def split_comma_separated(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
