"""Application settings."""

import os
from typing import Dict, Optional
from pydantic import BaseModel, Field


# Credentials handed to tool executors, keyed by tool_data name
TOOL_DATA_ENV = {
    "twilio_account_sid": "TWILIO_ACCOUNT_SID",
    "twilio_auth_token": "TWILIO_AUTH_TOKEN",
    "twilio_phone_number": "TWILIO_PHONE_NUMBER",
    "twilio_workflow_sid": "TWILIO_WORKFLOW_SID",
    "segment_write_key": "SEGMENT_WRITE_KEY",
    "segment_workspace": "SEGMENT_WORKSPACE",
    "airtable_api_key": "AIRTABLE_API_KEY",
    "airtable_base_id": "AIRTABLE_BASE_ID",
    "email_api_key": "EMAIL_API_KEY",
    "email_from_address": "EMAIL_FROM_ADDRESS",
}


class Settings(BaseModel):
    """Application configuration settings."""

    # LLM Provider settings
    llm_provider: str = "openai"  # "openai" or "anthropic"
    llm_model: Optional[str] = None  # Override default model (gpt-4o or claude-sonnet-4)

    # API Keys
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # Sampling
    temperature: float = 0.1
    max_tokens: int = 1024

    # Text flushing towards the transport
    min_chunk_chars: int = 10
    sentence_endings: str = ".?!"

    # Conversation limits
    message_limit: int = 300
    voice_ttl_seconds: int = 30 * 60
    text_ttl_seconds: int = 60 * 60
    sweep_interval_seconds: int = 10 * 60

    # Webhook side-channel
    webhook_url: Optional[str] = None
    webhook_timeout: float = 5.0

    # Credentials/config bag for tool executors
    tool_data: Dict[str, Optional[str]] = Field(default_factory=dict)

    # Language table override (defaults to config/languages.yaml)
    languages_path: Optional[str] = None

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load from environment if not provided
        if data.get("llm_provider") is None:
            data["llm_provider"] = os.environ.get("LLM_PROVIDER", "openai")

        if "openai_api_key" not in data or data["openai_api_key"] is None:
            data["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

        if "anthropic_api_key" not in data or data["anthropic_api_key"] is None:
            data["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

        if "webhook_url" not in data or data["webhook_url"] is None:
            data["webhook_url"] = os.environ.get("WEBHOOK_URL")

        if not data.get("tool_data"):
            data["tool_data"] = {
                key: os.environ.get(env_name)
                for key, env_name in TOOL_DATA_ENV.items()
            }

        super().__init__(**data)

    def get_llm_api_key(self) -> Optional[str]:
        """Get the API key for the configured LLM provider."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return None

    def ttl_for(self, is_voice: bool) -> int:
        """Expiry window in seconds for a voice or text conversation."""
        return self.voice_ttl_seconds if is_voice else self.text_ttl_seconds
