from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FabricConfig(BaseSettings):
    """Configuration for Fabric.

    Settings can be provided via environment variables with FABRIC_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="FABRIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Chat completion endpoint (any OpenAI-compatible API, OpenRouter by default)
    model_name: str = "google/gemini-flash-1.5"
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_api_key: str | None = None

    # Sent as attribution headers to OpenRouter
    app_name: str = "Member Connections AI"
    app_url: str = "https://github.com/9Zero-Climate/member-connections-ai"

    # Embedding configuration (used by the document search tool)
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = Field(default=1536, ge=1)
    openai_api_key: str | None = None

    # Live response rendering
    chat_edit_interval_ms: int = Field(default=1000, ge=0)
    max_message_length: int = Field(default=3900, ge=1)
    min_stream_length: int = Field(default=10, ge=0)
    thinking_placeholder: str = "_thinking..._"
    continuation_placeholder: str = "_takes deep breath_"

    # Agent loop
    max_tool_call_iterations: int = Field(default=5, ge=1)
