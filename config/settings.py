# config/settings.py
import os
import sys
from typing import List
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.constants import DEFAULT_SEPARATORS
from util.enums import EmbedProvider, Environment, GeneratorProvider


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(default=Environment.DEV.value, validation_alias="APP_ENV")

    # Chunking & retrieval
    CHUNK_SIZE: int = Field(default=1000, validation_alias="CHUNK_SIZE")
    CHUNK_OVERLAP: int = Field(default=200, validation_alias="CHUNK_OVERLAP")
    CHUNK_SEPARATORS: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SEPARATORS),
        validation_alias="CHUNK_SEPARATORS",
    )
    RETRIEVAL_K: int = Field(default=5, ge=1, validation_alias="RETRIEVAL_K")

    # Providers
    EMBED_PROVIDER: EmbedProvider = Field(
        default=EmbedProvider.OLLAMA, validation_alias="EMBED_PROVIDER"
    )
    GENERATOR_PROVIDER: GeneratorProvider = Field(
        default=GeneratorProvider.OLLAMA, validation_alias="GENERATOR_PROVIDER"
    )
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=60.0, validation_alias="HTTP_TIMEOUT_SECONDS"
    )

    # Ollama Settings
    OLLAMA_BASE_URL: str = Field(
        default="http://localhost:11434", validation_alias="OLLAMA_BASE_URL"
    )
    OLLAMA_EMBED_MODEL: str = Field(
        default="granite3.3:2b", validation_alias="OLLAMA_EMBED_MODEL"
    )
    OLLAMA_CHAT_MODEL: str = Field(
        default="granite3.3:2b", validation_alias="OLLAMA_CHAT_MODEL"
    )
    CHAT_TEMPERATURE: float = Field(default=0.1, validation_alias="CHAT_TEMPERATURE")

    # Local embedding engine
    LOCAL_EMBED_MODEL: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        validation_alias="LOCAL_EMBED_MODEL",
    )

    # Anthropic Settings
    ANTHROPIC_API_URL: str = Field(
        default="https://api.anthropic.com/v1/messages",
        validation_alias="ANTHROPIC_API_URL",
    )
    ANTHROPIC_MODEL: str = Field(
        default="claude-3-5-haiku-latest", validation_alias="ANTHROPIC_MODEL"
    )
    ANTHROPIC_VERSION: str = Field(
        default="2023-06-01", validation_alias="ANTHROPIC_VERSION"
    )
    ANTHROPIC_API_KEY: str = Field(default="", validation_alias="ANTHROPIC_API_KEY")
    ANTHROPIC_MAX_TOKENS: int = Field(
        default=1024, validation_alias="ANTHROPIC_MAX_TOKENS"
    )

    # Logging knobs
    LOGGER_NAME: str = "docqa"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="docqa.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=10 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=3, validation_alias="LOG_BACKUP_COUNT")

    # Prompts
    SYSTEM_INSTRUCTIONS: str = Field(
        default=(
            "You are an expert documentation assistant. Use the following context to answer "
            "questions about the documentation accurately and helpfully.\n"
            "Guidelines:\n"
            "- Provide accurate information based only on the provided context\n"
            "- Include relevant code examples when available\n"
            "- Mention the source document when possible\n"
            "- If information is not in the context, clearly state that"
        ),
        validation_alias="SYSTEM_INSTRUCTIONS",
    )


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
