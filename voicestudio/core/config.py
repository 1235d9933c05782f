from __future__ import annotations
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Server
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8080

    # Admin security (optional)
    ADMIN_TOKEN: str = ""

    # Database
    DATABASE_URL: str = "sqlite:///./data/voicestudio.db"

    # Speech provider
    OPENAI_API_KEY: str = ""
    TTS_API_URL: str = "https://api.openai.com/v1/audio/speech"
    TTS_MODEL: str = "gpt-4o-mini-tts"
    TTS_TIMEOUT: int = 60

    # Text limits (characters)
    MAX_SCRIPT_CHARS: int = 5000   # raw script accepted from a request
    MAX_INPUT_LENGTH: int = 4096   # sanitized script sent to the provider
    MAX_PROMPT_LENGTH: int = 1000  # sanitized voice directions

    # Object storage
    STORAGE_DIR: str = "./data/audio-files"
    STORAGE_PUBLIC_URL: str = "/files"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def storage_path(self) -> Path:
        return Path(self.STORAGE_DIR).resolve()
