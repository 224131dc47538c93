from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Telegram
    telegram_bot_token: str
    telegram_webhook_secret: str = ""  # Optional: for webhook verification

    # OpenAI (summaries + Whisper)
    openai_api_key: str
    summary_model: str = "gpt-3.5-turbo"
    transcription_model: str = "whisper-1"

    # Delphi CMS backend
    delphi_api_base_url: str
    delphi_reading_list_id: str
    delphi_create_read_api_key: str
    delphi_create_af_api_key: str
    backend_timeout_seconds: float = 60.0

    # Voice memos are written here while being transcribed
    audio_file_directory: str = "audio_files"

    # Environment
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
