from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-sonnet-4-5"
    ANTHROPIC_VERSION: str = "2023-06-01"
    REWRITE_API_URL: str = "https://api.anthropic.com/v1/messages"
    REWRITE_TIMEOUT_SECONDS: float = 20
    REWRITE_MAX_TOKENS: int = 400
    TELEGRAM_BOT_TOKEN: str = ""
    ALLOWED_CHAT_IDS: str = ""  # comma separated, empty means any chat
    COMPOSE_MAX_LENGTH: int = 1800
    DRAFT_TTL_SECONDS: int = 900  # 0 disables expiry
    DRAFT_MAX_ENTRIES: int = 1000
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def allowed_chat_ids(self) -> list[int]:
        return [int(chat_id) for chat_id in self.ALLOWED_CHAT_IDS.split(",") if chat_id.strip()]

config = Settings()
