from dataclasses import dataclass, field
import os
from dotenv import load_dotenv

load_dotenv()

def _parse_owner_ids(*raws: str) -> frozenset[int]:
    ids = set()
    for raw in raws:
        ids.update(int(x.strip()) for x in (raw or "").split(",") if x.strip())
    return frozenset(ids)

@dataclass(frozen=True)
class Settings:
    bot_token: str = os.getenv("BOT_TOKEN") or os.getenv("TELEGRAM_BOT_TOKEN", "")
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_image_model: str = os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3")
    openai_image_size: str = os.getenv("OPENAI_IMAGE_SIZE", "1024x1024")
    openai_edit_model: str = os.getenv("OPENAI_EDIT_MODEL", "gpt-image-1")
    openai_chat_model: str = os.getenv("OPENAI_CHAT_MODEL", "gpt-4")
    openai_max_tokens: int = int(os.getenv("OPENAI_MAX_TOKENS", "4096"))
    upstream_timeout: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "120"))

    # BOT_OWNER_ID is the single-owner variable, OWNER_IDS extends it
    owner_ids: frozenset[int] = field(
        default_factory=lambda: _parse_owner_ids(os.getenv("OWNER_IDS", ""), os.getenv("BOT_OWNER_ID", ""))
    )
    log_channel_id: str = os.getenv("LOG_CHANNEL_ID", "")
    developer_handle: str = os.getenv("DEVELOPER_HANDLE", "@AkhandanandTripathi")

    ai_cooldown_seconds: float = float(os.getenv("AI_COOLDOWN_SECONDS", "5"))
    proai_batch_size: int = int(os.getenv("PROAI_BATCH_SIZE", "15"))
    proai_delay_seconds: float = float(os.getenv("PROAI_DELAY_SECONDS", "5"))

    use_fake_db: bool = os.getenv("USE_FAKE_DB", "0") == "1"
    database_url: str = os.getenv("DATABASE_URL", "")

    # Postgres
    pg_host: str = os.getenv("PG_HOST", "")
    pg_port: int = int(os.getenv("PG_PORT", "5432"))
    pg_user: str = os.getenv("PG_USER", "postgres")
    pg_password: str = os.getenv("PG_PASSWORD", "")
    pg_database: str = os.getenv("PG_DATABASE", "postgres")
    pg_sslmode: str = os.getenv("PG_SSLMODE", "disable")

    @property
    def pg_dsn(self) -> str:
        if self.database_url:
            return self.database_url
        if not self.pg_host:
            return ""
        return (
            f"postgresql://{self.pg_user}:{self.pg_password}"
            f"@{self.pg_host}:{self.pg_port}/{self.pg_database}"
            f"?sslmode={self.pg_sslmode}"
        )

    def missing(self) -> list[str]:
        """Names of required values that are not configured."""
        out = []
        if not self.bot_token:
            out.append("BOT_TOKEN")
        if not self.openai_api_key:
            out.append("OPENAI_API_KEY")
        if not self.owner_ids:
            out.append("BOT_OWNER_ID")
        if not self.use_fake_db and not self.pg_dsn:
            out.append("DATABASE_URL")
        return out


settings = Settings()
