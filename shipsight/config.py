"""Settings via pydantic-settings with SHIPSIGHT_ env prefix.

Anthropic credentials use validation_alias to read the same unprefixed
env vars (ANTHROPIC_API_KEY, ANTHROPIC_AUTH_TOKEN) the rest of the
dashboard stack uses, so one .env file drives every service.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SHIPSIGHT_", env_file=".env")

    log_level: str = "info"

    # Runtime
    host: str = "0.0.0.0"
    port: int = 8000
    max_sessions: int = Field(100, ge=1)

    # Anthropic API (summarization backend)
    anthropic_api_key: str = Field("", validation_alias="ANTHROPIC_API_KEY")
    # Dual auth: auth_token (Bearer) takes precedence over api_key (x-api-key)
    anthropic_auth_token: str = Field("", validation_alias="ANTHROPIC_AUTH_TOKEN")
    api_base_url: str = "https://api.anthropic.com"
    api_timeout_connect: float = 10.0  # seconds

    # Summarizer
    summary_model: str = "claude-3-haiku-20240307"
    summary_max_tokens: int = Field(300, ge=1)
    summary_timeout: float = Field(30.0, gt=0)  # seconds, per request
    summary_max_transcript_chars: int = Field(8000, ge=500)
    summary_domain: str = "shipping and logistics analytics"

    # Compaction policy. Defaults decide when users see summaries: keep stable.
    compaction_enabled: bool = True
    compaction_max_turns: int = Field(8, ge=1)
    compaction_cost_budget: int = Field(4000, ge=1)
    compaction_keep_recent: int = Field(4, ge=0)
    chars_per_token: int = Field(4, ge=1)

    @model_validator(mode="after")
    def _validate_compaction(self) -> "Settings":
        if self.compaction_keep_recent >= self.compaction_max_turns:
            raise ValueError(
                f"compaction_keep_recent ({self.compaction_keep_recent}) must be < "
                f"compaction_max_turns ({self.compaction_max_turns}) or every "
                "compacted conversation would need compacting again"
            )
        return self
