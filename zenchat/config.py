"""Settings via pydantic-settings with ZENCHAT_ env prefix.

The API key also falls back to the unprefixed OPENAI_API_KEY so an existing
OpenAI/DeepSeek setup works without renaming anything.
"""

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are the AI assistant of a calm, minimal browser new-tab page. "
    "Answer clearly and concisely. Put code in ```language fenced blocks."
)

GREETING = "Hi! I'm your AI assistant. How can I help?"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ZENCHAT_", env_file=".env", extra="ignore", populate_by_name=True
    )

    # Model endpoint
    use_custom_api: bool = False
    api_key: str = Field("", validation_alias=AliasChoices("ZENCHAT_API_KEY", "OPENAI_API_KEY"))
    api_base_url: str = "https://api.deepseek.com"
    model: str = "deepseek-chat"
    temperature: float = 0.7
    max_tokens: int = 2000
    system_prompt: str = ""  # overrides DEFAULT_SYSTEM_PROMPT when set
    relay_chat_url: str = "https://yunzhiapi.cn/API/depsek3.2.php"
    model_timeout: float = 60.0  # seconds

    # Context budget
    max_context_tokens: int = 128_000
    compress_threshold: float = 0.7
    min_compress_length: int = 6
    keep_recent: int = 4
    summary_chars: int = 100
    history_excerpt: int = 10

    # Orchestration
    max_iterations: int = 8
    tools_enabled: bool = True

    # Tools
    search_endpoints: list[str] = [
        "https://searx.be/search",
        "https://search.sapti.me/search",
    ]
    search_timeout: float = 5.0  # per endpoint
    search_max_results: int = 5
    snippet_chars: int = 150
    fetch_timeout: float = 15.0
    fetch_max_chars: int = 8000
    tool_result_max_chars: int = 5000

    # Presentation
    reveal_interval: float = 0.015

    log_level: str = "info"

    @model_validator(mode="after")
    def _validate_budget(self) -> "Settings":
        if not 0 < self.compress_threshold <= 1:
            raise ValueError("compress_threshold must be in (0, 1]")
        if self.keep_recent < 1:
            raise ValueError("keep_recent must be >= 1")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be >= 1")
        return self

    @property
    def base_prompt(self) -> str:
        return self.system_prompt or DEFAULT_SYSTEM_PROMPT

    @property
    def custom_api_active(self) -> bool:
        """The OpenAI-compatible backend is used only when a key is configured."""
        return self.use_custom_api and bool(self.api_key)
