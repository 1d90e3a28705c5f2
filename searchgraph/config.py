from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter (OpenAI-compatible)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "openai/gpt-4o-mini"
    llm_models: str = ""  # comma-separated round-robin pool, empty -> default_model
    llm_timeout_seconds: float = 120.0  # 0 disables the deadline
    llm_max_tokens: int = 4096

    # Search
    search_engine: str = "bing"  # bing | baidu | jina
    search_max_results: int = 5
    search_timeout_seconds: float = 30.0  # 0 disables the deadline
    jina_api_key: str = ""
    proxy: str = ""

    # Page fetch
    fetch_provider: str = "httpx"  # httpx | jina_reader | playwright
    fetch_concurrency: int = 2
    fetch_timeout_seconds: float = 10.0
    fetch_max_page_chars: int = 8000
    jina_reader_base_url: str = "https://r.jina.ai"

    # Orchestration
    sibling_execution: str = "sequential"  # sequential | parallel
    max_parallel_siblings: int = 3

    # Diagnostics
    log_dir: str = "logs"
    diagnostics_enabled: bool = True
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def llm_model_list(self) -> list[str]:
        models = [m.strip() for m in self.llm_models.split(",") if m.strip()]
        return models or [self.default_model]


settings = Settings()
