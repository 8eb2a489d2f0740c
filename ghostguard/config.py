from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================
    environment: str = "dev"  # "dev", "prod"
    debug: bool = True

    # ==========================================================================
    # DATABASE (threat archive)
    # ==========================================================================
    database_url: str = "sqlite:///./ghostguard.db"

    # ==========================================================================
    # AI CLASSIFIER (OpenAI-compatible endpoint)
    # ==========================================================================
    openai_api_key: str = ""
    openai_base_url: str = "https://integrate.api.nvidia.com/v1"
    openai_model: str = "deepseek-ai/deepseek-r1"
    ai_temperature: float = 0.6
    ai_top_p: float = 0.7
    ai_max_tokens: int = 2048
    ai_timeout_seconds: float = 30.0  # Timeout is treated like an unreachable endpoint
    ai_max_retries: int = 0

    # ==========================================================================
    # API SECURITY
    # ==========================================================================
    api_token: str = ""  # Required in production, optional in dev

    # ==========================================================================
    # CORS
    # ==========================================================================
    cors_origins: str = "*"  # Comma-separated origins, or "*" for all

    # ==========================================================================
    # HEURISTIC LISTS (extend the built-in defaults)
    # ==========================================================================
    malicious_domains: str = ""
    suspicious_tlds: str = ""
    url_shorteners: str = ""

    # ==========================================================================
    # SCAN POLICY
    # ==========================================================================
    skip_ai_for_clean_urls: bool = False  # True = heuristic pass gates the AI call
    report_all_threats: bool = False  # True = every threat per item, not just the first
    scan_workers: int = 1  # Batch scan concurrency (1 = sequential)

    # ==========================================================================
    # SESSIONS
    # ==========================================================================
    event_queue_size: int = 256  # Per-subscriber buffered events
    shared_threat_repository: bool = False  # One repository across all sessions

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "prod"

    @property
    def cors_origins_list(self) -> list:
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def malicious_domains_list(self) -> List[str]:
        return _split_csv(self.malicious_domains)

    @property
    def suspicious_tlds_list(self) -> List[str]:
        return _split_csv(self.suspicious_tlds)

    @property
    def url_shorteners_list(self) -> List[str]:
        return _split_csv(self.url_shorteners)


def _split_csv(value: str) -> List[str]:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


settings = Settings()
