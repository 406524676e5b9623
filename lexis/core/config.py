"""Application configuration."""

import base64
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Database (job store)
    database_url: str = ""

    # Redis (job queue)
    redis_url: str = "redis://localhost:6379/0"

    # GitHub
    github_token: str = ""  # Fallback for server-initiated runs
    github_bot_username: str = "i18n-agent-bot"

    # GitHub App (optional, API calls only)
    github_app_id: str = ""
    github_app_private_key_path: str = ""
    github_app_private_key_base64: Optional[str] = None
    github_app_installation_id: str = ""

    # LLM Provider Selection
    llm_provider: str = "gemini"  # Options: gemini, anthropic, openai, zhipu

    # Google Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    # Anthropic (Claude)
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    # Zhipu (GLM-4)
    zhipu_api_key: str = ""
    zhipu_model: str = "glm-4.6"

    # Lingo.dev translation CLI
    lingodotdev_api_key: str = ""
    translate_command: str = "npx lingo.dev@latest i18n"

    # Pipeline
    work_root: str = "/tmp/lexis"
    pr_branch: str = "feat/i18n-lingo-dev"
    commit_message: str = "feat: add i18n support via Lingo.dev"
    source_locale: str = "en"
    default_languages: List[str] = Field(
        default_factory=lambda: ["es", "fr", "de", "ja", "zh"]
    )

    # App Settings
    log_level: str = "INFO"
    log_format: str = "console"  # console or json
    environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def _provider_credentials(self) -> dict:
        return {
            "gemini": (self.gemini_model, self.gemini_api_key),
            "anthropic": (self.anthropic_model, self.anthropic_api_key),
            "openai": (self.openai_model, self.openai_api_key),
            "zhipu": (self.zhipu_model, self.zhipu_api_key),
        }

    def has_llm_credentials(self) -> bool:
        """Whether the selected LLM provider has an API key configured."""
        credentials = self._provider_credentials().get(self.llm_provider.lower())
        return bool(credentials and credentials[1])

    def get_llm_config(self) -> dict:
        """
        Get LLM configuration based on selected provider.

        Returns:
            Dictionary with provider, model, and api_key

        Raises:
            ValueError: If provider is invalid or API key is missing
        """
        provider = self.llm_provider.lower()
        credentials = self._provider_credentials()

        if provider not in credentials:
            raise ValueError(
                f"Invalid LLM_PROVIDER: {provider}. "
                f"Must be one of: {', '.join(credentials)}"
            )

        model, api_key = credentials[provider]
        if not api_key:
            raise ValueError(
                f"{provider.upper()}_API_KEY is required when LLM_PROVIDER={provider}"
            )
        return {"provider": provider, "model": model, "api_key": api_key}

    def has_github_app(self) -> bool:
        """Whether GitHub App credentials are fully configured."""
        return bool(
            self.github_app_id
            and self.github_app_installation_id
            and (self.github_app_private_key_base64 or self.github_app_private_key_path)
        )

    def get_github_app_private_key(self) -> str:
        """
        Get GitHub App private key, handling both file and base64 env var.

        Returns:
            Private key content as string

        Raises:
            ValueError: If no private key is configured
        """
        # Priority 1: Base64 encoded (for container deployments)
        if self.github_app_private_key_base64:
            try:
                return base64.b64decode(self.github_app_private_key_base64).decode("utf-8")
            except Exception as e:
                raise ValueError(f"Failed to decode base64 private key: {e}") from e

        # Priority 2: File path (for local development)
        if self.github_app_private_key_path:
            key_path = Path(self.github_app_private_key_path)
            # Resolve relative paths relative to project root
            if not key_path.is_absolute():
                project_root = Path(__file__).parent.parent.parent
                key_path = project_root / key_path

            if not key_path.exists():
                raise FileNotFoundError(
                    f"GitHub App private key not found: {key_path}. "
                    f"Check GITHUB_APP_PRIVATE_KEY_PATH setting."
                )

            return key_path.read_text(encoding="utf-8")

        raise ValueError(
            "No GitHub App private key configured. "
            "Set either GITHUB_APP_PRIVATE_KEY_PATH or GITHUB_APP_PRIVATE_KEY_BASE64"
        )

    def job_work_dir(self, job_id: str) -> Path:
        """Working directory owned by a single job's run."""
        return Path(self.work_root) / job_id


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
