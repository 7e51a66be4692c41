import logging
from typing import List, Optional

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from .base import StatCubeBaseSettings
from .engine import EngineSettings
from .locale import LocaleSettings
from .preview import PreviewSettings
from .processing import ProcessingSettings


class _Settings(StatCubeBaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__"
    )

    locale: LocaleSettings = Field(
        default_factory=LocaleSettings,
        description="Supported locales for rendered views"
    )
    engine: EngineSettings = Field(
        default_factory=EngineSettings,
        description="Embedded analytical engine session settings"
    )
    preview: PreviewSettings = Field(
        default_factory=PreviewSettings,
        description="Preview paging limits"
    )
    processing: ProcessingSettings = Field(
        default_factory=ProcessingSettings,
        description="Build timestamps, output location and logging"
    )

    @property
    def supported_locales(self) -> List[str]:
        """Shortcut for ``settings.locale.get_supported_locales()``."""
        return self.locale.get_supported_locales()

    def model_post_init(self, __context) -> None:
        super().model_post_init(__context)
        logging.getLogger(__name__).debug(
            "Settings loaded",
            extra={
                "app_env": self.app_env,
                "supported_locales": self.locale.supported_locales,
            },
        )


# Singleton instance
_settings: Optional[_Settings] = None


def get_settings(force_reload: bool = False) -> _Settings:
    """Get the singleton settings instance for the application.

    Settings are loaded from environment variables and the optional
    ``.env`` file on first access.

    Args:
        force_reload: If True, creates a new Settings instance even if
                     one already exists. Useful for testing or when
                     environment variables have changed.

    Returns:
        Settings: The singleton Settings instance

    Example:
        ```python
        settings = get_settings()
        settings.supported_locales      # ['en-GB', 'cy-GB']
        settings.engine.memory_limit    # from ENGINE__MEMORY_LIMIT
        ```
    """
    global _settings

    if _settings is None or force_reload:
        _settings = _Settings()

    return _settings


def _reload_settings() -> _Settings:
    """Force reload of settings.

    This is primarily for testing purposes where you need to reset
    the singleton instance.
    """
    global _settings
    _settings = None
    return get_settings(force_reload=True)
