from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StatCubeBaseSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__"
    )

    app_env: str = Field(
        default="dev",
        description="Application deployment environment (e.g., dev, qa, uat, prod, local)"
    )

    def model_post_init(self, __context: Any) -> None:
        """Post initialization hook for additional setup.

        Subclasses override this method and call super() to add
        cross-field initialization after validation.
        """
        super().model_post_init(__context)
