"""Settings for statcube, built on Pydantic Settings.

Architecture:
    1. Base Layer (base.py):
       - StatCubeBaseSettings: env file handling and common fields

    2. Domain Settings:
       - locale.py: Supported locales for rendered views
       - engine.py: DuckDB session settings
       - preview.py: Preview paging limits
       - processing.py: Timestamps, output location, log level

    3. Main Aggregator (main.py):
       - _Settings: aggregates all domain settings
       - get_settings(): Singleton factory function
       - _reload_settings(): Force reload from environment

Environment Variable Naming:
    - Case: UPPER_SNAKE_CASE (matching is case-insensitive)
    - Nested: double underscore, e.g. LOCALE__SUPPORTED_LOCALES=en-GB,cy-GB
      or ENGINE__MEMORY_LIMIT=2GB
"""

from .main import _Settings, get_settings, _reload_settings
from .base import StatCubeBaseSettings
from .engine import EngineSettings
from .locale import LocaleSettings
from .preview import PreviewSettings
from .processing import ProcessingSettings

__all__ = [
    "get_settings",
    "StatCubeBaseSettings",
    "EngineSettings",
    "LocaleSettings",
    "PreviewSettings",
    "ProcessingSettings",
]
