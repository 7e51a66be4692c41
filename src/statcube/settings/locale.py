"""Locale configuration.

Every cube build renders one view per supported locale, so the locale list
is validated up front rather than discovered during the build.
"""

import re
from typing import List

from pydantic import BaseModel, Field, field_validator

_LOCALE_PATTERN = re.compile(r"^[a-zA-Z]{2,3}(-[a-zA-Z]{2})?$")


class LocaleSettings(BaseModel):
    """Supported locales for rendered cube views."""

    supported_locales: str = Field(
        default="en-GB,cy-GB",
        description=(
            "Comma-separated list of supported locales (e.g. 'en-GB,cy-GB'). "
            "One view per locale is created, named after its primary language subtag."
        )
    )

    @field_validator("supported_locales")
    @classmethod
    def validate_supported_locales(cls, v: str) -> str:
        """Validate the locale list and normalize its separators."""
        locales = [loc.strip() for loc in v.split(",") if loc.strip()]
        if not locales:
            raise ValueError("At least one supported locale is required")

        for locale in locales:
            if not _LOCALE_PATTERN.match(locale):
                raise ValueError(
                    f"Invalid locale '{locale}'. Expected a language tag such as 'en' or 'en-GB'."
                )

        languages = [loc.lower().split("-")[0] for loc in locales]
        if len(set(languages)) != len(languages):
            raise ValueError(
                f"Supported locales must have distinct primary languages: {', '.join(locales)}"
            )

        return ",".join(locales)

    def get_supported_locales(self) -> List[str]:
        """Get the list of supported locales in declaration order."""
        return [loc.strip() for loc in self.supported_locales.split(",")]
