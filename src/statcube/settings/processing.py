from typing import Optional

import pytz
from pytz.tzinfo import BaseTzInfo
from pydantic import BaseModel, Field, field_validator


class ProcessingSettings(BaseModel):

    time_zone: str = Field(
        default="Europe/London",
        description="Time zone used for build timestamps written to the cube metadata table"
    )

    output_directory: Optional[str] = Field(
        default=None,
        description="Directory for finished cube artifacts and exports (system temp dir when unset)"
    )

    log_level: str = Field(
        default="INFO",
        description="Base log level passed to setup_logging"
    )

    @field_validator('time_zone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate that the timezone is valid."""
        try:
            pytz.timezone(v)
            return v
        except pytz.exceptions.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {v}. Use pytz timezone names like 'Europe/London'")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def timezone_info(self) -> BaseTzInfo:
        """Get the pytz timezone object."""
        return pytz.timezone(self.time_zone)
