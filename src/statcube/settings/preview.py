from pydantic import BaseModel, Field, model_validator


class PreviewSettings(BaseModel):
    """Paging limits for cube previews."""

    min_page_size: int = Field(default=5, ge=1)
    max_page_size: int = Field(default=500, ge=1)
    default_page_size: int = Field(default=100, ge=1)

    @model_validator(mode='after')
    def validate_page_sizes(self) -> 'PreviewSettings':
        """Validate page size relationships."""
        if not self.min_page_size <= self.default_page_size <= self.max_page_size:
            raise ValueError(
                f"Page sizes must satisfy min ({self.min_page_size}) <= "
                f"default ({self.default_page_size}) <= max ({self.max_page_size})"
            )
        return self
