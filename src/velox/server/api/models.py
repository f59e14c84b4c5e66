"""Request models for the scan API.

Request bodies are validated with pydantic; unknown fields are rejected so
typos in option names fail loudly instead of being ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScanRequest(BaseModel):
    """Body of ``POST /api/scans``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = Field(min_length=1)
    max_depth: int | None = Field(default=None, ge=0)
    include_hidden: bool | None = None
    follow_symlinks: bool | None = None

    @field_validator("path")
    @classmethod
    def strip_path(cls, v: str) -> str:
        """Reject whitespace-only paths."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("path must not be blank")
        return stripped
