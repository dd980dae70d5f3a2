from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class SubmissionRequest(BaseModel):
    """JSON body accepted by the submission endpoint.

    Unknown top-level keys are ignored; ``payload`` values may be any JSON.
    """

    token: str = Field("", description="Challenge response token from the widget")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Form fields forwarded by email after sanitizing",
    )

    @field_validator("token", "payload", mode="before")
    @classmethod
    def _null_as_missing(cls, value: Any, info) -> Any:
        # JSON null behaves like an absent key
        if value is None:
            return "" if info.field_name == "token" else {}
        return value
