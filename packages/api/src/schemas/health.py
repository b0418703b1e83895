# This project was developed with assistance from AI tools.
"""Health check schemas."""

from typing import Literal

from pydantic import BaseModel


class HealthItem(BaseModel):
    name: str
    status: Literal["healthy", "unhealthy"]
    message: str
    version: str | None = None
