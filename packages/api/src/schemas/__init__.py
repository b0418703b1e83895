# This project was developed with assistance from AI tools.
"""Shared schema components."""

import math

from pydantic import BaseModel


class Pagination(BaseModel):
    """Page-based pagination metadata for list responses."""

    total: int
    page: int
    limit: int
    pages: int
    has_more: bool

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit) if limit else 0,
            has_more=page * limit < total,
        )
