# loadtest/schemas/author.py
from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class AuthorPayload(BaseModel):
    """
    Body for POST /author. The service assigns the id itself.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    full_name: str
    nick_name: str
    specialization: str

    def to_body(self) -> str:
        return self.model_dump_json()
