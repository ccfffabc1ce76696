"""Git hosting platform issue model."""

from pydantic import BaseModel


class Issue(BaseModel):
    """Git hosting platform issue (body only filled when fetched)."""

    number: int
    title: str = ""
    state: str = "open"
    body: str | None = None
