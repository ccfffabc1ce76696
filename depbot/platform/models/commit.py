"""File changes and local commit results used by platform-native commits."""

from typing import List, Literal

from pydantic import BaseModel, Field


class FileChange(BaseModel):
    """Single file addition (with contents) or deletion."""

    type: Literal["addition", "deletion"]
    path: str
    contents: str | bytes | None = None
    is_executable: bool = False


class CommitResult(BaseModel):
    """Local commit prepared by the git collaborator."""

    parent_commit_sha: str
    commit_sha: str
    files: List[FileChange] = Field(default_factory=list)
