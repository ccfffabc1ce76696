"""Gerrit REST entities (the subset of fields the adapter reads)."""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

TAG_PULL_REQUEST_BODY = "pull-request"


class GerritAccountInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    account_id: int | None = Field(default=None, alias="_account_id")
    username: str | None = None
    name: str | None = None
    email: str | None = None


class GerritLabelInfo(BaseModel):
    """Vote summary of one label on a change (DETAILED_LABELS/LABELS)."""

    model_config = ConfigDict(extra="ignore")

    approved: GerritAccountInfo | None = None
    rejected: GerritAccountInfo | None = None
    recommended: GerritAccountInfo | None = None
    disliked: GerritAccountInfo | None = None
    blocking: bool = False
    value: int | None = None
    default_value: int | None = None


class GerritLabelTypeInfo(BaseModel):
    """Label definition of a project; `values` keys are vote strings like "-1", " 0", "+1"."""

    model_config = ConfigDict(extra="ignore")

    values: Dict[str, str] = Field(default_factory=dict)
    default_value: int = 0


class GerritProjectInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    state: str | None = None
    labels: Dict[str, GerritLabelTypeInfo] = Field(default_factory=dict)


class GerritBranchInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ref: str
    revision: str


class GerritChangeMessageInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    message: str = ""
    tag: str | None = None
    date: str | None = None
    author: GerritAccountInfo | None = None


class GerritProblem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str = ""
    status: str | None = None


class GerritChange(BaseModel):
    """ChangeInfo as returned with the query options used by GerritClient."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    number: int = Field(alias="_number")
    change_id: str = ""
    project: str = ""
    branch: str = ""
    subject: str = ""
    status: str = "NEW"  # NEW | MERGED | ABANDONED
    hashtags: List[str] = Field(default_factory=list)
    created: str | None = None
    updated: str | None = None
    submittable: bool = False
    work_in_progress: bool = False
    problems: List[GerritProblem] = Field(default_factory=list)
    labels: Dict[str, GerritLabelInfo] = Field(default_factory=dict)
    reviewers: Dict[str, List[GerritAccountInfo]] = Field(default_factory=dict)
    messages: List[GerritChangeMessageInfo] = Field(default_factory=list)
    current_revision: str | None = None
    actions: Dict[str, Any] = Field(default_factory=dict)


class GerritLabelMapping(BaseModel):
    """Project label names voted for the stability-days / merge-confidence checks."""

    stability_days_label: str | None = None
    merge_confidence_label: str | None = None
