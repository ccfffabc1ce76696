"""Security vulnerability alert reported by the platform."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class VulnerabilityAlert(BaseModel):
    """Vulnerability alert node as returned by the GitHub GraphQL API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    dismiss_reason: str | None = Field(default=None, alias="dismissReason")
    vulnerable_manifest_filename: str | None = Field(default=None, alias="vulnerableManifestFilename")
    vulnerable_manifest_path: str | None = Field(default=None, alias="vulnerableManifestPath")
    vulnerable_requirements: str | None = Field(default=None, alias="vulnerableRequirements")
    security_advisory: Dict[str, Any] | None = Field(default=None, alias="securityAdvisory")
    security_vulnerability: Dict[str, Any] | None = Field(default=None, alias="securityVulnerability")
