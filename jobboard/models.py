from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Field order of a stored job record (JSON keys are camelCase).
RECORD_FIELDS = (
    "id",
    "title",
    "description",
    "companyName",
    "location",
    "domain",
    "workType",
    "employmentType",
    "userType",
    "salaryRange",
    "applyLink",
    "careerLink",
    "companySummary",
    "isSpam",
    "userId",
    "createdBy",
    "createdAt",
    "updatedAt",
)

OPTIONAL_TEXT_FIELDS = (
    "location",
    "domain",
    "workType",
    "employmentType",
    "userType",
    "salaryRange",
    "applyLink",
    "careerLink",
)

REQUIRED_FIELDS = ("title", "description", "companyName")

REQUIRED_FIELDS_MESSAGE = "Required fields missing. Title, description, and company name are required."


def missing_required(candidate: Mapping[str, Any]) -> List[str]:
    """Required fields that are absent, not strings, or blank."""
    missing = []
    for name in REQUIRED_FIELDS:
        value = candidate.get(name)
        if not isinstance(value, str) or not value.strip():
            missing.append(name)
    return missing


@dataclass(frozen=True)
class Enrichment:
    company_summary: Optional[str] = None
    is_spam: bool = False


@dataclass(frozen=True)
class Identity:
    """Claims carried by a verified session token."""

    user_id: Any
    username: str

    def claims(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "username": self.username}


class JobCreate(BaseModel):
    """Body of POST /api/jobs. Required fields are checked by the route so it can answer 400."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    companyName: Optional[str] = None
    location: Optional[str] = None
    domain: Optional[str] = None
    workType: Optional[str] = None
    employmentType: Optional[str] = None
    userType: Optional[str] = None
    salaryRange: Optional[str] = None
    applyLink: Optional[str] = None
    careerLink: Optional[str] = None
    userId: Optional[Any] = None
    createdBy: Optional[str] = None

    @field_validator(
        "title", "description", "companyName", *OPTIONAL_TEXT_FIELDS, "createdBy",
        mode="before",
    )
    @classmethod
    def _scalars_to_text(cls, value: Any) -> Any:
        # JSON numbers and booleans are accepted as text (e.g. salaryRange: 120000).
        if isinstance(value, bool):
            return json.dumps(value)
        if isinstance(value, (int, float)):
            return str(value)
        return value

    def missing_required(self) -> List[str]:
        return missing_required(self.model_dump())

    def to_candidate(self, identity: Identity) -> Dict[str, Any]:
        """Partial record with attribution defaulted to the caller."""
        candidate = self.model_dump()
        if candidate.get("userId") in (None, ""):
            candidate["userId"] = identity.user_id
        if not candidate.get("createdBy"):
            candidate["createdBy"] = identity.username
        return candidate


class IssueCreate(BaseModel):
    title: str = Field(min_length=1)
    body: Optional[str] = None
    labels: List[str] = Field(default_factory=list)


class CallbackBody(BaseModel):
    code: str = Field(min_length=1)
