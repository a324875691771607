"""
Typed records for structured extraction and persisted submissions.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class OpportunityType(str, Enum):
    INTERNSHIP = "internship"
    FULL_TIME = "full_time"
    RESEARCH = "research"
    FELLOWSHIP = "fellowship"
    SCHOLARSHIP = "scholarship"


OPPORTUNITY_TYPES = tuple(t.value for t in OpportunityType)


class OpportunityStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


DEFAULT_COMPANY_NAME = "Unknown Company"
DEFAULT_JOB_TITLE = "Position Not Specified"
DEFAULT_OPPORTUNITY_TYPE = OpportunityType.INTERNSHIP

# Field names exactly as requested from the completion service
EXTRACTED_FIELD_NAMES = (
    "company_name",
    "job_title",
    "opportunity_type",
    "role_type",
    "relevant_majors",
    "deadline",
    "requirements",
    "location",
    "description",
)


@dataclass(frozen=True)
class ExtractedFields:
    """Best-effort structured knowledge about a posting. Every field may be None."""

    company_name: Optional[str] = None
    job_title: Optional[str] = None
    opportunity_type: Optional[OpportunityType] = None
    role_type: Optional[str] = None
    relevant_majors: Optional[Tuple[str, ...]] = None
    deadline: Optional[str] = None  # YYYY-MM-DD
    requirements: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {name: getattr(self, name) for name in EXTRACTED_FIELD_NAMES}
        if self.opportunity_type is not None:
            data["opportunity_type"] = self.opportunity_type.value
        if self.relevant_majors is not None:
            data["relevant_majors"] = list(self.relevant_majors) or None
        return data


@dataclass
class SubmissionRecord:
    """A row of the opportunities table."""

    url: str
    company_name: str
    job_title: str
    opportunity_type: OpportunityType
    role_type: Optional[str] = None
    relevant_majors: Tuple[str, ...] = ()
    deadline: Optional[str] = None
    requirements: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    submitted_by: Optional[str] = None
    status: OpportunityStatus = OpportunityStatus.ACTIVE
    ai_parsed_data: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["opportunity_type"] = self.opportunity_type.value
        data["status"] = self.status.value
        data["relevant_majors"] = list(self.relevant_majors)
        for key in ("created_at", "expired_at"):
            if isinstance(data[key], (datetime, date)):
                data[key] = data[key].isoformat()
        return data

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SubmissionRecord":
        """Build a record from a RealDictCursor row."""
        deadline = row.get("deadline")
        if isinstance(deadline, date):
            deadline = deadline.isoformat()
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            url=row["url"],
            company_name=row["company_name"],
            job_title=row["job_title"],
            opportunity_type=OpportunityType(row["opportunity_type"]),
            role_type=row.get("role_type"),
            relevant_majors=tuple(row.get("relevant_majors") or ()),
            deadline=deadline,
            requirements=row.get("requirements"),
            location=row.get("location"),
            description=row.get("description"),
            submitted_by=str(row["submitted_by"]) if row.get("submitted_by") is not None else None,
            status=OpportunityStatus(row.get("status") or OpportunityStatus.ACTIVE.value),
            ai_parsed_data=row.get("ai_parsed_data") or {},
            created_at=row.get("created_at"),
            expired_at=row.get("expired_at"),
        )
