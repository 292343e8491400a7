"""Core data models for job searches and the records they own.

Entities are frozen: every mutation produces a new object via ``model_copy``.
Field names are snake_case in Python and camelCase on the wire, matching the
stored JSON records.
"""

import itertools
import time
from datetime import date, datetime
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from jobtrack.core.dates import parse_local_date, start_of_day, to_local

OpportunityStatus = Literal["saved", "applied", "interview", "offer", "rejected", "closed"]

LogEntryType = Literal[
    "phone_call",
    "email",
    "status_change",
    "interview",
    "application",
    "follow_up",
    "other",
]

STATUS_LABELS: dict[str, str] = {
    "saved": "Saved",
    "applied": "Applied",
    "interview": "Interview",
    "offer": "Offer",
    "rejected": "Rejected",
    "closed": "Closed",
}

INTERVIEW_TYPES = ("Phone Screen", "Video Call", "In-Person", "Technical", "Panel", "Final", "Other")

RESOURCE_CATEGORIES = ("Job Board", "Company", "Networking", "Learning", "Tools", "Other")

_id_counter = itertools.count()


def new_id() -> str:
    """Time-based opaque id, unique within one process."""
    return f"{time.time_ns() // 1_000_000}{next(_id_counter) % 1000:03d}"


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status.title())


def _coerce_instant(value: Any) -> Any:
    # Forms send bare YYYY-MM-DD; stored records may carry a UTC offset.
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return start_of_day(parse_local_date(text))
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return value
    if isinstance(value, datetime):
        return to_local(value)
    if isinstance(value, date):
        return start_of_day(value)
    return value


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class Interview(_Record):
    id: str = Field(default_factory=new_id)
    date: datetime
    time: str = ""
    type: str
    interviewer: str = ""
    notes: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def _instant(cls, v: Any) -> Any:
        return _coerce_instant(v)


class Contact(_Record):
    id: str = Field(default_factory=new_id)
    name: str
    role: str = ""
    company: str = ""
    email: str = ""
    phone: str = ""
    notes: str = ""


class Recruiter(_Record):
    id: str = Field(default_factory=new_id)
    name: str
    company: str = ""
    email: str = ""
    phone: str = ""
    specialty: str = ""
    notes: str = ""


class OnlineResource(_Record):
    id: str = Field(default_factory=new_id)
    name: str
    url: str = ""
    category: str = "Other"
    description: str = ""


class LogEntry(_Record):
    """One activity-log record; status_change entries are system-generated."""

    id: str = Field(default_factory=new_id)
    date: datetime
    type: LogEntryType
    description: str
    notes: str = ""
    opportunity_id: str | None = None
    recruiter_id: str | None = None
    other_contact: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def _instant(cls, v: Any) -> Any:
        return _coerce_instant(v)


class JobOpportunity(_Record):
    """One employer/role pursuit.

    ``date_applied`` is the date of the last status change, not the literal
    application date; it is rewritten whenever the status changes.
    """

    id: str = Field(default_factory=new_id)
    company: str
    position: str
    date_applied: date
    created_at: datetime | None = None
    status: OpportunityStatus = "applied"
    description: str = ""
    job_url: str = ""
    job_source: str = ""
    salary: str = ""
    location: str = ""
    notes: str = ""
    interviews: list[Interview] = Field(default_factory=list)
    contacts: list[Contact] = Field(default_factory=list)

    @field_validator("created_at", mode="before")
    @classmethod
    def _instant(cls, v: Any) -> Any:
        return _coerce_instant(v)

    @field_validator("date_applied", mode="before")
    @classmethod
    def _local_date(cls, v: Any) -> date:
        return parse_local_date(v)

    @property
    def searchable_text(self) -> str:
        return f"{self.company} {self.position}"


class JobSearch(_Record):
    """A named job-hunting campaign and everything it owns."""

    id: str = Field(default_factory=new_id)
    name: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)
    closed: int = Field(default=0, ge=0, le=1)
    closed_date: datetime | None = None
    opportunities: list[JobOpportunity] = Field(default_factory=list)
    recruiters: list[Recruiter] = Field(default_factory=list)
    resources: list[OnlineResource] = Field(default_factory=list)
    log: list[LogEntry] = Field(default_factory=list)

    @field_validator("created_at", "closed_date", mode="before")
    @classmethod
    def _instant(cls, v: Any) -> Any:
        return _coerce_instant(v)

    def find_opportunity(self, opportunity_id: str | None) -> JobOpportunity | None:
        return next((o for o in self.opportunities if o.id == opportunity_id), None)

    def find_recruiter(self, recruiter_id: str | None) -> Recruiter | None:
        return next((r for r in self.recruiters if r.id == recruiter_id), None)

    def replace_opportunity(self, opportunity: JobOpportunity) -> "JobSearch":
        return self.model_copy(
            update={
                "opportunities": [
                    opportunity if o.id == opportunity.id else o for o in self.opportunities
                ],
            },
        )

    @property
    def is_closed(self) -> bool:
        return self.closed == 1


# ---------------------------------------------------------------------------
# Mutation inputs: validated before they are merged into an entity
# ---------------------------------------------------------------------------


class _Draft(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


def _require_text(value: str) -> str:
    if not value.strip():
        msg = "must not be empty"
        raise ValueError(msg)
    return value.strip()


RequiredText = Annotated[str, AfterValidator(_require_text)]


class OpportunityDraft(_Draft):
    """Input for creating an opportunity."""

    company: RequiredText
    position: RequiredText
    date_applied: date | None = None
    status: OpportunityStatus = "applied"
    description: str = ""
    job_url: str = ""
    job_source: str = ""
    salary: str = ""
    location: str = ""
    notes: str = ""

    @field_validator("date_applied", mode="before")
    @classmethod
    def _local_date(cls, v: Any) -> Any:
        if v in ("", None):
            return None
        return parse_local_date(v)


class OpportunityPatch(_Draft):
    """Partial edit of an opportunity; only the fields that were set are merged."""

    company: RequiredText | None = None
    position: RequiredText | None = None
    status: OpportunityStatus | None = None
    description: str | None = None
    job_url: str | None = None
    job_source: str | None = None
    salary: str | None = None
    location: str | None = None
    notes: str | None = None

    def field_changes(self) -> dict[str, Any]:
        """Set fields other than status."""
        return self.model_dump(exclude_unset=True, exclude={"status"})


class InterviewDraft(_Draft):
    date: datetime
    type: RequiredText
    time: str = ""
    interviewer: str = ""
    notes: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def _instant(cls, v: Any) -> Any:
        return _coerce_instant(v)


class ContactDraft(_Draft):
    name: RequiredText
    role: RequiredText
    company: str = ""
    email: str = ""
    phone: str = ""
    notes: str = ""


class RecruiterDraft(_Draft):
    name: RequiredText
    company: RequiredText
    email: str = ""
    phone: str = ""
    specialty: str = ""
    notes: str = ""


class ResourceDraft(_Draft):
    name: RequiredText
    url: RequiredText
    category: RequiredText
    description: str = ""


class LogEntryDraft(_Draft):
    """Manual log entry input.

    ``use_other_contact`` mirrors the "other contact" choice of the email form:
    when set on an email entry, ``other_contact`` is required.
    """

    date: datetime
    type: LogEntryType
    description: RequiredText
    notes: str = ""
    opportunity_id: str | None = None
    recruiter_id: str | None = None
    other_contact: str = ""
    use_other_contact: bool = False

    @field_validator("date", mode="before")
    @classmethod
    def _instant(cls, v: Any) -> Any:
        return _coerce_instant(v)

    @field_validator("opportunity_id", "recruiter_id", mode="before")
    @classmethod
    def _blank_is_none(cls, v: Any) -> Any:
        return v or None

    @model_validator(mode="after")
    def _other_contact_required(self) -> "LogEntryDraft":
        if self.type == "email" and self.use_other_contact and not self.other_contact.strip():
            msg = "other_contact is required when emailing someone who is not a recruiter"
            raise ValueError(msg)
        return self
