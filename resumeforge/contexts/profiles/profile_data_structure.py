"""
Profile snapshot data structures for the Profiles context.

A ProfileSnapshot is an immutable view of a candidate's identity fields, work
history and education. The generation pipeline borrows one per request and
never mutates it.

Factory methods accept plain dicts (e.g. parsed JSON or database rows) with
dates given either as datetime.date objects or ISO 8601 strings.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Union

DateLike = Union[date, str, None]


def parse_date(value: DateLike) -> Optional[date]:
    """
    Parse an ISO 8601 date or datetime string into a date.

    Args:
        value: date, ISO string ("2021-03-01" or "2021-03-01T00:00:00Z"), or None

    Returns:
        date, or None for None/empty input

    Raises:
        ValueError: If the string is not a valid ISO date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if "T" in text or " " in text:
        return datetime.fromisoformat(text).date()
    return date.fromisoformat(text)


@dataclass(frozen=True)
class WorkHistoryEntry:
    """One position in a candidate's work history."""

    company: str
    title: str
    start_date: date
    end_date: Optional[date] = None
    is_current: bool = False
    location: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkHistoryEntry":
        return cls(
            company=data["company"],
            title=data["title"],
            start_date=parse_date(data["start_date"]),
            end_date=parse_date(data.get("end_date")),
            is_current=bool(data.get("is_current", False)),
            location=data.get("location") or "",
            description=data.get("description") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "company": self.company,
            "title": self.title,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "is_current": self.is_current,
            "location": self.location,
            "description": self.description,
        }


@dataclass(frozen=True)
class EducationEntry:
    """One degree program in a candidate's education."""

    school: str
    degree: str
    field: str
    start_date: date
    end_date: Optional[date] = None
    is_current: bool = False
    location: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EducationEntry":
        return cls(
            school=data["school"],
            degree=data["degree"],
            field=data["field"],
            start_date=parse_date(data["start_date"]),
            end_date=parse_date(data.get("end_date")),
            is_current=bool(data.get("is_current", False)),
            location=data.get("location") or "",
            description=data.get("description") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "school": self.school,
            "degree": self.degree,
            "field": self.field,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "is_current": self.is_current,
            "location": self.location,
            "description": self.description,
        }


@dataclass(frozen=True)
class ProfileSnapshot:
    """
    Read-only view of a candidate profile.

    Work history and education are kept in the order supplied by the lookup
    (most recent start date first when loaded from ProfileDatabase).
    """

    full_name: str
    email: str
    phone: str = ""
    location: str = ""
    title: str = ""
    summary: str = ""
    work_history: tuple[WorkHistoryEntry, ...] = field(default_factory=tuple)
    education: tuple[EducationEntry, ...] = field(default_factory=tuple)
    profile_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProfileSnapshot":
        """
        Build a snapshot from a plain dict.

        Expected keys: full_name, email, and optionally phone, location, title,
        summary, work_history (list of dicts), education (list of dicts), id.
        """
        return cls(
            full_name=data["full_name"],
            email=data["email"],
            phone=data.get("phone") or "",
            location=data.get("location") or "",
            title=data.get("title") or "",
            summary=data.get("summary") or "",
            work_history=tuple(
                WorkHistoryEntry.from_dict(entry) for entry in data.get("work_history") or []
            ),
            education=tuple(
                EducationEntry.from_dict(entry) for entry in data.get("education") or []
            ),
            profile_id=data.get("id"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.profile_id,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "location": self.location,
            "title": self.title,
            "summary": self.summary,
            "work_history": [entry.to_dict() for entry in self.work_history],
            "education": [entry.to_dict() for entry in self.education],
        }
