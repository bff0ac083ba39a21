"""
Contact record data model.
"""

import uuid
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional


class Relevancy(Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def parse(cls, value: Any) -> Optional["Relevancy"]:
        """Accept an enum member or a case-insensitive label; blank means unset."""
        if value is None or isinstance(value, cls):
            return value
        text = str(value).strip()
        if not text:
            return None
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        raise ValueError(f"Unknown relevancy: {value!r}")


# Choices offered by the capture form
RELEVANCY_OPTIONS = [r.value for r in Relevancy]
PARTNER_OPTIONS = [
    "Authorized Reseller",
    "Distributor",
    "System Integrator",
    "Technology Partner",
    "Channel Partner",
    "OEM Partner",
]
REGION_OPTIONS = [
    "North America",
    "South America",
    "Europe",
    "Asia Pacific",
    "Middle East",
    "Africa",
]
TIER_OPTIONS = ["Tier 1", "Tier 2", "Tier 3", "Enterprise"]
LOB_OPTIONS = ["Healthcare", "Education", "Finance", "Manufacturing", "Retail", "Government"]

TAG_FIELDS = ("partner_details", "target_regions")


def _tags(values: Optional[Iterable[str]]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = values.split(",")
    return sorted({v.strip() for v in values if v and v.strip()})


def _ternary(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("", "none", "null"):
        return None
    if text in ("true", "yes", "1", "on"):
        return True
    if text in ("false", "no", "0", "off"):
        return False
    raise ValueError(f"Expected a yes/no value, got {value!r}")


def new_record_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ContactRecord:
    """A captured business contact.

    ``partner_details`` and ``target_regions`` are sets in meaning; they are
    kept sorted and de-duplicated so equal sets compare equal.
    """
    id: str = field(default_factory=new_record_id)
    rep: str = ""
    relevancy: Optional[Relevancy] = None
    company_name: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    whatsapp: str = ""
    partner_details: List[str] = field(default_factory=list)
    target_regions: List[str] = field(default_factory=list)
    lob: str = ""
    tier: str = ""
    grades: str = ""
    volume: str = ""
    add_associates: Optional[bool] = None
    notes: str = ""
    business_card_url: Optional[str] = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        self.relevancy = Relevancy.parse(self.relevancy)
        self.add_associates = _ternary(self.add_associates)
        for name in TAG_FIELDS:
            setattr(self, name, _tags(getattr(self, name)))
        if self.submitted_at.tzinfo is None:
            self.submitted_at = self.submitted_at.replace(tzinfo=timezone.utc)

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def create(cls, **values: Any) -> "ContactRecord":
        """Build a new record; id and timestamp are always freshly assigned."""
        values.pop("id", None)
        values.pop("submitted_at", None)
        unknown = set(values) - set(cls.field_names())
        if unknown:
            raise ValueError(f"Unknown contact fields: {', '.join(sorted(unknown))}")
        return cls(**values)

    @classmethod
    def from_form(cls, form: Mapping[str, Any], prefill: Optional[Mapping[str, Any]] = None) -> "ContactRecord":
        """Merge user input over an extraction prefill.

        A non-empty user value always wins; an empty one leaves the prefilled
        value in place.
        """
        values: Dict[str, Any] = dict(prefill or {})
        for key, value in form.items():
            if value in (None, "", []) and key in values:
                continue
            values[key] = value
        return cls.create(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["relevancy"] = self.relevancy.value if self.relevancy else None
        data["submitted_at"] = self.submitted_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContactRecord":
        values = {k: v for k, v in data.items() if k in cls.field_names()}
        submitted_at = values.get("submitted_at")
        if isinstance(submitted_at, str):
            values["submitted_at"] = datetime.fromisoformat(submitted_at)
        return cls(**values)
