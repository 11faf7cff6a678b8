"""
schemas/records.py — Input records supplied by the admin console

Validates SiteVisits, Projects (with nested Associations) and Caretakers.
Records are read-only inputs; nothing here is persisted.

Business Rules:
- SiteVisit.visit_number is 1-4 (a pair tracks at most four visits)
- SiteVisit.status must be one of: scheduled, in-progress, completed, cancelled
- SiteVisit.visit_date is kept raw; a malformed date must not reject the batch
- Projects arrive flat or in the nested enterpriseSetup/operationalInformation
  shape and are flattened on the way in
- Caretaker association label: slpAssociation, then associationName,
  "No Association" counts as unset, otherwise "Unassigned"

Called by: routers/rankings.py, services/*.py, cli.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

VisitStatus = Literal["scheduled", "in-progress", "completed", "cancelled"]

UNASSIGNED = "Unassigned"
NO_ASSOCIATION = "No Association"


def _id_from_mongo(data: Any) -> Any:
    """Accept `_id` where `id` is missing (documents exported from the console)."""
    if isinstance(data, dict) and not data.get("id") and data.get("_id"):
        data = {**data, "id": str(data["_id"])}
    return data


def _coerce_identifier(v: Any) -> Any:
    """Console exports sometimes carry numeric ids; ids are compared as strings."""
    return str(v) if isinstance(v, int) and not isinstance(v, bool) else v


# ── Caretakers ───────────────────────────────────────────────────────


class Caretaker(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    name: str | None = None
    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    role: str = "Caretaker"
    email: str | None = None
    contact_number: str | None = Field(None, alias="contactNumber")
    notes: str | None = None
    status: str | None = None
    slp_association: str | None = Field(None, alias="slpAssociation")
    association_name: str | None = Field(None, alias="associationName")
    association_id: str | None = Field(None, alias="associationId")

    @model_validator(mode="before")
    @classmethod
    def accept_mongo_id(cls, data: Any) -> Any:
        return _id_from_mongo(data)

    @field_validator("id", "association_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        return _coerce_identifier(v)

    @property
    def association_label(self) -> str:
        for label in (self.slp_association, self.association_name):
            if label and label.strip() and label.strip() != NO_ASSOCIATION:
                return label.strip()
        return UNASSIGNED

    @property
    def full_name(self) -> str:
        if self.name:
            return self.name
        if self.first_name or self.last_name:
            return f"{self.first_name or ''} {self.last_name or ''}".strip()
        return "Unnamed Caretaker"


# ── Projects & Associations ─────────────────────────────────────────


class Association(BaseModel):
    id: str = ""
    name: str = ""
    location: str = ""
    no_active_members: int = 0
    region: str = ""
    province: str = ""
    contact_person: str = ""
    contact_number: str = ""
    email: str = ""

    @model_validator(mode="before")
    @classmethod
    def accept_mongo_id(cls, data: Any) -> Any:
        return _id_from_mongo(data)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        return _coerce_identifier(v)

    @field_validator("no_active_members", mode="before")
    @classmethod
    def members_default_zero(cls, v: Any) -> Any:
        return 0 if v in (None, "") else v


class Project(BaseModel):
    id: str = "unknown"
    project_name: str = "Unnamed Project"
    enterprise_type: str = "Unknown"
    status: str = "active"
    start_date: str | None = None
    city_municipality: str = ""
    province: str = ""
    association_name: str | None = None
    associations: list[Association] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def flatten_console_shape(cls, data: Any) -> Any:
        """Flatten enterpriseSetup / operationalInformation into plain fields."""
        if not isinstance(data, dict):
            return data
        data = dict(_id_from_mongo(data))
        setup = data.pop("enterpriseSetup", None) or {}
        ops = data.pop("operationalInformation", None) or {}

        def pick(flat_key: str, *keys: str) -> Any:
            if data.get(flat_key):
                return data[flat_key]
            for k in keys:
                if data.get(k):
                    return data[k]
                if setup.get(k):
                    return setup[k]
            return None

        fields = {
            "project_name": pick("project_name", "projectName"),
            "enterprise_type": pick("enterprise_type", "enterpriseType"),
            "status": pick("status", "status"),
            "start_date": pick("start_date", "startDate"),
            "city_municipality": pick("city_municipality", "cityMunicipality"),
            "province": pick("province", "province"),
            "association_name": pick("association_name", "associationName"),
        }
        for key, value in fields.items():
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value

        if not data.get("associations") and ops.get("multipleAssociations"):
            data["associations"] = ops["multipleAssociations"]
        for key in ("projectName", "enterpriseType", "startDate", "cityMunicipality", "associationName"):
            data.pop(key, None)
        if not data.get("id"):
            data.pop("id", None)
        return data

    @field_validator("id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        return _coerce_identifier(v)

    @property
    def association_names(self) -> list[str]:
        names = [a.name for a in self.associations if a.name]
        if not names and self.association_name and self.association_name != NO_ASSOCIATION:
            names = [self.association_name]
        return names


# ── Site Visits ──────────────────────────────────────────────────────


class SiteVisit(BaseModel):
    id: str
    project_id: str
    project_name: str = ""
    association_name: str = ""
    association_id: str | None = None
    visit_number: int = Field(1, ge=1, le=4)
    visit_date: date | str | None = None
    status: VisitStatus = "scheduled"
    visit_purpose: str = ""
    participants: list[str] = Field(default_factory=list)
    location: str = ""
    findings: str | None = ""
    recommendations: str = ""
    next_steps: str = ""
    caretakers: list[Caretaker] = Field(default_factory=list)
    created_by: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @model_validator(mode="before")
    @classmethod
    def accept_mongo_id(cls, data: Any) -> Any:
        return _id_from_mongo(data)

    @field_validator("project_id", "id", "association_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        return _coerce_identifier(v)

    @field_validator("visit_purpose", "location", "recommendations", "next_steps", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v
