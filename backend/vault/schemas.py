"""
Pydantic shapes for users and the six record categories.

Each category has three shapes:

  *In      create payload; required fields enforced, unknown keys (including
           any client-sent user_id) ignored
  *Patch   partial update; only the fields the client actually sent are applied
  record   what the gateway returns: id, user_id and the data fields

Record shapes carry a `kind` tag so the six of them form a closed union
(`Record`). `PUBLIC_FIELDS` on each record is the one place that decides which
fields leave the system in exports.
"""

import datetime as dt
from typing import Annotated, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

RequiredText = Annotated[str, Field(min_length=1)]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class RegisterIn(BaseModel):
    username: Annotated[str, Field(min_length=3, max_length=50)]
    email: EmailStr
    password: Annotated[str, Field(min_length=6, max_length=72)]

    @field_validator("password")
    @classmethod
    def fits_bcrypt(cls, value: str) -> str:
        # bcrypt ignores everything past 72 bytes
        if len(value.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return value


class LoginIn(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: str
    username: str
    email: str
    created_at: Optional[dt.datetime] = None


class StoredUser(UserOut):
    """A user as persisted. Never returned from an endpoint directly."""

    password_hash: str

    def public(self) -> UserOut:
        return UserOut(**self.model_dump(exclude={"password_hash"}))


class AuthOut(BaseModel):
    user: UserOut
    token: str


class MeOut(BaseModel):
    user: UserOut


# ---------------------------------------------------------------------------
# Shared bases
# ---------------------------------------------------------------------------

class RecordBase(BaseModel):
    PUBLIC_FIELDS: ClassVar[tuple[str, ...]] = ()

    id: str
    user_id: str

    def public_view(self) -> dict:
        """Data fields in declaration order, without id / user_id."""
        return {name: getattr(self, name) for name in self.PUBLIC_FIELDS}


class PatchBase(BaseModel):
    """Partial update. Required columns may be omitted but not nulled."""

    NOT_NULL: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_null_required(self):
        for name in self.model_fields_set:
            if name in self.NOT_NULL and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# ---------------------------------------------------------------------------
# Personal info
# ---------------------------------------------------------------------------

class PersonalInfoIn(BaseModel):
    full_name: Optional[str] = None
    passport_number: Optional[str] = None
    dob: Optional[dt.date] = None


class PersonalInfoPatch(PatchBase):
    full_name: Optional[str] = None
    passport_number: Optional[str] = None
    dob: Optional[dt.date] = None


class PersonalInfo(RecordBase):
    PUBLIC_FIELDS = ("full_name", "passport_number", "dob")

    kind: Literal["personal"] = Field("personal", exclude=True)
    full_name: Optional[str] = None
    passport_number: Optional[str] = None
    dob: Optional[dt.date] = None


# ---------------------------------------------------------------------------
# Travel history
# ---------------------------------------------------------------------------

class TravelEntryIn(BaseModel):
    date: dt.date
    destination: RequiredText
    notes: Optional[str] = None


class TravelEntryPatch(PatchBase):
    NOT_NULL = ("date", "destination")

    date: Optional[dt.date] = None
    destination: Optional[RequiredText] = None
    notes: Optional[str] = None


class TravelEntry(RecordBase):
    PUBLIC_FIELDS = ("date", "destination", "notes")

    kind: Literal["travel"] = Field("travel", exclude=True)
    date: dt.date
    destination: str
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Flights
# ---------------------------------------------------------------------------

class FlightIn(BaseModel):
    flight_number: RequiredText
    airline: RequiredText
    departure_airport: RequiredText
    arrival_airport: RequiredText
    departure_time: Optional[dt.datetime] = None
    arrival_time: Optional[dt.datetime] = None
    gate: Optional[str] = None
    status: Optional[str] = None


class FlightPatch(PatchBase):
    NOT_NULL = ("flight_number", "airline", "departure_airport", "arrival_airport")

    flight_number: Optional[RequiredText] = None
    airline: Optional[RequiredText] = None
    departure_airport: Optional[RequiredText] = None
    arrival_airport: Optional[RequiredText] = None
    departure_time: Optional[dt.datetime] = None
    arrival_time: Optional[dt.datetime] = None
    gate: Optional[str] = None
    status: Optional[str] = None


class Flight(RecordBase):
    PUBLIC_FIELDS = (
        "flight_number",
        "airline",
        "departure_airport",
        "arrival_airport",
        "departure_time",
        "arrival_time",
        "gate",
        "status",
    )

    kind: Literal["flights"] = Field("flights", exclude=True)
    flight_number: str
    airline: str
    departure_airport: str
    arrival_airport: str
    departure_time: Optional[dt.datetime] = None
    arrival_time: Optional[dt.datetime] = None
    gate: Optional[str] = None
    status: Optional[str] = None


class FlightLookupOut(BaseModel):
    flight_number: str
    airline: str
    departure_airport: str
    arrival_airport: str
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None
    gate: Optional[str] = None
    status: Optional[str] = None


# ---------------------------------------------------------------------------
# Employers
# ---------------------------------------------------------------------------

class EmployerIn(BaseModel):
    company_name: RequiredText
    role: RequiredText
    start_date: dt.date
    end_date: Optional[dt.date] = None  # None = current job
    notes: Optional[str] = None


class EmployerPatch(PatchBase):
    NOT_NULL = ("company_name", "role", "start_date")

    company_name: Optional[RequiredText] = None
    role: Optional[RequiredText] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    notes: Optional[str] = None


class Employer(RecordBase):
    PUBLIC_FIELDS = ("company_name", "role", "start_date", "end_date", "notes")

    kind: Literal["employers"] = Field("employers", exclude=True)
    company_name: str
    role: str
    start_date: dt.date
    end_date: Optional[dt.date] = None
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Education
# ---------------------------------------------------------------------------

class EducationIn(BaseModel):
    institution: RequiredText
    degree: RequiredText
    start_date: dt.date
    end_date: Optional[dt.date] = None


class EducationPatch(PatchBase):
    NOT_NULL = ("institution", "degree", "start_date")

    institution: Optional[RequiredText] = None
    degree: Optional[RequiredText] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None


class Education(RecordBase):
    PUBLIC_FIELDS = ("institution", "degree", "start_date", "end_date")

    kind: Literal["education"] = Field("education", exclude=True)
    institution: str
    degree: str
    start_date: dt.date
    end_date: Optional[dt.date] = None


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

class AddressIn(BaseModel):
    address: RequiredText
    city: RequiredText
    state: Optional[str] = None
    country: RequiredText
    from_date: dt.date
    to_date: Optional[dt.date] = None  # None = current address


class AddressPatch(PatchBase):
    NOT_NULL = ("address", "city", "country", "from_date")

    address: Optional[RequiredText] = None
    city: Optional[RequiredText] = None
    state: Optional[str] = None
    country: Optional[RequiredText] = None
    from_date: Optional[dt.date] = None
    to_date: Optional[dt.date] = None


class Address(RecordBase):
    PUBLIC_FIELDS = ("address", "city", "state", "country", "from_date", "to_date")

    kind: Literal["addresses"] = Field("addresses", exclude=True)
    address: str
    city: str
    state: Optional[str] = None
    country: str
    from_date: dt.date
    to_date: Optional[dt.date] = None


Record = Annotated[
    Union[PersonalInfo, TravelEntry, Flight, Employer, Education, Address],
    Field(discriminator="kind"),
]


class MessageOut(BaseModel):
    message: str


class StatsOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_trips: int
    flights_taken: int
    countries_visited: int
    career_changes: int
