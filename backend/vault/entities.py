"""
Registry of the six record categories.

One EntitySpec per category ties together its section key (used by exports
and the gateway), its route path, its pydantic shapes and its list ordering.
Everything that loops over "all categories" goes through ENTITIES so adding a
field or a category happens in one place.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from vault import schemas


class EntityKind(str, Enum):
    PERSONAL = "personal"
    TRAVEL = "travel"
    FLIGHTS = "flights"
    EMPLOYERS = "employers"
    EDUCATION = "education"
    ADDRESSES = "addresses"


@dataclass(frozen=True)
class EntitySpec:
    kind: EntityKind
    path: str                      # route prefix, e.g. "/travel-history"
    label: str                     # heading in PDF exports
    noun: str                      # used in "<noun> not found" messages
    record: type[schemas.RecordBase]
    create: type[BaseModel]
    patch: type[schemas.PatchBase]
    # Field sorted descending by list(); None keeps insertion order
    order_by: Optional[str] = None
    # At most one record per user
    singleton: bool = False


ENTITIES: dict[EntityKind, EntitySpec] = {
    EntityKind.PERSONAL: EntitySpec(
        kind=EntityKind.PERSONAL,
        path="/personal-info",
        label="Personal Info",
        noun="Personal info",
        record=schemas.PersonalInfo,
        create=schemas.PersonalInfoIn,
        patch=schemas.PersonalInfoPatch,
        singleton=True,
    ),
    EntityKind.TRAVEL: EntitySpec(
        kind=EntityKind.TRAVEL,
        path="/travel-history",
        label="Travel History",
        noun="Travel entry",
        record=schemas.TravelEntry,
        create=schemas.TravelEntryIn,
        patch=schemas.TravelEntryPatch,
        order_by="date",
    ),
    EntityKind.FLIGHTS: EntitySpec(
        kind=EntityKind.FLIGHTS,
        path="/flights",
        label="Flights",
        noun="Flight",
        record=schemas.Flight,
        create=schemas.FlightIn,
        patch=schemas.FlightPatch,
        order_by="departure_time",
    ),
    EntityKind.EMPLOYERS: EntitySpec(
        kind=EntityKind.EMPLOYERS,
        path="/employers",
        label="Employers",
        noun="Employer",
        record=schemas.Employer,
        create=schemas.EmployerIn,
        patch=schemas.EmployerPatch,
        order_by="start_date",
    ),
    EntityKind.EDUCATION: EntitySpec(
        kind=EntityKind.EDUCATION,
        path="/education",
        label="Education",
        noun="Education record",
        record=schemas.Education,
        create=schemas.EducationIn,
        patch=schemas.EducationPatch,
        order_by="start_date",
    ),
    EntityKind.ADDRESSES: EntitySpec(
        kind=EntityKind.ADDRESSES,
        path="/addresses",
        label="Addresses",
        noun="Address",
        record=schemas.Address,
        create=schemas.AddressIn,
        patch=schemas.AddressPatch,
        order_by="from_date",
    ),
}
