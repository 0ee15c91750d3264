"""
Persistence gateway contract.

Route handlers and the export engine only ever talk to a PersistenceGateway.
Two implementations exist, InMemoryGateway and SqlGateway, and both must
behave identically from the outside:

  - every collection operation is scoped to the calling user
  - create() assigns the id and forces user_id to the caller, who must
    still exist (NotFound otherwise)
  - update() applies only the supplied fields; a record that is missing or
    owned by someone else raises NotFound either way
  - delete() returns True only when an owned record was removed
  - list() returns newest first by the category's order field, nulls last;
    equal keys keep insertion order
"""

import datetime as dt
import uuid
from abc import ABC, abstractmethod
from typing import Optional

from vault.entities import EntityKind, EntitySpec
from vault.errors import NotFound
from vault.schemas import RecordBase, StoredUser

PROTECTED_FIELDS = ("id", "user_id")


def new_id() -> str:
    return str(uuid.uuid4())


def clean_fields(spec: EntitySpec, fields: dict) -> dict:
    """
    Keep only the category's data fields and normalise timestamps to naive
    UTC, which is what the relational backend hands back.
    """
    cleaned = {}
    for name, value in fields.items():
        if name in PROTECTED_FIELDS or name not in spec.record.PUBLIC_FIELDS:
            continue
        if isinstance(value, dt.datetime) and value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        cleaned[name] = value
    return cleaned


def newest_first(records: list[RecordBase], field: Optional[str]) -> list[RecordBase]:
    if not field:
        return list(records)
    dated = [r for r in records if getattr(r, field) is not None]
    undated = [r for r in records if getattr(r, field) is None]
    dated.sort(key=lambda r: getattr(r, field), reverse=True)
    return dated + undated


class RecordCollection(ABC):
    """CRUD over one record category, always scoped by owning user."""

    def __init__(self, spec: EntitySpec):
        self.spec = spec

    @abstractmethod
    def list(self, user_id: str) -> list[RecordBase]:
        ...

    @abstractmethod
    def create(self, user_id: str, fields: dict) -> RecordBase:
        ...

    @abstractmethod
    def update(self, record_id: str, user_id: str, changes: dict) -> RecordBase:
        ...

    @abstractmethod
    def delete(self, record_id: str, user_id: str) -> bool:
        ...

    @staticmethod
    def owner_missing() -> NotFound:
        return NotFound("User not found")

    def not_found(self) -> NotFound:
        return NotFound(f"{self.spec.noun} not found")


class PersistenceGateway(ABC):
    @abstractmethod
    def collection(self, kind: EntityKind) -> RecordCollection:
        ...

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[StoredUser]:
        ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[StoredUser]:
        ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[StoredUser]:
        ...

    @abstractmethod
    def create_user(self, username: str, email: str, password_hash: str) -> StoredUser:
        """Raises Conflict when the username or email is already taken."""

    @abstractmethod
    def delete_user(self, user_id: str) -> bool:
        """Remove the user and every record they own."""
