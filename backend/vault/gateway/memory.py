"""
In-memory gateway — dict-backed, one instance per app or per test.

Nothing here is module-level: two InMemoryGateway objects never share data.
"""

import datetime as dt
from typing import Optional

from vault.entities import ENTITIES, EntityKind, EntitySpec
from vault.errors import Conflict
from vault.gateway.base import (
    PersistenceGateway,
    RecordCollection,
    clean_fields,
    new_id,
    newest_first,
)
from vault.schemas import RecordBase, StoredUser


class InMemoryCollection(RecordCollection):
    def __init__(self, spec: EntitySpec, users: dict[str, StoredUser]):
        super().__init__(spec)
        # Shared with the owning gateway, read-only here
        self._users = users
        # Insertion-ordered: id -> record
        self._rows: dict[str, RecordBase] = {}

    def _owned(self, record_id: str, user_id: str) -> Optional[RecordBase]:
        record = self._rows.get(record_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    def list(self, user_id: str) -> list[RecordBase]:
        records = [r for r in self._rows.values() if r.user_id == user_id]
        return newest_first(records, self.spec.order_by)

    def create(self, user_id: str, fields: dict) -> RecordBase:
        if user_id not in self._users:
            raise self.owner_missing()
        if self.spec.singleton and any(r.user_id == user_id for r in self._rows.values()):
            raise Conflict(f"{self.spec.noun} already exists")
        record = self.spec.record(id=new_id(), user_id=user_id, **clean_fields(self.spec, fields))
        self._rows[record.id] = record
        return record

    def update(self, record_id: str, user_id: str, changes: dict) -> RecordBase:
        current = self._owned(record_id, user_id)
        if current is None:
            raise self.not_found()
        merged = {**current.model_dump(), **clean_fields(self.spec, changes)}
        record = self.spec.record(**merged)
        self._rows[record_id] = record
        return record

    def delete(self, record_id: str, user_id: str) -> bool:
        if self._owned(record_id, user_id) is None:
            return False
        del self._rows[record_id]
        return True

    def purge_user(self, user_id: str) -> None:
        for record_id in [r.id for r in self._rows.values() if r.user_id == user_id]:
            del self._rows[record_id]


class InMemoryGateway(PersistenceGateway):
    def __init__(self):
        self._users: dict[str, StoredUser] = {}
        self._collections = {kind: InMemoryCollection(spec, self._users) for kind, spec in ENTITIES.items()}

    def collection(self, kind: EntityKind) -> InMemoryCollection:
        return self._collections[EntityKind(kind)]

    def get_user(self, user_id: str) -> Optional[StoredUser]:
        return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[StoredUser]:
        return next((u for u in self._users.values() if u.email == email), None)

    def get_user_by_username(self, username: str) -> Optional[StoredUser]:
        return next((u for u in self._users.values() if u.username == username), None)

    def create_user(self, username: str, email: str, password_hash: str) -> StoredUser:
        if self.get_user_by_username(username) or self.get_user_by_email(email):
            raise Conflict("Username or email already registered")
        user = StoredUser(
            id=new_id(),
            username=username,
            email=email,
            password_hash=password_hash,
            created_at=dt.datetime.now(dt.timezone.utc).replace(tzinfo=None),
        )
        self._users[user.id] = user
        return user

    def delete_user(self, user_id: str) -> bool:
        if self._users.pop(user_id, None) is None:
            return False
        for collection in self._collections.values():
            collection.purge_user(user_id)
        return True
