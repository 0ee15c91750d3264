"""
Relational gateway on SQLAlchemy.

Each call runs in its own short-lived session. Storage failures are logged and
re-raised as InternalError (no retries); unique-constraint violations become
Conflict so the in-memory and SQL backends fail the same way.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from vault import models
from vault.encryption import FieldCipher
from vault.entities import ENTITIES, EntityKind, EntitySpec
from vault.errors import Conflict, InternalError, VaultError
from vault.gateway.base import PersistenceGateway, RecordCollection, clean_fields, new_id
from vault.schemas import RecordBase, StoredUser

logger = logging.getLogger(__name__)

ORM_MODELS: dict[EntityKind, type] = {
    EntityKind.PERSONAL: models.PersonalInfo,
    EntityKind.TRAVEL: models.TravelEntry,
    EntityKind.FLIGHTS: models.Flight,
    EntityKind.EMPLOYERS: models.Employer,
    EntityKind.EDUCATION: models.Education,
    EntityKind.ADDRESSES: models.Address,
}


@contextmanager
def _transaction(session_factory: sessionmaker, conflict_message: str = "Already exists") -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
        db.commit()
    except VaultError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.info("[gateway] integrity error: %s", exc.orig)
        raise Conflict(conflict_message) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("[gateway] storage failure")
        raise InternalError() from exc
    finally:
        db.close()


class SqlCollection(RecordCollection):
    def __init__(self, spec: EntitySpec, session_factory: sessionmaker):
        super().__init__(spec)
        self.model = ORM_MODELS[spec.kind]
        self._session_factory = session_factory

    # Column <-> record field translation. Overridden where they differ.
    def _to_columns(self, fields: dict) -> dict:
        return fields

    def _to_record(self, row) -> RecordBase:
        data = {name: getattr(row, name) for name in self.spec.record.PUBLIC_FIELDS}
        return self.spec.record(id=row.id, user_id=row.user_id, **data)

    def _owned(self, db: Session, record_id: str, user_id: str):
        return (
            db.query(self.model)
            .filter(self.model.id == record_id, self.model.user_id == user_id)
            .first()
        )

    def list(self, user_id: str) -> list[RecordBase]:
        with _transaction(self._session_factory) as db:
            query = db.query(self.model).filter(self.model.user_id == user_id)
            if self.spec.order_by:
                query = query.order_by(
                    getattr(self.model, self.spec.order_by).desc().nulls_last(),
                    self.model.created_at.asc(),
                )
            return [self._to_record(row) for row in query.all()]

    def create(self, user_id: str, fields: dict) -> RecordBase:
        conflict = f"{self.spec.noun} already exists"
        with _transaction(self._session_factory, conflict) as db:
            if db.get(models.User, user_id) is None:
                raise self.owner_missing()
            if self.spec.singleton and db.query(self.model).filter(self.model.user_id == user_id).first():
                raise Conflict(conflict)
            row = self.model(id=new_id(), user_id=user_id, **self._to_columns(clean_fields(self.spec, fields)))
            db.add(row)
            db.flush()
            return self._to_record(row)

    def update(self, record_id: str, user_id: str, changes: dict) -> RecordBase:
        with _transaction(self._session_factory) as db:
            row = self._owned(db, record_id, user_id)
            if row is None:
                raise self.not_found()
            for column, value in self._to_columns(clean_fields(self.spec, changes)).items():
                setattr(row, column, value)
            db.flush()
            return self._to_record(row)

    def delete(self, record_id: str, user_id: str) -> bool:
        with _transaction(self._session_factory) as db:
            row = self._owned(db, record_id, user_id)
            if row is None:
                return False
            db.delete(row)
            return True


class SqlPersonalInfoCollection(SqlCollection):
    """Passport numbers are stored Fernet-encrypted and decrypted on read."""

    def __init__(self, spec: EntitySpec, session_factory: sessionmaker, cipher: FieldCipher):
        super().__init__(spec, session_factory)
        self.cipher = cipher

    def _to_columns(self, fields: dict) -> dict:
        columns = dict(fields)
        if "passport_number" in columns:
            columns["passport_number_enc"] = self.cipher.encrypt(columns.pop("passport_number"))
        return columns

    def _to_record(self, row) -> RecordBase:
        return self.spec.record(
            id=row.id,
            user_id=row.user_id,
            full_name=row.full_name,
            passport_number=self.cipher.decrypt(row.passport_number_enc),
            dob=row.dob,
        )


class SqlGateway(PersistenceGateway):
    def __init__(self, session_factory: sessionmaker, cipher: FieldCipher):
        self._session_factory = session_factory
        self._collections: dict[EntityKind, SqlCollection] = {}
        for kind, spec in ENTITIES.items():
            if kind is EntityKind.PERSONAL:
                self._collections[kind] = SqlPersonalInfoCollection(spec, session_factory, cipher)
            else:
                self._collections[kind] = SqlCollection(spec, session_factory)

    def create_all(self) -> None:
        """Create missing tables. Tests and local SQLite use this instead of Alembic."""
        models.Base.metadata.create_all(bind=self._session_factory.kw["bind"])

    def collection(self, kind: EntityKind) -> SqlCollection:
        return self._collections[EntityKind(kind)]

    @staticmethod
    def _to_user(row: Optional[models.User]) -> Optional[StoredUser]:
        if row is None:
            return None
        return StoredUser(
            id=row.id,
            username=row.username,
            email=row.email,
            password_hash=row.password_hash,
            created_at=row.created_at,
        )

    def get_user(self, user_id: str) -> Optional[StoredUser]:
        with _transaction(self._session_factory) as db:
            return self._to_user(db.get(models.User, user_id))

    def get_user_by_email(self, email: str) -> Optional[StoredUser]:
        with _transaction(self._session_factory) as db:
            return self._to_user(db.query(models.User).filter(models.User.email == email).first())

    def get_user_by_username(self, username: str) -> Optional[StoredUser]:
        with _transaction(self._session_factory) as db:
            return self._to_user(db.query(models.User).filter(models.User.username == username).first())

    def create_user(self, username: str, email: str, password_hash: str) -> StoredUser:
        with _transaction(self._session_factory, "Username or email already registered") as db:
            user = models.User(id=new_id(), username=username, email=email, password_hash=password_hash)
            db.add(user)
            db.flush()
            db.refresh(user)
            return self._to_user(user)

    def delete_user(self, user_id: str) -> bool:
        with _transaction(self._session_factory) as db:
            user = db.get(models.User, user_id)
            if user is None:
                return False
            # ORM cascade removes every owned record
            db.delete(user)
            return True
