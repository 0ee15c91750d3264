from sqlalchemy import Column, String, DateTime, Date, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import datetime as dt
import uuid
from vault.database import Base


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    # bcrypt digest, never the plaintext
    password_hash = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    personal_info = relationship("PersonalInfo", back_populates="user", cascade="all, delete-orphan")
    travel_history = relationship("TravelEntry", back_populates="user", cascade="all, delete-orphan")
    flights = relationship("Flight", back_populates="user", cascade="all, delete-orphan")
    employers = relationship("Employer", back_populates="user", cascade="all, delete-orphan")
    education = relationship("Education", back_populates="user", cascade="all, delete-orphan")
    addresses = relationship("Address", back_populates="user", cascade="all, delete-orphan")


class PersonalInfo(Base):
    __tablename__ = "personal_info"

    id = Column(String(36), primary_key=True, default=_uuid)
    # Unique: one personal info record per user
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    full_name = Column(Text, nullable=True)
    # Encrypted at the application layer using Fernet before writing to DB
    passport_number_enc = Column(Text, nullable=True)
    dob = Column(Date, nullable=True)

    user = relationship("User", back_populates="personal_info")


class TravelEntry(Base):
    __tablename__ = "travel_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    date = Column(Date, nullable=False)
    destination = Column(Text, nullable=False)  # "City, Country"
    notes = Column(Text, nullable=True)

    # Breaks ties on the list sort key so equal dates keep insertion order
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    user = relationship("User", back_populates="travel_history")


class Flight(Base):
    __tablename__ = "flights"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    flight_number = Column(String(20), nullable=False)
    airline = Column(Text, nullable=False)
    departure_airport = Column(Text, nullable=False)
    arrival_airport = Column(Text, nullable=False)
    # Naive UTC
    departure_time = Column(DateTime, nullable=True)
    arrival_time = Column(DateTime, nullable=True)
    gate = Column(String(20), nullable=True)
    status = Column(String(50), nullable=True)

    created_at = Column(DateTime, nullable=False, default=_utcnow)

    user = relationship("User", back_populates="flights")


class Employer(Base):
    __tablename__ = "employers"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    company_name = Column(Text, nullable=False)
    role = Column(Text, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)  # NULL = current job
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=_utcnow)

    user = relationship("User", back_populates="employers")


class Education(Base):
    __tablename__ = "education"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    institution = Column(Text, nullable=False)
    degree = Column(Text, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    created_at = Column(DateTime, nullable=False, default=_utcnow)

    user = relationship("User", back_populates="education")


class Address(Base):
    __tablename__ = "addresses"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    address = Column(Text, nullable=False)
    city = Column(Text, nullable=False)
    state = Column(Text, nullable=True)
    country = Column(Text, nullable=False)
    from_date = Column(Date, nullable=False)
    to_date = Column(Date, nullable=True)  # NULL = current address

    created_at = Column(DateTime, nullable=False, default=_utcnow)

    user = relationship("User", back_populates="addresses")
