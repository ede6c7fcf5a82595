import datetime
import enum
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ItineraryItemKind(str, enum.Enum):
    MOVE = "MOVE"
    STAY = "STAY"
    FOOD = "FOOD"
    SIGHT = "SIGHT"
    ACTIVITY = "ACTIVITY"
    REST = "REST"


class TripRole(str, enum.Enum):
    OWNER = "OWNER"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"


class TripVisibility(str, enum.Enum):
    PRIVATE = "PRIVATE"
    LINK = "LINK"
    PUBLIC = "PUBLIC"


class ExpenseCategory(str, enum.Enum):
    TRANSPORT = "TRANSPORT"
    STAY = "STAY"
    FOOD = "FOOD"
    ENTERTAINMENT = "ENTERTAINMENT"
    SHOPPING = "SHOPPING"
    MISC = "MISC"
    OTHER = "OTHER"


class FriendStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class NotificationType(str, enum.Enum):
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPTED = "friend_accepted"
    TRIP_INVITE = "trip_invite"


class Base(AsyncAttrs, DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=new_id)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    name = Column(String, nullable=True)
    user_name = Column(String, unique=True, nullable=True, index=True)
    home_city = Column(String, nullable=True)
    home_currency = Column(String, nullable=False, default="INR")
    image = Column(String, nullable=True)
    interests = Column(JSON, nullable=True)  # list of strings
    role = Column(String, nullable=False, default="USER")
    email_verified = Column(DateTime(timezone=True), nullable=True)


class Trip(Base):
    __tablename__ = "trips"
    id = Column(String, primary_key=True, default=new_id)
    owner_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    currency = Column(String, nullable=False, default="INR")
    budget_cap = Column(Float, nullable=True)
    visibility = Column(String, nullable=False, default=TripVisibility.PRIVATE.value)
    public_id = Column(String, nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class TripMember(Base):
    __tablename__ = "trip_members"
    id = Column(String, primary_key=True, default=new_id)
    trip_id = Column(String, ForeignKey("trips.id"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String, nullable=False, default=TripRole.VIEWER.value)
    status = Column(String, nullable=False, default="ACCEPTED")

    __table_args__ = (UniqueConstraint("trip_id", "user_id", name="_trip_member_uc"),)


class CityStop(Base):
    __tablename__ = "city_stops"
    id = Column(String, primary_key=True, default=new_id)
    trip_id = Column(String, ForeignKey("trips.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    arrival = Column(String, nullable=False)
    departure = Column(String, nullable=False)
    order = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)


class Poi(Base):
    __tablename__ = "pois"
    id = Column(String, primary_key=True, default=new_id)
    trip_id = Column(String, ForeignKey("trips.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    city_stop_id = Column(String, ForeignKey("city_stops.id"), nullable=True)
    tags = Column(JSON, nullable=True)  # list of strings
    photo_url = Column(String, nullable=True)
    website_url = Column(String, nullable=True)
    rating = Column(Float, nullable=True)
    price_level = Column(Integer, nullable=True)
    external_id = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    cost = Column(Float, nullable=True)
    duration = Column(String, nullable=True)


class ItineraryItem(Base):
    __tablename__ = "itinerary_items"
    id = Column(String, primary_key=True, default=new_id)
    trip_id = Column(String, ForeignKey("trips.id"), nullable=False, index=True)
    day = Column(String, nullable=False)  # ISO date, e.g. "2025-09-10"
    title = Column(String, nullable=False)
    kind = Column(String, nullable=False)
    start_time = Column(String, nullable=True)
    end_time = Column(String, nullable=True)
    cost = Column(Float, nullable=True)  # null means "no expense recorded"
    notes = Column(Text, nullable=True)
    poi_id = Column(String, ForeignKey("pois.id"), nullable=True)


class Expense(Base):
    __tablename__ = "expenses"
    id = Column(String, primary_key=True, default=new_id)
    trip_id = Column(String, ForeignKey("trips.id"), nullable=False, index=True)
    payer_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False)
    category = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Friend(Base):
    __tablename__ = "friends"
    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    friend_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default=FriendStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "friend_id", name="_friend_pair_uc"),)


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    actor_id = Column(String, ForeignKey("users.id"), nullable=True)
    type = Column(String, nullable=False)
    trip_id = Column(String, ForeignKey("trips.id"), nullable=True)
    message = Column(String, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
