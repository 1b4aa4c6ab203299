from sqlalchemy import Column, String, Text, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class BookingStatus(enum.Enum):
    CONFIRMED = "confirmed"
    CANCELED = "canceled"


class Booking(BaseModel):
    __tablename__ = 'bookings'

    event_type_id = Column(String(36), ForeignKey('event_types.id', ondelete='CASCADE'), nullable=False, index=True)

    # Timing (naive UTC)
    start_at = Column(DateTime, nullable=False, index=True)
    end_at = Column(DateTime, nullable=False)

    # Requester
    requester_name = Column(String(255), nullable=False)
    requester_email = Column(String(255), nullable=False)
    company_name = Column(String(255))
    note = Column(Text, nullable=False)

    # Calendar
    google_event_id = Column(String(255))
    guest_event_id = Column(String(255))
    meet_link = Column(String(500))

    # Cancellation (hash cleared once used)
    cancel_token_hash = Column(String(255))
    status = Column(Enum(BookingStatus), default=BookingStatus.CONFIRMED, nullable=False, index=True)
    canceled_at = Column(DateTime)

    # Relationships
    event_type = relationship("EventType", back_populates="bookings")
