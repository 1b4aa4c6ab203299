from sqlalchemy import Column, String, Enum
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class TeamStatus(enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"


class Team(BaseModel):
    __tablename__ = 'teams'

    name = Column(String(255), nullable=False)
    invite_code = Column(String(32), unique=True, index=True)
    status = Column(Enum(TeamStatus), default=TeamStatus.ACTIVE, nullable=False)

    # Relationships
    members = relationship("Member", back_populates="team", lazy='dynamic')
    event_types = relationship("EventType", back_populates="team", lazy='dynamic')
    time_slot_presets = relationship("TimeSlotPreset", back_populates="team", lazy='dynamic')
