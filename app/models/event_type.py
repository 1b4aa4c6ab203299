from sqlalchemy import Column, String, Integer, Boolean, Text, Enum, JSON, ForeignKey, Table
from sqlalchemy.orm import relationship, validates
import enum
from config.config import Config
from .base import Base, BaseModel


class ParticipationMode(enum.Enum):
    ALL_REQUIRED = "all_required"
    ANY_AVAILABLE = "any_available"


class TimeRestrictionType(enum.Enum):
    NONE = "none"
    PRESET = "preset"
    CUSTOM = "custom"


DEFAULT_CALENDAR_TITLE_TEMPLATE = '{メニュー名} - {予約者名}'


event_type_members = Table(
    'event_type_members',
    Base.metadata,
    Column('event_type_id', String(36), ForeignKey('event_types.id', ondelete='CASCADE'), primary_key=True),
    Column('member_id', String(36), ForeignKey('members.id', ondelete='CASCADE'), primary_key=True),
)


class EventType(BaseModel):
    __tablename__ = 'event_types'

    slug = Column(String(255), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    duration_minutes = Column(Integer, nullable=False)

    organizer_id = Column(String(36), ForeignKey('members.id'), nullable=False)
    team_id = Column(String(36), ForeignKey('teams.id'), index=True)

    participation_mode = Column(Enum(ParticipationMode), default=ParticipationMode.ALL_REQUIRED, nullable=False)
    include_note_takers = Column(Boolean, default=False, nullable=False)
    calendar_title_template = Column(String(255), default=DEFAULT_CALENDAR_TITLE_TEMPLATE)

    # Narrows the organizer's weekly window
    time_restriction_type = Column(Enum(TimeRestrictionType), default=TimeRestrictionType.NONE, nullable=False)
    time_restriction_preset_id = Column(String(36), ForeignKey('time_slot_presets.id'))
    time_restriction_custom = Column(JSON)  # {"days": [1, 2], "start_time": "10:00", "end_time": "12:00"}

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Relationships
    organizer = relationship("Member", back_populates="organized_event_types")
    team = relationship("Team", back_populates="event_types")
    members = relationship("Member", secondary=event_type_members, lazy='selectin')
    time_restriction_preset = relationship("TimeSlotPreset")
    bookings = relationship("Booking", back_populates="event_type", cascade="all, delete-orphan", lazy='dynamic')

    @validates('duration_minutes')
    def validate_duration(self, key, value):
        if value not in Config.ALLOWED_DURATIONS:
            raise ValueError(f"duration_minutes must be one of {Config.ALLOWED_DURATIONS}")
        return value
