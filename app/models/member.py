from sqlalchemy import Column, String, Boolean, Enum, JSON, ForeignKey
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class MemberRole(enum.Enum):
    ADMIN = "admin"
    MEMBER = "member"


class Member(BaseModel):
    __tablename__ = 'members'

    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(Enum(MemberRole), default=MemberRole.MEMBER, nullable=False)
    team_id = Column(String(36), ForeignKey('teams.id'), index=True)

    # Google Calendar access (Fernet-encrypted refresh token)
    google_refresh_token = Column(String(1024))

    # Weekly availability, string-keyed "0" (Sunday) .. "6" (Saturday)
    availability_settings = Column(JSON)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)
    is_note_taker = Column(Boolean, default=False, nullable=False)

    # Relationships
    team = relationship("Team", back_populates="members")
    organized_event_types = relationship("EventType", back_populates="organizer", lazy='dynamic')

    @property
    def has_calendar_access(self) -> bool:
        return bool(self.is_active and self.google_refresh_token)
