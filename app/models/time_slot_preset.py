from sqlalchemy import Column, String, JSON, ForeignKey
from sqlalchemy.orm import relationship
from .base import BaseModel


class TimeSlotPreset(BaseModel):
    __tablename__ = 'time_slot_presets'

    team_id = Column(String(36), ForeignKey('teams.id'), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    # Weekday indexes, 0 = Sunday
    days = Column(JSON, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    color = Column(String(20))

    # Relationships
    team = relationship("Team", back_populates="time_slot_presets")
