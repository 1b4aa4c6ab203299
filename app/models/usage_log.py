from sqlalchemy import Column, String, Integer, ForeignKey
from .base import BaseModel


class UsageEndpoint:
    AVAILABILITY = 'availability'
    BOOKING_CREATE = 'bookings/create'
    BOOKING_CANCEL = 'bookings/cancel'


class ApiUsageLog(BaseModel):
    """Append-only usage counter rows"""
    __tablename__ = 'api_usage_logs'

    endpoint = Column(String(100), nullable=False, index=True)
    member_id = Column(String(36), ForeignKey('members.id'))
    request_count = Column(Integer, nullable=False, default=1)
