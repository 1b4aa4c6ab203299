from sqlalchemy import Column, String, JSON
from .base import BaseModel


MAINTENANCE_MODE_KEY = 'maintenance_mode'


class SystemSetting(BaseModel):
    __tablename__ = 'system_settings'

    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(JSON, nullable=False)
