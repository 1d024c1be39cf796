"""
Company (tenant) + its developments.

Developments are the inventory a lead's stated preferences are matched
against for the quality score's inventory-fit component.
"""
import uuid

from sqlalchemy import Column, Text, Boolean, DateTime, JSON, ForeignKey
from sqlalchemy.sql import func

from leadengine.database import Base


class Company(Base):
    __tablename__ = 'companies'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(Text, nullable=False)
    hubspot_access_token = Column(Text, nullable=True)  # Private-app token; None = CRM push disabled
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Development(Base):
    __tablename__ = 'developments'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(Text, ForeignKey('companies.id'), nullable=False, index=True)
    name = Column(Text, nullable=False)
    location = Column(Text, nullable=True)
    bedrooms = Column(JSON, default=list)  # e.g. [0, 1, 2], 0 = studio
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'location': self.location,
            'bedrooms': list(self.bedrooms or []),
            'is_active': bool(self.is_active),
        }
