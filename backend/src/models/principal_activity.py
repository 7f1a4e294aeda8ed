"""PrincipalActivity SQLAlchemy model - last time a principal made a request"""

from sqlalchemy import Column, Text

from .base import Base, UTCDateTime, utcnow


class PrincipalActivity(Base):
    __tablename__ = "principal_activity"

    identity = Column(Text, primary_key=True)
    role = Column(Text, nullable=False)
    last_active_at = Column(UTCDateTime, nullable=False, default=utcnow)
