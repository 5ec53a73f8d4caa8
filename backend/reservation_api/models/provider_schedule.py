"""
Per-provider lock row.

Row locks on existing reservations cannot stop two transactions from both
inserting into a window that is still empty. Every conflict-checked write
first locks its provider's row here, so writers on one timeline queue up while
other providers are unaffected.
"""

from sqlalchemy import Column, Integer, func

from reservation_api.db.base import Base, UTCDateTime


class ProviderSchedule(Base):
    __tablename__ = "provider_schedules"

    provider_id = Column(Integer, primary_key=True, autoincrement=False)
    created_at = Column(UTCDateTime(), nullable=False, server_default=func.now())

    def __repr__(self) -> str:
        return f"<ProviderSchedule(provider_id={self.provider_id})>"
