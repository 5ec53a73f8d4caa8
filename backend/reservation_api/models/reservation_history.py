"""
Append-only audit trail. One row per mutating reservation operation, written
in the same transaction as the mutation.
"""

from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, Text, func

from reservation_api.db.base import Base, UTCDateTime, enum_column
from reservation_api.domain.enums import ActorRole, ChangeType


class ReservationHistory(Base):
    __tablename__ = "reservation_history"

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False)
    change_type = enum_column(ChangeType, "change_type", nullable=False)
    old_values = Column(JSON, nullable=False, default=dict)
    new_values = Column(JSON, nullable=False, default=dict)
    actor_role = enum_column(ActorRole, "actor_role", nullable=True)
    actor_id = Column(Integer, nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_reservation_history_reservation_created", "reservation_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ReservationHistory(id={self.id}, reservation={self.reservation_id}, type={self.change_type})>"
