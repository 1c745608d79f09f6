from __future__ import annotations
from datetime import date, datetime, time
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, Date, Time, DateTime, ForeignKey
from portal.models.identity import Base, utcnow


class ServiceRequest(Base):
    __tablename__ = 'service_requests'
    # Status constants
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_SCHEDULED = 'scheduled'
    STATUS_COMPLETED = 'completed'
    STATUS_REJECTED = 'rejected'
    ALL_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED, STATUS_SCHEDULED, STATUS_COMPLETED, STATUS_REJECTED)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    machine_model: Mapped[str] = mapped_column(String(120), nullable=False)
    issue_description: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING, index=True)
    preferred_date: Mapped[date] = mapped_column(Date, nullable=False)
    preferred_time: Mapped[time] = mapped_column(Time, nullable=False)
    # stored in UTC; set on the first move to scheduled and never cleared afterwards
    scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

# Status flow: pending -> accepted -> scheduled -> completed (rejected from pending/accepted).
# Admins may override the flow unless ENFORCE_STATUS_TRANSITIONS is set.
