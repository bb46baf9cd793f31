from datetime import datetime, date, timezone
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Integer,
    Float,
    Text,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def int_pk() -> Mapped[int]:
    return mapped_column(Integer, primary_key=True, autoincrement=True)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = int_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), default="user", nullable=False, index=True)  # user|technician|manager|admin
    avatar_url: Mapped[Optional[str]] = mapped_column(String(512))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    memberships = relationship("TeamMember", back_populates="user", cascade="all, delete-orphan")


class PasswordReset(Base):
    __tablename__ = "password_resets"

    id: Mapped[int] = int_pk()
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[int] = int_pk()
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")


class TeamMember(Base):
    __tablename__ = "team_members"

    id: Mapped[int] = int_pk()
    team_id: Mapped[int] = mapped_column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    team = relationship("Team", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_member"),
    )


class Equipment(Base):
    """Physical equipment units that maintenance requests are raised against"""
    __tablename__ = "equipment"

    id: Mapped[int] = int_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    serial_number: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    department: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    assigned_employee_name: Mapped[Optional[str]] = mapped_column(String(255))
    purchase_date: Mapped[Optional[date]] = mapped_column(Date)
    warranty_end_date: Mapped[Optional[date]] = mapped_column(Date)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    maintenance_team_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("teams.id"), index=True)
    status: Mapped[str] = mapped_column(String(50), default="active", nullable=False, index=True)  # active|inactive|under_maintenance|scrapped
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    maintenance_team = relationship("Team")


class WorkCenter(Base):
    """Production resources that can be maintained as a whole instead of a single unit"""
    __tablename__ = "work_centers"

    id: Mapped[int] = int_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(String(100), unique=True)
    tag: Mapped[Optional[str]] = mapped_column(String(100))
    cost_per_hour: Mapped[Optional[float]] = mapped_column(Float)
    capacity_per_hour: Mapped[Optional[float]] = mapped_column(Float)
    time_efficiency_pct: Mapped[Optional[float]] = mapped_column(Float)
    oee_target_pct: Mapped[Optional[float]] = mapped_column(Float)
    status: Mapped[str] = mapped_column(String(50), default="active", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)


class WorkCenterAlternative(Base):
    __tablename__ = "work_center_alternatives"

    id: Mapped[int] = int_pk()
    work_center_id: Mapped[int] = mapped_column(Integer, ForeignKey("work_centers.id", ondelete="CASCADE"), nullable=False, index=True)
    alternative_work_center_id: Mapped[int] = mapped_column(Integer, ForeignKey("work_centers.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    alternative = relationship("WorkCenter", foreign_keys=[alternative_work_center_id])

    __table_args__ = (
        UniqueConstraint("work_center_id", "alternative_work_center_id", name="uq_work_center_alternative"),
        CheckConstraint("work_center_id <> alternative_work_center_id", name="ck_work_center_alternative_not_self"),
    )


class MaintenanceRequest(Base):
    __tablename__ = "maintenance_requests"

    id: Mapped[int] = int_pk()
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # corrective|preventive
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    equipment_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("equipment.id"), index=True)
    work_center_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("work_centers.id"), index=True)
    team_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), index=True)
    scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    status: Mapped[str] = mapped_column(String(20), default="new", nullable=False, index=True)  # new|in_progress|repaired|scrap
    assigned_to_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    duration_hours: Mapped[Optional[float]] = mapped_column(Float)
    created_by_user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    equipment = relationship("Equipment")
    work_center = relationship("WorkCenter")
    team = relationship("Team")
    assigned_to = relationship("User", foreign_keys=[assigned_to_user_id])
    created_by = relationship("User", foreign_keys=[created_by_user_id])
    notes = relationship("Note", back_populates="request", cascade="all, delete-orphan", order_by="Note.created_at")

    __table_args__ = (
        CheckConstraint(
            "(equipment_id IS NULL) <> (work_center_id IS NULL)",
            name="ck_request_single_target",
        ),
        Index("idx_request_status_assignee", "status", "assigned_to_user_id"),
    )


class Note(Base):
    __tablename__ = "notes"

    id: Mapped[int] = int_pk()
    request_id: Mapped[int] = mapped_column(Integer, ForeignKey("maintenance_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)

    request = relationship("MaintenanceRequest", back_populates="notes")
