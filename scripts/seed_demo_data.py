"""
Seed the local database with demo users, a maintenance team, equipment,
a work center and a few maintenance requests.

Usage:
  python scripts/seed_demo_data.py

This script is idempotent: running it multiple times will upsert the same
records based on unique fields (email for users, name for teams, serial
number for equipment, code for work centers, subject for requests).
"""

import os
from datetime import date, datetime, timedelta, timezone

from gearguard.config import settings
from gearguard.db import SessionLocal, Base, engine
from gearguard.models.models import (
    Equipment,
    MaintenanceRequest,
    Note,
    Team,
    TeamMember,
    User,
    WorkCenter,
)
from gearguard.auth.security import get_password_hash


DEMO_PASSWORD = "Password123!"


def ensure_user(session, name: str, email: str, role: str) -> User:
    user = session.query(User).filter(User.email == email).first()
    if user:
        user.name = name
        user.role = role
        session.add(user)
        session.flush()
        return user
    user = User(
        name=name,
        email=email,
        password_hash=get_password_hash(DEMO_PASSWORD),
        role=role,
        is_active=True,
    )
    session.add(user)
    session.flush()
    return user


def ensure_team(session, name: str, members: list[User]) -> Team:
    team = session.query(Team).filter(Team.name == name).first()
    if not team:
        team = Team(name=name)
        session.add(team)
        session.flush()
    existing = {m.user_id for m in team.members}
    for user in members:
        if user.id not in existing:
            session.add(TeamMember(team_id=team.id, user_id=user.id))
    session.flush()
    return team


def ensure_equipment(session, serial_number: str, **fields) -> Equipment:
    equipment = session.query(Equipment).filter(Equipment.serial_number == serial_number).first()
    if equipment:
        for key, value in fields.items():
            setattr(equipment, key, value)
        session.add(equipment)
        session.flush()
        return equipment
    equipment = Equipment(serial_number=serial_number, **fields)
    session.add(equipment)
    session.flush()
    return equipment


def ensure_work_center(session, code: str, **fields) -> WorkCenter:
    wc = session.query(WorkCenter).filter(WorkCenter.code == code).first()
    if wc:
        return wc
    wc = WorkCenter(code=code, **fields)
    session.add(wc)
    session.flush()
    return wc


def ensure_request(session, subject: str, **fields) -> MaintenanceRequest:
    req = session.query(MaintenanceRequest).filter(MaintenanceRequest.subject == subject).first()
    if req:
        return req
    req = MaintenanceRequest(subject=subject, **fields)
    session.add(req)
    session.flush()
    return req


def main():
    if settings.database_url.startswith("sqlite:///./"):
        os.makedirs("var", exist_ok=True)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        admin = ensure_user(session, "Ada Admin", "admin@gearguard.local", "admin")
        manager = ensure_user(session, "Morgan Manager", "manager@gearguard.local", "manager")
        tech = ensure_user(session, "Terry Technician", "tech@gearguard.local", "technician")
        ensure_user(session, "Uma User", "user@gearguard.local", "user")

        team = ensure_team(session, "Mechanics", [manager, tech])

        cnc = ensure_equipment(
            session,
            "CNC-0001",
            name="CNC Mill",
            department="Production",
            assigned_employee_name="Terry Technician",
            purchase_date=date(2022, 3, 1),
            warranty_end_date=date(2025, 3, 1),
            location="Hall A",
            maintenance_team_id=team.id,
            status="active",
        )
        ensure_equipment(
            session,
            "LPT-0042",
            name="Office Laptop",
            department="Administration",
            location="Office 2",
            status="active",
        )
        line = ensure_work_center(
            session,
            "ASM-1",
            name="Assembly Line 1",
            tag="assembly",
            cost_per_hour=85.0,
            capacity_per_hour=40.0,
            time_efficiency_pct=95.0,
            oee_target_pct=80.0,
        )

        now = datetime.now(timezone.utc)
        leak = ensure_request(
            session,
            "Hydraulic leak on spindle",
            type="corrective",
            equipment_id=cnc.id,
            team_id=team.id,
            status="in_progress",
            assigned_to_user_id=tech.id,
            created_by_user_id=manager.id,
        )
        ensure_request(
            session,
            "Quarterly line inspection",
            type="preventive",
            work_center_id=line.id,
            team_id=team.id,
            scheduled_date=now + timedelta(days=7),
            created_by_user_id=admin.id,
        )
        if not leak.notes:
            session.add(Note(request_id=leak.id, message="Seal kit ordered."))

        session.commit()
        print("Seeded demo data. Password for all demo users:", DEMO_PASSWORD)
    finally:
        session.close()


if __name__ == "__main__":
    main()
