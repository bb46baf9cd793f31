"""
Set a user's password from the command line.

Usage:
  python scripts/reset_password.py user@example.com NewPassword123
"""

import sys

from gearguard.db import SessionLocal
from gearguard.models.models import User
from gearguard.auth.security import MIN_PASSWORD_LENGTH, get_password_hash


def main(argv: list[str]) -> int:
    if len(argv) != 3:
        print(__doc__)
        return 2
    email, password = argv[1].strip().lower(), argv[2]
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return 1
    session = SessionLocal()
    try:
        user = session.query(User).filter(User.email == email).first()
        if not user:
            print(f"No user with email {email}")
            return 1
        user.password_hash = get_password_hash(password)
        session.commit()
        print(f"Password updated for {email}")
        return 0
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main(sys.argv))
