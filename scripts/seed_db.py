"""
데모 계정 생성 스크립트
python scripts/seed_db.py
"""
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from vms.database import SessionLocal, init_db
from vms.models.user import User, UserRole, DepartmentType, Location
from vms.schemas.user import UserCreate
from vms.services.user_service import UserService

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    {"username": "admin", "full_name": "System Admin", "role": UserRole.ADMIN},
    {"username": "security", "full_name": "Security Reviewer", "role": UserRole.SECURITY},
    {"username": "gate", "full_name": "Gate Officer", "role": UserRole.GATE},
    {
        "username": "wing_user",
        "full_name": "Wing Submitter",
        "role": UserRole.DEPARTMENT_USER,
        "department": "Air Wing",
        "department_type": DepartmentType.WING,
    },
    {
        "username": "division_user",
        "full_name": "Division Submitter",
        "role": UserRole.DEPARTMENT_USER,
        "department": "Logistics",
        "department_type": DepartmentType.DIVISION,
    },
]


def main() -> None:
    init_db()
    db = SessionLocal()
    try:
        for profile in DEMO_USERS:
            if db.query(User).filter(User.username == profile["username"]).first():
                print(f"skip: {profile['username']} already exists")
                continue
            user = UserService.create_user(db, UserCreate(
                email=f"{profile['username']}@example.com",
                password=DEMO_PASSWORD,
                location=Location.WOLLO_SEFER,
                **profile,
            ))
            user.is_approved = True
            db.commit()
            print(f"created: {user.username} ({user.role.value}, {user.employee_id})")
    finally:
        db.close()

    print(f"OK: demo users seeded (password: {DEMO_PASSWORD})")


if __name__ == "__main__":
    main()
