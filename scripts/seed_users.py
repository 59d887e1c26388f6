from decimal import Decimal

from leave_ledger.database import SessionLocal, init_db
from leave_ledger.models.leave_type import LeaveType
from leave_ledger.models.user import User, UserRole
from leave_ledger.services.directory import DirectoryService

init_db()
db = SessionLocal()

def create_user(email, full_name, role, salary):
    # Skip existing users to avoid unique constraint errors
    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        print(f"User {email} already exists. Skipping.")
        return existing_user

    user = User(
        email=email,
        full_name=full_name,
        role=role,
        monthly_salary=Decimal(salary),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"Created {role.value} -> {email}")
    return user

def create_leave_type(code, name, credit_type):
    if db.query(LeaveType).filter(LeaveType.code == code).first():
        print(f"Leave type {code} already exists. Skipping.")
        return
    db.add(LeaveType(code=code, name=name, credit_type=credit_type))
    db.commit()
    print(f"Created leave type {code}")

create_leave_type("SL", "Sick Leave", "SL")
create_leave_type("VL", "Vacation Leave", "VL")
create_leave_type("ML", "Maternity Leave", None)

create_user("employee@example.com", "Eve Employee", UserRole.EMPLOYEE, "22000.00")
create_user("hr@example.com", "Harper HR", UserRole.HR, "30000.00")
create_user("depthead@example.com", "Dana Head", UserRole.DEPT_HEAD, "40000.00")
admin = create_user("admin@example.com", "Alex Admin", UserRole.ADMIN, "50000.00")
create_user("admin2@example.com", "Blake Admin", UserRole.ADMIN, "50000.00")

if not admin.is_primary:
    DirectoryService(db).assign_primary_admin(admin.id)
    print(f"{admin.email} is now the primary admin")

db.close()
