from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, require_admin
from app.schemas.user import UserCreate, UserLogin, UserOut
from app.models.user import User
from app.models.enums import UserRole
from app.core.security import hash_password, verify_password
from app.core.jwt import create_access_token
from app.core.logging_config import get_logger

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger()


def _register(data: UserCreate, role: UserRole, db: Session) -> User:
    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(
        name=data.name,
        email=email,
        phone=data.phone,
        password_hash=hash_password(data.password),
        role=role.value,
    )

    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# =====================================================================
#                           USER REGISTER
# =====================================================================
@router.post("/register", response_model=UserOut)
def user_register(data: UserCreate, db: Session = Depends(get_db)):
    return _register(data, UserRole.USER, db)


# =====================================================================
#                 ADMIN REGISTER (existing admins only)
# =====================================================================
@router.post("/admin/register", response_model=UserOut)
def admin_register(
    data: UserCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _register(data, UserRole.ADMIN, db)
    logger.bind(log_type="admin").info(f"Admin created | By={admin.email} | New={user.email}")
    return user


# =====================================================================
#                               LOGIN
# =====================================================================
@router.post("/login")
def login(data: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email.lower()).first()

    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if user.is_blocked:
        raise HTTPException(status_code=403, detail="Account is blocked")

    token = create_access_token({"sub": user.email, "role": user.role})

    return {
        "access_token": token,
        "role": user.role,
        "token_type": "bearer"
    }
