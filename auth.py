from functools import wraps
from flask import session, g
from sqlalchemy import select
from werkzeug.security import generate_password_hash, check_password_hash

from errors import Unauthorized, Forbidden, Conflict, ValidationError
from models import User, ROLES, ROLE_ADMIN, ROLE_CASHIER

def hash_password(pw: str) -> str:
    return generate_password_hash(pw)

def verify_password(pw: str, pw_hash: str) -> bool:
    return check_password_hash(pw_hash, pw)

def authenticate(s, username: str, password: str) -> User:
    u = s.scalar(select(User).where(User.username == username))
    if not u or not u.is_active or not verify_password(password, u.password_hash):
        raise Unauthorized("Invalid username or password.")
    return u

def start_session(u: User):
    session.clear()
    session.permanent = True
    session["user_id"] = u.id
    session["username"] = u.username
    session["role"] = u.role

def create_user(s, data: dict) -> User:
    username = str(data.get("username") or "").strip().lower()
    password = str(data.get("password") or "")
    role = data.get("role", ROLE_CASHIER)

    errors = {}
    if not username:
        errors["username"] = "Username is required."
    if len(password) < 6:
        errors["password"] = "Password must be at least 6 characters."
    if role not in ROLES:
        errors["role"] = f"must be one of {', '.join(ROLES)}"
    if errors:
        raise ValidationError(errors=errors)

    if s.scalar(select(User).where(User.username == username)):
        raise Conflict("Username already exists.")

    u = User(
        username=username,
        password_hash=hash_password(password),
        email=(data.get("email") or None),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        role=role,
    )
    s.add(u)
    s.commit()
    return u

def current_user_id() -> int:
    return session["user_id"]

def is_admin() -> bool:
    return session.get("role") == ROLE_ADMIN

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not session.get("user_id"):
            raise Unauthorized()
        g.user_id = session["user_id"]
        return fn(*args, **kwargs)
    return wrapper

def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not is_admin():
            raise Forbidden()
        return fn(*args, **kwargs)
    return wrapper
