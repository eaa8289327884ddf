from sqlalchemy import func, select

from app import app as flask_app
from auth import verify_password
from models import Category, MenuItem, User, ROLE_ADMIN
from seed import DEMO_CATEGORIES, DEMO_MENU, DEMO_USERS, seed_database


def test_seed_is_idempotent(s):
    first = seed_database(s)
    assert first == len(DEMO_USERS) + len(DEMO_CATEGORIES) + len(DEMO_MENU)
    assert seed_database(s) == 0

    admin = s.scalar(select(User).where(User.username == "admin"))
    assert admin.role == ROLE_ADMIN
    assert verify_password("admin123", admin.password_hash)


def test_seed_db_command(s):
    runner = flask_app.test_cli_runner()

    result = runner.invoke(args=["seed-db"])

    assert result.exit_code == 0
    assert "Seeding completed" in result.output
    assert s.scalar(select(func.count()).select_from(MenuItem)) == len(DEMO_MENU)


def test_reset_db_command(s):
    seed_database(s)
    s.close()
    runner = flask_app.test_cli_runner()

    result = runner.invoke(args=["reset-db", "--yes"])

    assert result.exit_code == 0
    assert s.scalar(select(func.count()).select_from(Category)) == 0
