import logging
from decimal import Decimal

import click
from sqlalchemy import select

from auth import hash_password
from models import User, Category, MenuItem, ROLE_ADMIN, ROLE_CASHIER
from sql_db import SessionLocal, reset_db

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"username": "admin", "password": "admin123", "email": "admin@cafepos.com",
     "first_name": "Admin", "last_name": "User", "role": ROLE_ADMIN},
    {"username": "cashier", "password": "cashier123", "email": "cashier@cafepos.com",
     "first_name": "Cashier", "last_name": "User", "role": ROLE_CASHIER},
]

DEMO_CATEGORIES = [
    {"name": "Coffee", "description": "Espresso based drinks", "icon": "Coffee"},
    {"name": "Tea", "description": "Tea drinks", "icon": "TeaCup"},
    {"name": "Food", "description": "Snacks and meals", "icon": "UtensilsCrossed"},
]

# (category, name, description, price)
DEMO_MENU = [
    ("Coffee", "Espresso", "Classic espresso shot", "25000"),
    ("Coffee", "Cappuccino", "Espresso with milk foam", "30000"),
    ("Tea", "Teh Tarik", "Pulled milk tea", "20000"),
    ("Food", "Roti Bakar", "Toast with jam", "15000"),
]


def seed_database(s) -> int:
    """Insert demo rows that are missing. Returns how many were created."""
    created = 0

    for u in DEMO_USERS:
        if s.scalar(select(User).where(User.username == u["username"])):
            continue
        data = dict(u)
        s.add(User(password_hash=hash_password(data.pop("password")), **data))
        created += 1

    cats = {}
    for c in DEMO_CATEGORIES:
        cat = s.scalar(select(Category).where(Category.name == c["name"]))
        if not cat:
            cat = Category(**c)
            s.add(cat)
            created += 1
        cats[c["name"]] = cat
    s.flush()

    for cat_name, name, description, price in DEMO_MENU:
        if s.scalar(select(MenuItem).where(MenuItem.name == name)):
            continue
        s.add(MenuItem(
            category_id=cats[cat_name].id,
            name=name,
            description=description,
            price=Decimal(price),
        ))
        created += 1

    s.commit()
    logger.info("seeded %d rows", created)
    return created


def register_commands(app):
    @app.cli.command("seed-db")
    def seed_db_command():
        """Create demo users, categories and menu items."""
        with SessionLocal() as s:
            n = seed_database(s)
        click.echo(f"Seeding completed ({n} new rows).")

    @app.cli.command("reset-db")
    @click.confirmation_option(prompt="Drop every table and start over?")
    def reset_db_command():
        """Drop and recreate all tables."""
        reset_db()
        click.echo("Database reset.")
