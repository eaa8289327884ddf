import os
from datetime import timedelta

class Config:
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-secret")
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)
    SESSION_COOKIE_HTTPONLY = True

    # LOCAL mode uses SQLite
    LOCAL_DB = os.getenv("LOCAL_DB", "1") == "1"

    if os.getenv("DATABASE_URL"):
        SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    elif LOCAL_DB:
        SQLALCHEMY_DATABASE_URI = "sqlite:///local.db"
    else:
        DB_USER = os.getenv("DB_USER", "")
        DB_PASS = os.getenv("DB_PASS", "")
        DB_NAME = os.getenv("DB_NAME", "")
        CLOUD_SQL_CONNECTION_NAME = os.getenv("CLOUD_SQL_CONNECTION_NAME", "")
        SQLALCHEMY_DATABASE_URI = (
            f"postgresql+psycopg2://{DB_USER}:{DB_PASS}@/"
            f"{DB_NAME}?host=/cloudsql/{CLOUD_SQL_CONNECTION_NAME}"
        )

    # calendar day used for transaction numbers and the dashboard
    POS_TIMEZONE = os.getenv("POS_TIMEZONE", "UTC")

    # receipt header
    CAFE_NAME = os.getenv("CAFE_NAME", "CafePos")
    CAFE_ADDRESS = os.getenv("CAFE_ADDRESS", "Jl. Kopi No. 123, Jakarta")
    CAFE_PHONE = os.getenv("CAFE_PHONE", "021-12345678")
    CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "Rp")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # audit events in Firestore are off unless asked for
    FIRESTORE_ENABLED = os.getenv("FIRESTORE_ENABLED", "0") == "1"
