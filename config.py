import os

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "storefront")
DB_CONNECT_RETRIES = int(os.getenv("DB_CONNECT_RETRIES", 3))
DB_RETRY_DELAY = float(os.getenv("DB_RETRY_DELAY", 5))

# JWT Config
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change")
ALGORITHM = "HS256"
TOKEN_EXPIRE_DAYS = int(os.getenv("TOKEN_EXPIRE_DAYS", 30))

PORT = int(os.getenv("PORT", 5000))
APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

SUPERADMIN_NAME = os.getenv("SUPERADMIN_NAME", "Super Admin")
SUPERADMIN_EMAIL = os.getenv("SUPERADMIN_EMAIL", "superadmin@ceycanagro.com")
SUPERADMIN_PASSWORD = os.getenv("SUPERADMIN_PASSWORD", "superadmin123")


def is_development() -> bool:
    return APP_ENV.lower() == "development"
