# cartorder/utils/settings.py
import os
from dotenv import load_dotenv
from sqlalchemy.engine import URL

load_dotenv()

DB_USER = os.getenv("DB_USER", "postgres")
DB_PASSWORD = os.getenv("DB_PASSWORD", "postgres")
DB_HOST = os.getenv("DB_HOST", "postgres")
DB_PORT = int(os.getenv("DB_PORT", "5432"))
DB_NAME = os.getenv("DB_NAME", "cartdb")

DATABASE_URL = os.getenv("DATABASE_URL") or URL.create(
    "postgresql+psycopg2",
    username=DB_USER,
    password=DB_PASSWORD,
    host=DB_HOST,
    port=DB_PORT,
    database=DB_NAME,
).render_as_string(hide_password=False)

REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/1")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/2")

# zamowienie wygasa po ORDER_TTL_SECONDS od utworzenia, jesli nadal pending
ORDER_TTL_SECONDS = int(os.getenv("ORDER_TTL_SECONDS", 60))
ORDER_EXPIRY_SWEEP_SECONDS = float(os.getenv("ORDER_EXPIRY_SWEEP_SECONDS", 60))
ORDER_EXPIRY_PER_ORDER_TASK = os.getenv("ORDER_EXPIRY_PER_ORDER_TASK", "false").lower() in ("1", "true", "yes")

LOCK_BACKEND = os.getenv("LOCK_BACKEND", "redis")
CART_LOCK_TTL_SECONDS = int(os.getenv("CART_LOCK_TTL_SECONDS", 10))
CART_LOCK_WAIT_SECONDS = float(os.getenv("CART_LOCK_WAIT_SECONDS", 5))

REDIS_RETRY_ATTEMPTS = int(os.getenv("REDIS_RETRY_ATTEMPTS", 3))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
