# -*- coding: utf-8 -*-
"""
Application settings read from the environment (and an optional .env file).
"""

import os
from dotenv import load_dotenv

load_dotenv()

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

# Usa variável de ambiente ou default para SQLite
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./database/academy.db")

# Render/Heroku still hand out the old scheme
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 8))

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5700")
BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000").rstrip("/")

# Mercado Pago
MP_ACCESS_TOKEN = os.getenv("MP_ACCESS_TOKEN")
PIX_EXPIRATION_MINUTES = int(os.getenv("PIX_EXPIRATION_MINUTES", 30))
# Shared secret the gateway signs normalized webhook events with
GATEWAY_WEBHOOK_SECRET = os.getenv("GATEWAY_WEBHOOK_SECRET")

DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE")  # None -> stderr

FIRST_ADMIN_USERNAME = os.getenv("FIRST_ADMIN_USERNAME", "admin")
FIRST_ADMIN_EMAIL = os.getenv("FIRST_ADMIN_EMAIL", "admin@academy.local")
FIRST_ADMIN_PASSWORD = os.getenv("FIRST_ADMIN_PASSWORD", "admin")


def is_production():
    return ENVIRONMENT == "production"
