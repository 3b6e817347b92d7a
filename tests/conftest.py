"""Shared test configuration."""

import os

# Settings are read from the environment; the application module reads them on import
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("APP_DEBUG", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("OWNER_IDENTITY", "0xowner")
os.environ.setdefault("JWT_SECRET_KEY", "ledger-test-signing-key-zyxwvutsrq-mnbvcxz")
os.environ.setdefault("LOCK_BACKEND", "local")
os.environ.pop("REDIS_URL", None)
