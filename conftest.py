"""
Root test configuration.

Settings are read once at import time, so the environment is prepared
here before any test module imports jobportal.
"""

import os


os.environ.setdefault("JWT_SECRET_KEY", "test-signing-secret-for-pytest-0123456789")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
