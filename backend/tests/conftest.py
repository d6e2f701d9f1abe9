"""Root conftest: shared test configuration."""

import os

# Ensure tests never reach a real database or Render account
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.pop("RENDER_API_KEY", None)
os.environ.pop("RENDER_OWNER_ID", None)
os.environ.pop("CONTRACT_TIMEOUT_SECONDS", None)
