"""Root conftest — environment shared by every test module."""

import os

# Tests never touch a real database; mallory's refunds always fail at the vault
os.environ.setdefault("CROWDSALE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CROWDSALE_VAULT_BLOCKED_RECIPIENTS", '["mallory"]')
os.environ.setdefault("CROWDSALE_LOG_FORMAT", "text")
