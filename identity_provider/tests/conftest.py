"""
Pytest configuration for identity_provider. In-memory SQLite for the audit log and a
low bcrypt cost so registry construction stays fast.
"""
import os

# In-memory SQLite; database.py uses StaticPool so all connections share the same DB
os.environ["IDP_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["IDP_SECRET_HASH_ROUNDS"] = "4"
