"""
Pytest configuration for caller_service. The end-to-end tests run the identity provider
in-process, so its audit log goes to in-memory SQLite.
"""
import os

os.environ["IDP_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["IDP_SECRET_HASH_ROUNDS"] = "4"
