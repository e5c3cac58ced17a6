"""
Password hashing for accounts created here. Access tokens are issued by the
external identity service and only decoded in app.auth.dependencies.
"""
import secrets

import bcrypt


def hash_password(plain_password: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def generate_temporary_password() -> str:
    """Random URL-safe password handed back once when a student is created without one."""
    return secrets.token_urlsafe(9)
