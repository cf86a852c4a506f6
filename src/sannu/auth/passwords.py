"""
Password hashing.

Uses passlib's CryptContext so the scheme can be rotated later (old hashes
keep verifying and are flagged by `needs_update`).
"""
import string

from passlib.context import CryptContext

from sannu.utils.slug_utils import random_string

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def generate_temporary_password(length: int = 12) -> str:
    return random_string(length, string.ascii_letters + string.digits)
