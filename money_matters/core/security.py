import hashlib
import bcrypt
from money_matters.core.config import settings

# bcrypt only looks at the first 72 bytes, so secrets are pre-hashed with SHA-256.
# The hex digest is used because bcrypt rejects NUL bytes.
def _prehash(secret: str) -> bytes:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest().encode("ascii")

def hash_secret(secret: str) -> str:
    hashed = bcrypt.hashpw(_prehash(secret), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode()

def verify_secret(secret: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_prehash(secret), hashed.encode())
    except ValueError:
        # malformed stored hash
        return False

def hash_password(password: str) -> str:
    return hash_secret(password)

def verify_password(password: str, hashed_password: str) -> bool:
    return verify_secret(password, hashed_password)
