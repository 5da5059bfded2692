from passlib.context import CryptContext

# Identities only ever store the hash; login itself happens at the auth gateway.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)
