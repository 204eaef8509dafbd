from passlib.context import CryptContext

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


def _truncate(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """
    Salted bcrypt hashing with a configurable cost factor.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self.context = CryptContext(schemes=['bcrypt'], deprecated='auto', bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self.context.hash(_truncate(password))

    def verify(self, password: str, hashed_password: str | None) -> bool:
        # Google-only accounts have no hash
        if not hashed_password:
            return False
        try:
            return self.context.verify(_truncate(password), hashed_password)
        except (ValueError, TypeError):
            # Unrecognised or corrupted hash
            return False

    def dummy_verify(self) -> bool:
        """Runs a verification against a throwaway hash and returns False."""
        return self.context.dummy_verify()
