import hashlib
from ..domain.interfaces import IHasher

class SHA256Hasher(IHasher):
    def hash_bytes(self, data: bytes) -> str:
        """
        SHA-256 of the upload. Two payloads with the same digest are
        treated as identical content.
        """
        return hashlib.sha256(data).hexdigest()
