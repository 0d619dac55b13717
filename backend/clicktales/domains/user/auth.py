"""Password hashing (argon2id)."""

from typing import Optional
import asyncio

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError

from clicktales.common.config import Settings


class PasswordService:
    """
    Salted, deliberately slow hashing. Work runs in a thread so a login does
    not stall the event loop for the duration of the hash.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )
        self._dummy_hash: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordService":
        return cls(
            time_cost=settings.password_hash_time_cost,
            memory_cost=settings.password_hash_memory_cost,
            parallelism=settings.password_hash_parallelism,
        )

    def hash_sync(self, password: str) -> str:
        return self._hasher.hash(password)

    def verify_sync(self, password: str, hashed: Optional[str]) -> bool:
        if hashed is None:
            # Unknown account: spend the same work so timing doesn't reveal it
            if self._dummy_hash is None:
                self._dummy_hash = self._hasher.hash("clicktales-dummy-password")
            hashed = self._dummy_hash
            try:
                self._hasher.verify(hashed, password)
            except (VerificationError, InvalidHashError):
                pass
            return False
        try:
            return self._hasher.verify(hashed, password)
        except (VerificationError, InvalidHashError):
            return False

    async def hash(self, password: str) -> str:
        return await asyncio.to_thread(self.hash_sync, password)

    async def verify(self, password: str, hashed: Optional[str]) -> bool:
        return await asyncio.to_thread(self.verify_sync, password, hashed)
