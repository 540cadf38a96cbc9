from __future__ import annotations

from typing import Protocol


class SecretHasherPort(Protocol):
    def generate_secret(self) -> str:
        ...

    def hash(self, secret: str) -> str:
        ...

    def verify(self, secret: str, secret_hash: str) -> bool:
        ...

    def lookup_key(self, secret: str) -> str:
        ...
