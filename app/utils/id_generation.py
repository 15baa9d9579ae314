import random
import string
import time
from typing import Protocol

KEY_ALPHABET = string.ascii_uppercase + string.digits


class IdGenerator(Protocol):
    def serial_number(self) -> str: ...

    def tarot_key(self, length: int) -> str: ...

    def recipe_id(self) -> int: ...


class RandomIdGenerator:
    """Unseeded generator; collisions are possible and accepted."""

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def serial_number(self) -> str:
        return f"WK-{self.rng.randint(1000, 9999)}"

    def tarot_key(self, length: int = 6) -> str:
        return "".join(self.rng.choice(KEY_ALPHABET) for _ in range(length))

    def recipe_id(self) -> int:
        # millisecond timestamp doubles as the sort key
        return int(time.time() * 1000)
