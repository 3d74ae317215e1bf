import secrets
import time


ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
SIZE = 12


def nanoid(size: int = SIZE) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(size))


def epoch_millis() -> int:
    return int(time.time() * 1000)


def stamped_id(prefix: str) -> str:
    # e.g. ex_1718000000000_a1B2c3, the shape plan payloads use for nested ids.
    return f"{prefix}_{epoch_millis()}_{nanoid(6)}"
