"""Random short-key generation.

A short key is ``<service base>/<token>`` where the token is a uniformly drawn
integer in ``[0, 2**32)`` written in base 36. The generator does not look at
the store; the service retries on collision.
"""

import random
from collections.abc import Callable

__all__ = ["BASE36_ALPHABET", "MAX_TOKEN", "KeyGenerator", "generate_short_key"]

BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
MAX_TOKEN = 2**32

KeyGenerator = Callable[[str], str]


def _base36_encode(number: int) -> str:
    """Encode a non-negative integer in base 36.

    Example:
        >>> _base36_encode(1295)
        'zz'
    """
    if number < 0:
        raise ValueError("Number must be non-negative")

    if number == 0:
        return BASE36_ALPHABET[0]

    base = len(BASE36_ALPHABET)
    result = []

    while number > 0:
        number, remainder = divmod(number, base)
        result.append(BASE36_ALPHABET[remainder])

    return "".join(result[::-1])


def generate_short_key(service_base: str, rng: random.Random | None = None) -> str:
    if not service_base:
        raise ValueError("service_base must be non-empty")
    draw = (rng or random).randrange(MAX_TOKEN)
    return f"{service_base}/{_base36_encode(draw)}"
