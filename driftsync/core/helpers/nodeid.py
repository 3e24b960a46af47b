import hashlib
import logging
import os
import random
import secrets
import socket
import time
from collections.abc import Callable

NODE_ID_LENGTH = 8
"""Fixed length of a node identifier."""

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_RANDOM_BYTES = 6

_logger = logging.getLogger("core.helpers.nodeid")


def generate_node_id(random_bytes: Callable[[int], bytes] = secrets.token_bytes) -> str:
    """
    Generate a random 8-character base-36 node identifier.

    Six bytes are drawn from the secure random source, encoded in base 36,
    truncated to 8 characters and left-padded with zeros. When the platform
    offers no secure source (`NotImplementedError` from the OS), a
    non-secure generator is used instead.
    """
    try:
        data = random_bytes(_RANDOM_BYTES)
    except NotImplementedError:
        _logger.warning("No secure random source available, using a non-secure node id")
        rng = random.Random()
        return "".join(rng.choice(_ALPHABET) for _ in range(NODE_ID_LENGTH))

    return _fixed_base36(int.from_bytes(data, "big"))


def generate_stable_node_id() -> str:
    """
    Derive a node identifier from the host name, process id and a
    high-resolution start time.

    Distinct processes get distinct ids; this is meant for server-side
    clocks which do not persist their identity.
    """
    seed = f"{socket.gethostname()}:{os.getpid()}:{time.perf_counter_ns()}"
    digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return _fixed_base36(int(digest[:12], 16))


def _fixed_base36(value: int) -> str:
    return _base36(value)[:NODE_ID_LENGTH].rjust(NODE_ID_LENGTH, "0")


def _base36(value: int) -> str:
    if value == 0:
        return "0"

    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))
