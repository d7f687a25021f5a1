"""Short human-readable code generation.

Codes are random draws from a fixed alphabet. Uniqueness is probabilistic:
callers draw candidates until the store reports one unused, and back that
check with a unique constraint so a concurrent insert of the same code still
fails cleanly.
"""

import logging
import secrets
from typing import Callable, Optional

from config import MAX_CODE_ATTEMPTS
from core.exceptions import InternalError

logger = logging.getLogger(__name__)

HEX_ALPHABET = "0123456789ABCDEF"
DIGITS = "0123456789"

INVITE_CODE_LENGTH = 6
REGISTRATION_CODE_LENGTH = 8


def generate(alphabet: str, length: int) -> str:
    """Draw ``length`` characters uniformly from ``alphabet``.

    Args:
        alphabet: Characters to draw from; must not be empty.
        length: Number of characters, at least 1.

    Returns:
        The random code.

    Raises:
        ValueError: If the alphabet is empty or length is not positive.
    """
    if not alphabet:
        raise ValueError("alphabet must not be empty")
    if length < 1:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_invite_code() -> str:
    """Class invite code, six hex characters formatted as ``XXX-XXX``."""
    raw = generate(HEX_ALPHABET, INVITE_CODE_LENGTH)
    half = INVITE_CODE_LENGTH // 2
    return f"{raw[:half]}-{raw[half:]}"


def generate_registration_code() -> str:
    """Student registration number, exactly eight digits."""
    return generate(DIGITS, REGISTRATION_CODE_LENGTH)


def generate_unique(
    factory: Callable[[], str],
    exists: Callable[[str], bool],
    max_attempts: Optional[int] = None,
) -> str:
    """Return the first candidate from ``factory`` that ``exists`` rejects.

    Args:
        factory: Produces a fresh candidate on every call.
        exists: Returns True when a candidate is already taken.
        max_attempts: Upper bound on candidates drawn. Defaults to
            ``MAX_CODE_ATTEMPTS``.

    Returns:
        An unused code.

    Raises:
        InternalError: If every attempt collided.
    """
    attempts = max_attempts or MAX_CODE_ATTEMPTS
    for attempt in range(1, attempts + 1):
        code = factory()
        if not exists(code):
            return code
        logger.debug("Code collision on attempt %d: %s", attempt, code)
    logger.error("No unique code found after %d attempts", attempts)
    raise InternalError("Não foi possível gerar um código único.")
