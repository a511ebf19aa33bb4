"""
Referral code generation for institute and admin accounts.

Codes are short, upper-case and drawn from an alphabet without look-alike
characters (no 0/O, 1/I). A generated code is 6 characters: the first candidate
starts with up to 3 letters of the owner's name, later candidates are fully
random. Every character of a generated code is in REFERRAL_CODE_ALPHABET.
"""

import re
import secrets
import string
from contextlib import aclosing
from typing import AsyncIterator, Iterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from campushub.auth import store
from campushub.core.config import settings
from campushub.core.exceptions import ConflictError, GenerationExhaustedError, ValidationError
from campushub.core.logging_config import get_logger

logger = get_logger(__name__)

REFERRAL_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
REFERRAL_CODE_MAX_LENGTH = 20
# Name letters usable in a prefix: ASCII letters that are also in the alphabet (no I, O)
_PREFIX_LETTERS = frozenset(string.ascii_uppercase) & frozenset(REFERRAL_CODE_ALPHABET)
_CUSTOM_CODE_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")


def random_referral_code(length: Optional[int] = None) -> str:
    """Fully random code of the configured length."""
    if length is None:
        length = settings.referral_code_length
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


def generate_referral_code(name: Optional[str] = None, length: Optional[int] = None) -> str:
    """
    Generate a referral code, prefixed from the owner's name when one is given.

    Rules:
    - First 3 usable letters of the first word (uppercase); pad with 'X' if shorter.
      Only ASCII letters from REFERRAL_CODE_ALPHABET count, so I and O are skipped.
    - Remaining characters random from REFERRAL_CODE_ALPHABET.
    - A first word with no usable letters gives a fully random code.

    Examples:
        Acme College -> ACM7QK
        Oxford       -> XFR4TZ
        Ed Lee       -> EDX9PC
        (no name)    -> K7RM2D
    """
    if length is None:
        length = settings.referral_code_length
    if not name or not str(name).strip():
        return random_referral_code(length)

    first_word = str(name).strip().split()[0]
    letters = "".join(ch for ch in first_word.upper() if ch in _PREFIX_LETTERS)
    if not letters:
        return random_referral_code(length)
    prefix = (letters[:3] + "XXX")[:3]
    prefix = prefix[:length]
    return prefix + random_referral_code(length - len(prefix))


def validate_custom_referral_code(code: Optional[str]) -> str:
    """Normalise a caller-supplied code and check its shape. Raises ValidationError."""
    normalized = store.normalize_referral_code(code)
    if normalized is None or len(normalized) < settings.referral_code_min_length:
        raise ValidationError(
            f"Referral code must be at least {settings.referral_code_min_length} characters"
        )
    if len(normalized) > REFERRAL_CODE_MAX_LENGTH:
        raise ValidationError(f"Referral code must be at most {REFERRAL_CODE_MAX_LENGTH} characters")
    if not _CUSTOM_CODE_PATTERN.match(normalized):
        raise ValidationError("Referral code may only contain letters, digits and '-'")
    return normalized


def referral_code_candidates(name: Optional[str] = None, max_attempts: Optional[int] = None) -> Iterator[str]:
    """Name-derived candidate first, then fully random ones; at most max_attempts in total."""
    if max_attempts is None:
        max_attempts = settings.referral_code_max_attempts
    for attempt in range(max_attempts):
        yield generate_referral_code(name) if attempt == 0 else random_referral_code()


async def referral_code_attempts(
    db: AsyncSession,
    custom_code: Optional[str] = None,
    name: Optional[str] = None,
) -> AsyncIterator[str]:
    """
    Yield codes that pass the store check, for callers that write and may still lose a race.

    A custom code is validated and yielded once (ConflictError if already taken).
    Generated candidates share one budget: every candidate, free or not, counts
    against REFERRAL_CODE_MAX_ATTEMPTS. Wrap in contextlib.aclosing when leaving early.
    """
    if custom_code is not None and str(custom_code).strip():
        code = validate_custom_referral_code(custom_code)
        if await store.referral_code_taken(db, code):
            raise ConflictError("Referral code is already in use")
        yield code
        return

    for code in referral_code_candidates(name):
        if await store.referral_code_taken(db, code):
            continue
        yield code


def generation_exhausted(**context) -> GenerationExhaustedError:
    max_attempts = settings.referral_code_max_attempts
    logger.error("referral_code_generation_exhausted", attempts=max_attempts, **context)
    return GenerationExhaustedError(
        f"Could not generate a unique referral code after {max_attempts} attempts"
    )


async def issue_referral_code(
    db: AsyncSession,
    custom_code: Optional[str] = None,
    name: Optional[str] = None,
) -> str:
    """
    Return a referral code that is free in the store. Persists nothing.

    With a custom code: ValidationError if malformed, ConflictError if taken.
    Without: generate candidates until one is free; GenerationExhaustedError
    after REFERRAL_CODE_MAX_ATTEMPTS collisions.
    """
    async with aclosing(referral_code_attempts(db, custom_code=custom_code, name=name)) as codes:
        async for code in codes:
            return code
    raise generation_exhausted(name=name)
