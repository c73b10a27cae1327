"""
Human-readable identifier generation.

Ids look like ``acct_acme-store_x7k2``: a collection prefix, a slug of the
entity name and a short random suffix.

Invariants:
    - slugify() is pure: same input, same output
    - Only the suffix is random, drawn from an injectable random source
    - generate() never returns an id for which exists(id) is true
    - generate() gives up after max_attempts with GenerationExhausted
"""

from __future__ import annotations

import random
import re
import string
import unicodedata
from collections.abc import Callable

from .errors import GenerationExhausted

SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
SUFFIX_LENGTH = 4
DEFAULT_MAX_ATTEMPTS = 1000
FALLBACK_SLUG = "item"

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: str | None) -> str:
    """Turn free text into a lowercase, hyphen-separated ASCII slug.

    >>> slugify("Café Ação!")
    'cafe-acao'
    >>> slugify("  ---  ")
    'item'
    """
    normalized = unicodedata.normalize("NFKD", text or "")
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    slug = _NON_ALNUM_RE.sub("-", ascii_text).strip("-")
    return slug or FALLBACK_SLUG


class IdGenerator:
    """Generates ``{prefix}_{slug}_{suffix}`` ids.

    Args:
        rng: Random source for suffixes. Defaults to SystemRandom; tests
            pass a seeded ``random.Random`` to get reproducible ids.
        max_attempts: Suffix draws before raising GenerationExhausted
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._rng = rng or random.SystemRandom()
        self.max_attempts = max_attempts

    def suffix(self) -> str:
        return "".join(self._rng.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))

    def generate(self, prefix: str, seed_text: str | None, exists: Callable[[str], bool]) -> str:
        """Return a new id that ``exists`` reports as free.

        Raises:
            GenerationExhausted: If every attempt collided
        """
        slug = slugify(seed_text)
        for _ in range(self.max_attempts):
            candidate = f"{prefix}_{slug}_{self.suffix()}"
            if not exists(candidate):
                return candidate
        raise GenerationExhausted(prefix, slug, self.max_attempts)


def generate(
    prefix: str,
    seed_text: str | None,
    exists: Callable[[str], bool],
    rng: random.Random | None = None,
) -> str:
    """Module-level shortcut for a one-off id."""
    return IdGenerator(rng=rng).generate(prefix, seed_text, exists)
