"""Human-readable references for orders and appointments.

Format: ``{PREFIX}-{YYYYMMDD}-{CODE}`` where ``CODE`` is four characters
drawn from ``A-Z0-9``.  References sort by creation date and are short
enough to read out over the phone.  Uniqueness is the caller's job: pass
an ``exists`` callback to ``mint_unique``, which retries a bounded number
of times before giving up with ``ReferenceCollision``.
"""

from __future__ import annotations

import re
import secrets
import string
from datetime import datetime
from typing import Callable, Optional

import structlog
from django.conf import settings
from django.utils import timezone

from modules.core.exceptions import Conflict

logger = structlog.get_logger(__name__)

REF_ALPHABET = string.ascii_uppercase + string.digits
REF_CODE_LENGTH = 4
REF_PATTERN = re.compile(r"^[A-Z0-9]+-\d{8}-[A-Z0-9]{4}$")


class ReferenceCollision(Conflict):
    """No unused reference was found within the retry budget."""

    code = "reference_collision"


class ReferenceGenerator:
    """Mints date-stamped references with a random suffix."""

    def __init__(self, max_attempts: Optional[int] = None) -> None:
        self.max_attempts = max_attempts or settings.REF_MAX_ATTEMPTS

    @staticmethod
    def generate(prefix: str, now: Optional[datetime] = None) -> str:
        now = now or timezone.now()
        code = "".join(secrets.choice(REF_ALPHABET) for _ in range(REF_CODE_LENGTH))
        return f"{prefix.strip().upper()}-{now:%Y%m%d}-{code}"

    def mint_unique(
        self,
        prefix: str,
        exists: Callable[[str], bool],
        now: Optional[datetime] = None,
    ) -> str:
        """Return a reference for which ``exists`` is false.

        Raises:
            ReferenceCollision: every attempt hit an existing reference.
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.generate(prefix, now)
            if not exists(candidate):
                return candidate
            logger.warning(
                "reference.collision",
                prefix=prefix,
                candidate=candidate,
                attempt=attempt,
            )
        raise ReferenceCollision(
            f"Failed to generate a unique {prefix} reference after "
            f"{self.max_attempts} attempts."
        )


def normalize_ref(ref: str) -> str:
    return ref.strip().upper()


def looks_like_ref(value: str) -> bool:
    return bool(REF_PATTERN.match(normalize_ref(value)))
