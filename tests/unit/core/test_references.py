"""Unit tests for ReferenceGenerator.

Covers:
- Format ``PREFIX-YYYYMMDD-XXXX`` with an ``A-Z0-9`` suffix.
- Date stamp taken from the supplied clock.
- Bounded retries on collision, then ``ReferenceCollision`` (a Conflict).
- Helpers ``normalize_ref`` / ``looks_like_ref``.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest

from modules.core.exceptions import Conflict
from modules.core.references import (
    REF_PATTERN,
    ReferenceCollision,
    ReferenceGenerator,
    looks_like_ref,
    normalize_ref,
)

pytestmark = pytest.mark.unit

NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerate:
    def test_format(self):
        ref = ReferenceGenerator.generate("GLS", NOW)
        assert re.fullmatch(r"GLS-20250314-[A-Z0-9]{4}", ref)

    def test_prefix_is_normalised(self):
        ref = ReferenceGenerator.generate(" cec ", NOW)
        assert ref.startswith("CEC-20250314-")

    def test_matches_reference_pattern(self):
        assert REF_PATTERN.match(ReferenceGenerator.generate("GLS", NOW))

    def test_suffixes_vary(self):
        refs = {ReferenceGenerator.generate("GLS", NOW) for _ in range(50)}
        assert len(refs) > 1


# ---------------------------------------------------------------------------
# mint_unique
# ---------------------------------------------------------------------------


class TestMintUnique:
    def test_returns_first_unused_candidate(self):
        ref = ReferenceGenerator(max_attempts=10).mint_unique(
            "GLS", lambda candidate: False, now=NOW
        )
        assert ref.startswith("GLS-20250314-")

    def test_retries_until_free(self):
        seen = []

        def exists(candidate):
            seen.append(candidate)
            return len(seen) < 3

        ReferenceGenerator(max_attempts=10).mint_unique("GLS", exists, now=NOW)
        assert len(seen) == 3

    def test_gives_up_after_max_attempts(self):
        calls = []

        def exists(candidate):
            calls.append(candidate)
            return True

        with pytest.raises(ReferenceCollision) as exc_info:
            ReferenceGenerator(max_attempts=10).mint_unique("GLS", exists, now=NOW)

        assert len(calls) == 10
        assert isinstance(exc_info.value, Conflict)
        assert exc_info.value.status_code == 409

    def test_default_budget_comes_from_settings(self, settings):
        settings.REF_MAX_ATTEMPTS = 3
        assert ReferenceGenerator().max_attempts == 3


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_normalize_ref(self):
        assert normalize_ref("  gls-20250314-ab12 ") == "GLS-20250314-AB12"

    @pytest.mark.parametrize(
        "value",
        ["GLS-20250314-AB12", "gls-20250314-ab12", "CEC-20240101-0000"],
    )
    def test_looks_like_ref(self, value):
        assert looks_like_ref(value)

    @pytest.mark.parametrize(
        "value",
        ["0190f7c2-1b7e-7cc2-9d3a-5b7a1c2d3e4f", "GLS-2025031-AB12", "GLS-20250314-AB1"],
    )
    def test_rejects_non_refs(self, value):
        assert not looks_like_ref(value)
