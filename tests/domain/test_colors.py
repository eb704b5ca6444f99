"""Tests for palette color selection."""

from __future__ import annotations

import random

from blogsync.domain.colors import PALETTE, pick_color


class TestPickColor:
    def test_color_from_palette(self) -> None:
        assert pick_color(random.Random(1)) in PALETTE

    def test_seeded_rng_is_deterministic(self) -> None:
        first = [pick_color(random.Random(7)) for _ in range(3)]
        assert len(set(first)) == 1
        a, b = random.Random(99), random.Random(99)
        assert [pick_color(a) for _ in range(10)] == [pick_color(b) for _ in range(10)]

    def test_palette_entries_are_hex(self) -> None:
        assert all(c.startswith("#") and len(c) == 7 for c in PALETTE)
