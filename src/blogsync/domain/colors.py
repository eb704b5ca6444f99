"""Fixed palette for category and tag colors."""

from __future__ import annotations

import random

PALETTE: tuple[str, ...] = (
    "#ef4444",
    "#f97316",
    "#f59e0b",
    "#eab308",
    "#84cc16",
    "#22c55e",
    "#10b981",
    "#14b8a6",
    "#06b6d4",
    "#0ea5e9",
    "#3b82f6",
    "#6366f1",
    "#8b5cf6",
    "#d946ef",
    "#ec4899",
    "#f43f5e",
)


def pick_color(rng: random.Random) -> str:
    """Pick a palette color using *rng*. Collisions between entities are allowed."""
    return rng.choice(PALETTE)
