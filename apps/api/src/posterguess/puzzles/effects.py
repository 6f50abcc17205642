from __future__ import annotations

import random
from typing import List, Optional, Sequence

from .models import StripEffect

STRIP_EFFECTS: Sequence[StripEffect] = ("none", "flip", "desaturate", "obscure")


def effect_for(value: float) -> StripEffect:
    """Map a uniform draw in ``[0, 1)`` onto four equal buckets."""

    bucket = int(value * len(STRIP_EFFECTS))
    return STRIP_EFFECTS[min(max(bucket, 0), len(STRIP_EFFECTS) - 1)]


def generate_strip_effects(strip_count: int, rng: Optional[random.Random] = None) -> List[StripEffect]:
    source = rng or random
    return [effect_for(source.random()) for _ in range(max(0, strip_count))]
