"""Love meter update applied after each persisted chat turn."""

import random


def maybe_increment_love_meter(
    current: int,
    rng: random.Random,
    chance: float = 0.3,
    cap: int = 100,
) -> int:
    """
    Flat random-chance increment, independent of conversation content.

    Args:
        current: Current meter value
        rng: Random source (seedable in tests)
        chance: Probability of a +1 step
        cap: Maximum meter value

    Returns:
        New meter value in [0, cap]
    """
    value = max(0, min(current, cap))
    if value < cap and rng.random() < chance:
        value += 1
    return value
