import random
from collections import Counter
from typing import Iterable, List, Mapping, Optional


def assign_variant(draw: float, variants: List[Mapping]) -> Optional[str]:
    """Pick the first variant whose cumulative percentage reaches ``draw``.

    Percentages are used as given. When they sum to less than 100, draws above
    the total fall through and return None, leaving the recipient unassigned.
    """
    cumulative = 0.0
    for variant in variants:
        cumulative += float(variant.get('percentage') or 0)
        if draw <= cumulative:
            return variant.get('name')
    return None


def draw_variant(ab_test: Optional[Mapping], rng: Optional[random.Random] = None) -> Optional[str]:
    if not ab_test or not ab_test.get('enabled'):
        return None
    variants = ab_test.get('variants') or []
    if not variants:
        return None
    rng = rng or random
    return assign_variant(rng.random() * 100, variants)


def tally_variants(variant_names: Iterable[Optional[str]]) -> dict:
    return dict(Counter(name for name in variant_names if name))
