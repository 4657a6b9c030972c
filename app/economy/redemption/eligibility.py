from __future__ import annotations

import json
from collections.abc import Iterable, Set

from app.economy.redemption.errors import EligibilityDecodeError


def decode_eligible_product_ids_strict(raw: str | None) -> frozenset[int]:
    if raw is None or not raw.strip():
        return frozenset()
    try:
        parsed = json.loads(raw)
    except ValueError as exc:
        raise EligibilityDecodeError("eligible products list is not valid JSON") from exc
    if not isinstance(parsed, list):
        raise EligibilityDecodeError("eligible products list must be a JSON array")

    product_ids: set[int] = set()
    for item in parsed:
        if isinstance(item, bool) or not isinstance(item, int):
            raise EligibilityDecodeError("eligible products list must contain integers only")
        product_ids.add(item)
    return frozenset(product_ids)


def decode_eligible_product_ids(raw: str | None) -> frozenset[int]:
    try:
        return decode_eligible_product_ids_strict(raw)
    except EligibilityDecodeError:
        return frozenset()


def is_eligible(selection: Iterable[int], eligible: Set[int]) -> bool:
    # An empty eligible set places no restriction on the selection.
    if not eligible:
        return True
    return all(product_id in eligible for product_id in selection)
