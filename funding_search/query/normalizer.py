"""Turn raw search inputs into predicates, one strategy per field.

List fields become a single set-membership predicate. The employee-count
field becomes one range predicate per token. Tokens that match no range
shape are dropped with a warning instead of failing the whole search.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Union

from .models import Predicate

logger = logging.getLogger(__name__)

NAME_DELIMITER = re.compile(r"[\n,]+")
URL_DELIMITER = re.compile(r"\s+")
_DIGITS = re.compile(r"[0-9]+")

RawValue = Union[str, list[Union[str, int]]]


def split_tokens(raw: RawValue, delimiter: re.Pattern[str]) -> list[str]:
    """Split a delimited string (or take a list as-is), trim, and drop blanks."""
    if isinstance(raw, (list, tuple)):
        parts: Iterable[str] = (str(item) for item in raw if item is not None)
    else:
        parts = delimiter.split(str(raw))
    return [token.strip() for token in parts if token.strip()]


def set_membership(field: str, tokens: list[str]) -> list[Predicate]:
    if not tokens:
        return []
    return [Predicate(field=field, kind="set_membership", parameters=tuple(tokens))]


def parse_range_token(field: str, token: str) -> Predicate | None:
    """Parse ``N+`` as a lower bound and ``A-B`` as an inclusive range.

    Only the first two dash-separated parts count, so ``10-20-30`` is 10..20.
    Returns None for anything else.
    """
    token = token.strip()
    if token.endswith("+"):
        minimum = _parse_int(token[:-1])
        if minimum is None:
            return None
        return Predicate(field=field, kind="numeric_lower_bound", parameters=(minimum,))
    if "-" in token:
        low_text, high_text = token.split("-")[:2]
        low, high = _parse_int(low_text), _parse_int(high_text)
        if low is None or high is None:
            return None
        return Predicate(field=field, kind="numeric_range", parameters=(low, high))
    return None


def _parse_int(text: str) -> int | None:
    text = text.strip()
    if not _DIGITS.fullmatch(text):
        return None
    return int(text)


def _list_strategy(delimiter: re.Pattern[str]) -> Callable[[str, RawValue], list[Predicate]]:
    def strategy(field: str, raw: RawValue) -> list[Predicate]:
        return set_membership(field, split_tokens(raw, delimiter))
    return strategy


def _range_strategy(field: str, raw: RawValue) -> list[Predicate]:
    predicates: list[Predicate] = []
    for token in split_tokens(raw, NAME_DELIMITER):
        predicate = parse_range_token(field, token)
        if predicate is None:
            logger.warning("Dropping unparseable %s token: %r", field, token)
            continue
        predicates.append(predicate)
    return predicates


FIELD_STRATEGIES: dict[str, Callable[[str, RawValue], list[Predicate]]] = {
    "organization_name": _list_strategy(NAME_DELIMITER),
    "number_of_employees": _range_strategy,
    "website": _list_strategy(URL_DELIMITER),
    "contact_name": _list_strategy(NAME_DELIMITER),
    "contact_title": _list_strategy(NAME_DELIMITER),
    "linkedin_url": _list_strategy(URL_DELIMITER),
}

# Accepted by the search payload but not filtered on.
IGNORED_FIELDS: frozenset[str] = frozenset({
    "estimated_revenue_range",
    "industries",
    "headquarters_location",
})


def normalize_field(field: str, raw: RawValue) -> list[Predicate]:
    if field in IGNORED_FIELDS:
        logger.debug("Search field %s is accepted but not filtered on", field)
        return []
    strategy = FIELD_STRATEGIES.get(field)
    if strategy is None:
        raise KeyError(f"No normalization strategy for field: {field}")
    return strategy(field, raw)
