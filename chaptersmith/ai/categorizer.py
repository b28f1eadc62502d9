"""Sort free-text items into numbered categories with a provider."""

import logging
import re
from typing import Dict, List, Sequence

from ..core.errors import ConfigurationError
from .base import ProviderAdapter

logger = logging.getLogger(__name__)

UNCATEGORIZED = 0

CATEGORIZE_PROMPT = (
    "Based on the following categories:\n\n{categories}\n\n"
    "Please categorize the following prompt:\n\n{item}\n\n"
    "Please return JUST the category number, and no other output text."
)

_NUMBER = re.compile(r"\d+")


def category_number(response: str) -> int:
    """First number in the response, or ``UNCATEGORIZED`` when there is none."""
    found = _NUMBER.search(response)
    return int(found.group(0)) if found else UNCATEGORIZED


def categorize_items(provider: ProviderAdapter, items: Sequence[str], categories: str) -> Dict[int, List[str]]:
    """Ask ``provider`` for each item's category; items keep their order within a category."""
    if not items:
        raise ConfigurationError("No items to categorize")
    if not categories.strip():
        raise ConfigurationError("No categories given")

    logger.info(f"Categorizing {len(items)} items with {provider.name}")
    results: Dict[int, List[str]] = {}
    for count, item in enumerate(items, 1):
        response = provider.generate(CATEGORIZE_PROMPT.format(categories=categories, item=item))
        number = category_number(response)
        if number == UNCATEGORIZED:
            logger.warning(f"No category number in response for item {count}: {response!r}")
        results.setdefault(number, []).append(item)
        logger.debug(f"{count / len(items):.0%} complete")
    logger.info(f"Categorized {len(items)} items into {len(results)} categories")
    return results
