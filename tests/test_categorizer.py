"""Tests for provider-driven categorization of items."""

import pytest

from chaptersmith.ai.categorizer import UNCATEGORIZED, categorize_items, category_number
from chaptersmith.core.errors import ConfigurationError

from conftest import FakeProvider

CATEGORIES = "1. Fruit\n2. Vegetable\n3. Protein"


def test_items_grouped_by_category_number():
    provider = FakeProvider(["1", "2", " 3\n", "Category 1."])
    results = categorize_items(provider, ["Apple", "Carrot", "Chicken", "Pear"], CATEGORIES)
    assert results == {1: ["Apple", "Pear"], 2: ["Carrot"], 3: ["Chicken"]}
    assert len(provider.prompts) == 4
    assert CATEGORIES in provider.prompts[0]
    assert "Apple" in provider.prompts[0]


def test_response_without_number_is_uncategorized():
    provider = FakeProvider(["Not sure."])
    assert categorize_items(provider, ["Stone"], CATEGORIES) == {UNCATEGORIZED: ["Stone"]}


@pytest.mark.parametrize("items, categories", [([], CATEGORIES), (["Apple"], "  ")])
def test_empty_input_is_rejected(items, categories):
    provider = FakeProvider()
    with pytest.raises(ConfigurationError):
        categorize_items(provider, items, categories)
    assert provider.prompts == []


def test_category_number():
    assert category_number("12") == 12
    assert category_number("It is 2, clearly") == 2
    assert category_number("none") == UNCATEGORIZED
