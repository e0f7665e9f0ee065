from uuid import uuid4

from txncat.categorization.rules import match_keywords
from txncat.schemas.internal import CategoryDefinition

UNKNOWN = CategoryDefinition(id=uuid4(), name="Unknown", keywords=("misc",))
STREAMING = CategoryDefinition(id=uuid4(), name="Streaming", keywords=("netflix", "spotify"))
GROCERIES = CategoryDefinition(id=uuid4(), name="Groceries", keywords=("super", "market"))
CATEGORIES = [UNKNOWN, STREAMING, GROCERIES]


def test_match_is_case_insensitive_substring():
    assert match_keywords("NETFLIX.COM 0800", CATEGORIES) == [STREAMING.id]


def test_first_keyword_per_category_only():
    assert match_keywords("super market", CATEGORIES) == [GROCERIES.id]


def test_matches_follow_category_order():
    assert match_keywords("spotify at the supermarket", CATEGORIES) == [
        STREAMING.id,
        GROCERIES.id,
    ]


def test_unknown_category_never_matches():
    assert match_keywords("misc charge", CATEGORIES) == []


def test_no_match_or_empty_description():
    assert match_keywords("rent payment", CATEGORIES) == []
    assert match_keywords("", CATEGORIES) == []
    assert match_keywords(None, CATEGORIES) == []
