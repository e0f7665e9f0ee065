"""Transaction categorization.

Fuzzy scoring of descriptions and vendor labels, a decision policy that
arbitrates between the two signals, and an in-memory categorizer that
applies both to the current category snapshot. Everything in this package
is local and free of I/O.
"""

from .decision import DecisionConfig, DecisionPolicy, get_confidence
from .engine import Categorizer
from .fuzzy import normalize_text, score_description, score_vendor_label
from .rules import match_keywords

__all__ = [
    "Categorizer",
    "DecisionConfig",
    "DecisionPolicy",
    "get_confidence",
    "match_keywords",
    "normalize_text",
    "score_description",
    "score_vendor_label",
]
