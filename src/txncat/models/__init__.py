"""Database models."""
from txncat.models.category import Category
from txncat.models.transaction import Transaction
from txncat.models.transaction_category import TransactionCategory
from txncat.models.category_score import CategoryScore
from txncat.models.category_override import CategoryOverride

__all__ = [
    "Category",
    "Transaction",
    "TransactionCategory",
    "CategoryScore",
    "CategoryOverride",
]
