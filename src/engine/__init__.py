from src.engine.condition import ConditionRating, ItemCondition, classify
from src.engine.duplicates import DuplicateDetector
from src.engine.exchange_rates import ExchangeRateLedger
from src.engine.price_resolver import resolve, value_collection

__all__ = [
    "ConditionRating",
    "DuplicateDetector",
    "ExchangeRateLedger",
    "ItemCondition",
    "classify",
    "resolve",
    "value_collection",
]
