"""MongoDB adapter – text store and trend store.

Requires the ``mongodb`` extra::

    pip install "meal-search[mongodb]"
"""

from meal_search.adapters.mongodb.text_store import MongoTextStore
from meal_search.adapters.mongodb.trend_store import MongoTrendStore

__all__ = ["MongoTextStore", "MongoTrendStore"]
