"""
meal_search – multi-entity search and trend ranking.

Import path convention::

    from meal_search.application.search import SearchCriteria, SearchOrchestrator
    from meal_search.application.trends import TrendTracker
    from meal_search.kernel.errors import InvalidRequestError
    from meal_search.bootstrap import SearchApplication
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
