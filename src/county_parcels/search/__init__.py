from .filters import FILTER_FIELDS, AdvancedSearchFilters, FilterDefinition
from .query import BuiltQuery, build_advanced_search, build_keyword_search

__all__ = [
    "FILTER_FIELDS",
    "AdvancedSearchFilters",
    "BuiltQuery",
    "FilterDefinition",
    "build_advanced_search",
    "build_keyword_search",
]
