from . import media_service, search_query

__all__ = ["media_service", "search_query"]
