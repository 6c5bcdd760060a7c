from nlquery.cache.response_cache import DEFAULT_TTL, ResponseCache, normalize_prompt

__all__ = ["DEFAULT_TTL", "ResponseCache", "normalize_prompt"]
