"""Cache keys for read endpoints and their invalidation."""

from django.core.cache import cache

AVAILABILITY_TIMEOUT = 60


def availability_key(class_id: str) -> str:
    return f"classes:{class_id}:availability"


def invalidate_class(class_id: str) -> None:
    cache.delete(availability_key(class_id))
