"""Django signals for cache invalidation.

Seat counter writes go through queryset updates, which do not emit signals;
the record store invalidates those itself.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from registrations.cache import invalidate_class
from registrations.models import Booking, ClassOffering


@receiver([post_save, post_delete], sender=ClassOffering)
def invalidate_class_cache(sender, instance, **kwargs):
    """Invalidate availability when a class is saved or deleted."""
    invalidate_class(instance.external_id)


@receiver(post_save, sender=Booking)
def invalidate_booking_class_cache(sender, instance, **kwargs):
    invalidate_class(instance.class_offering.external_id)
