import structlog
from django import forms
from django.contrib import admin, messages

from registrations import bootstrap
from registrations.domain import ClassId
from registrations.domain.errors import DomainError
from registrations.models import Booking, ClassOffering, JobLease, Participant, WaitlistEntry

logger = structlog.get_logger(__name__)

SEAT_FIELDS = ["seats_remaining", "total_purchased"]


class ClassOfferingForm(forms.ModelForm):
    class Meta:
        model = ClassOffering
        fields = "__all__"

    def clean_total_capacity(self) -> int:
        capacity = self.cleaned_data["total_capacity"]
        if self.instance.pk and capacity < self.instance.total_purchased:
            raise forms.ValidationError(
                f"{self.instance.total_purchased} seats are already purchased."
            )
        return capacity


class ParticipantInline(admin.TabularInline):
    model = Participant
    extra = 0
    readonly_fields = ["payment_status"]


class WaitlistInline(admin.TabularInline):
    model = WaitlistEntry
    extra = 0
    readonly_fields = ["status", "notified_at"]


@admin.register(ClassOffering)
class ClassOfferingAdmin(admin.ModelAdmin):
    form = ClassOfferingForm
    list_display = ["name", "external_id", "status", "starts_on", *SEAT_FIELDS]
    list_filter = ["status", "class_type"]
    search_fields = ["name", "external_id", "instructor_name"]
    # Seat counters are owned by the seat ledger.
    readonly_fields = [
        *SEAT_FIELDS,
        "product_id",
        "member_price_id",
        "non_member_price_id",
        "payment_link",
    ]
    inlines = [WaitlistInline]

    def save_model(self, request, obj, form, change):
        if not change:
            super().save_model(request, obj, form, change)
            return

        # total_capacity is written by the seat ledger together with the seat counters.
        changed = [name for name in form.changed_data if name != "total_capacity"]
        if changed:
            obj.save(update_fields=[*changed, "updated_at"])
        if "total_capacity" not in form.changed_data:
            return
        try:
            bootstrap.get_engine().ledger.resize(ClassId(obj.external_id), obj.total_capacity)
        except DomainError as exc:
            logger.warning("class_resize_failed", class_id=obj.external_id, error=str(exc))
            self.message_user(request, exc.message, level=messages.ERROR)


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ["reference", "class_offering", "status", "seat_count", "needs_attention"]
    list_filter = ["status", "booking_type", "needs_attention"]
    search_fields = ["reference", "contact_email", "payment_intent_id"]
    readonly_fields = ["status", "seats_purchased", "refund_confirmed", "batch_status"]
    inlines = [ParticipantInline]


@admin.register(JobLease)
class JobLeaseAdmin(admin.ModelAdmin):
    list_display = ["name", "holder", "expires_at"]
