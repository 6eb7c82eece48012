import uuid

import django.db.models.deletion
from django.db import migrations, models

BOOKING_STATUS_CHOICES = [
    ("Pending", "Pending"),
    ("Paid", "Paid"),
    ("ROII-Free", "ROII-Free"),
    ("Refunded", "Refunded"),
    ("Cancelled-Without-Refund", "Cancelled-Without-Refund"),
    ("ROII-Cancelled", "ROII-Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ClassOffering",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("external_id", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("location", models.CharField(blank=True, default="", max_length=255)),
                ("class_type", models.CharField(blank=True, default="", max_length=100)),
                ("instructor_name", models.CharField(blank=True, default="", max_length=255)),
                ("starts_on", models.DateField(blank=True, null=True)),
                ("ends_on", models.DateField(blank=True, null=True)),
                ("start_time", models.CharField(blank=True, default="", max_length=20)),
                ("end_time", models.CharField(blank=True, default="", max_length=20)),
                ("price_member", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("price_non_member", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("price_roii", models.CharField(blank=True, default="", max_length=100)),
                ("total_capacity", models.PositiveIntegerField()),
                ("seats_remaining", models.PositiveIntegerField(blank=True, null=True)),
                ("total_purchased", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("Draft", "Draft"),
                            ("Publish", "Publish"),
                            ("Published", "Published"),
                            ("Updated", "Updated"),
                            ("Delete", "Delete"),
                        ],
                        default="Draft",
                        max_length=20,
                    ),
                ),
                ("product_id", models.CharField(blank=True, default="", max_length=255)),
                ("member_price_id", models.CharField(blank=True, default="", max_length=255)),
                ("non_member_price_id", models.CharField(blank=True, default="", max_length=255)),
                ("payment_link", models.URLField(blank=True, default="", max_length=500)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["starts_on", "name"],
                "indexes": [models.Index(fields=["status"], name="class_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("reference", models.CharField(max_length=64, unique=True)),
                ("seat_count", models.PositiveIntegerField()),
                ("seats_purchased", models.PositiveIntegerField(default=0)),
                ("status", models.CharField(choices=BOOKING_STATUS_CHOICES, default="Pending", max_length=30)),
                (
                    "booking_type",
                    models.CharField(
                        choices=[("paid", "paid"), ("roii", "roii"), ("admin", "admin")],
                        default="paid",
                        max_length=10,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("refund_confirmed", models.BooleanField(default=False)),
                ("payment_intent_id", models.CharField(blank=True, max_length=255, null=True)),
                ("batch_id", models.CharField(blank=True, default="", max_length=64)),
                ("batch_status", models.CharField(blank=True, choices=BOOKING_STATUS_CHOICES, default="", max_length=30)),
                ("needs_attention", models.BooleanField(default=False)),
                ("contact_email", models.EmailField(blank=True, default="", max_length=254)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "class_offering",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="registrations.classoffering",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="booking_status_idx"),
                    models.Index(fields=["payment_intent_id"], name="booking_intent_idx"),
                    models.Index(fields=["batch_id"], name="booking_batch_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Participant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=40)),
                ("payment_status", models.CharField(choices=BOOKING_STATUS_CHOICES, default="Pending", max_length=30)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="participants",
                        to="registrations.booking",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="WaitlistEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("email", models.EmailField(max_length=254)),
                ("name", models.CharField(blank=True, default="", max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[("Yet-to-Notify", "Yet-to-Notify"), ("Notified", "Notified")],
                        default="Yet-to-Notify",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("notified_at", models.DateTimeField(blank=True, null=True)),
                (
                    "class_offering",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="waitlist",
                        to="registrations.classoffering",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "waitlist entries",
                "ordering": ["created_at"],
                "indexes": [models.Index(fields=["status"], name="waitlist_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="JobLease",
            fields=[
                ("name", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("holder", models.CharField(blank=True, default="", max_length=64)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
            ],
        ),
    ]
