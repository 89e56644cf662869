# Generated migration for the loyalty ledger

from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import ledgerman.models.program


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PropertyGroup",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.SlugField(unique=True, verbose_name="code")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text="Inactive groups stop pooling points; properties fall back to per-property memberships",
                        verbose_name="active",
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadata")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "property group",
                "verbose_name_plural": "property groups",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="GroupedProperty",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("property_code", models.CharField(max_length=50, unique=True, verbose_name="property")),
                ("joined_at", models.DateTimeField(auto_now_add=True, verbose_name="joined at")),
                (
                    "group",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="properties",
                        to="ledgerman.propertygroup",
                        verbose_name="group",
                    ),
                ),
            ],
            options={
                "verbose_name": "grouped property",
                "verbose_name_plural": "grouped properties",
            },
        ),
        migrations.CreateModel(
            name="LoyaltyMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("guest_code", models.CharField(db_index=True, max_length=50, verbose_name="guest")),
                ("property_code", models.CharField(db_index=True, max_length=50, verbose_name="property")),
                ("guest_email", models.EmailField(blank=True, max_length=254, verbose_name="guest email")),
                (
                    "tier",
                    models.CharField(
                        choices=[("bronze", "Bronze"), ("silver", "Silver"), ("gold", "Gold"), ("platinum", "Platinum")],
                        default="bronze",
                        max_length=20,
                        verbose_name="tier",
                    ),
                ),
                ("tier_points", models.IntegerField(default=0, verbose_name="tier points")),
                (
                    "available_points",
                    models.IntegerField(
                        default=0,
                        help_text="Points available for redemption",
                        verbose_name="available points",
                    ),
                ),
                ("total_points", models.IntegerField(default=0, verbose_name="total points")),
                (
                    "lifetime_spending",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14, verbose_name="lifetime spending"),
                ),
                ("lifetime_points_earned", models.IntegerField(default=0, verbose_name="lifetime points earned")),
                ("lifetime_points_redeemed", models.IntegerField(default=0, verbose_name="lifetime points redeemed")),
                ("total_nights_stayed", models.IntegerField(default=0, verbose_name="nights stayed")),
                ("points_to_next_tier", models.IntegerField(default=0, verbose_name="points to next tier")),
                (
                    "next_tier",
                    models.CharField(
                        blank=True,
                        choices=[("bronze", "Bronze"), ("silver", "Silver"), ("gold", "Gold"), ("platinum", "Platinum")],
                        default="silver",
                        max_length=20,
                        null=True,
                        verbose_name="next tier",
                    ),
                ),
                ("progress_percentage", models.FloatField(default=0, verbose_name="progress (%)")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
                ("joined_at", models.DateTimeField(auto_now_add=True, verbose_name="joined at")),
                ("last_activity_at", models.DateTimeField(blank=True, null=True, verbose_name="last activity")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("version", models.PositiveIntegerField(default=0, verbose_name="version")),
                (
                    "group",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="memberships",
                        to="ledgerman.propertygroup",
                        verbose_name="group",
                    ),
                ),
            ],
            options={
                "verbose_name": "loyalty membership",
                "verbose_name_plural": "loyalty memberships",
                "indexes": [
                    models.Index(fields=["property_code", "tier"], name="ledgerman_mbr_prop_tier_idx"),
                    models.Index(fields=["-last_activity_at"], name="ledgerman_mbr_activity_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("guest_code", "property_code"),
                        name="ledgerman_unique_guest_property",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("group__isnull", False)),
                        fields=("group", "guest_email"),
                        name="ledgerman_unique_group_email",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PointsEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "entry_type",
                    models.CharField(
                        choices=[("earned", "Earned"), ("redeemed", "Redeemed"), ("adjusted", "Adjusted"), ("expired", "Expired")],
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                (
                    "points",
                    models.IntegerField(
                        help_text="Positive for earning, negative for redemption/expiration",
                        verbose_name="points",
                    ),
                ),
                (
                    "available_after",
                    models.IntegerField(help_text="Available points after this entry", verbose_name="available after"),
                ),
                ("description", models.CharField(max_length=255, verbose_name="description")),
                (
                    "source_ref",
                    models.CharField(
                        blank=True,
                        help_text="External ID (e.g. booking:123)",
                        max_length=100,
                        verbose_name="source reference",
                    ),
                ),
                ("earned_at_property", models.CharField(blank=True, max_length=50, verbose_name="earned at property")),
                (
                    "adjustment_kind",
                    models.CharField(
                        blank=True,
                        choices=[("increase", "Increase"), ("decrease", "Decrease")],
                        max_length=20,
                        verbose_name="adjustment kind",
                    ),
                ),
                (
                    "adjustment_scope",
                    models.CharField(
                        blank=True,
                        choices=[("full", "Tier and redeemable points"), ("redeemable_only", "Redeemable points only")],
                        max_length=20,
                        verbose_name="adjustment scope",
                    ),
                ),
                ("admin_note", models.TextField(blank=True, verbose_name="admin note")),
                ("expires_at", models.DateTimeField(blank=True, db_index=True, null=True, verbose_name="expires at")),
                ("is_expired", models.BooleanField(default=False, verbose_name="expired")),
                (
                    "created_at",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name="created at"),
                ),
                (
                    "lot",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="expirations",
                        to="ledgerman.pointsentry",
                        verbose_name="expired lot",
                    ),
                ),
                (
                    "membership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="entries",
                        to="ledgerman.loyaltymembership",
                        verbose_name="membership",
                    ),
                ),
            ],
            options={
                "verbose_name": "points entry",
                "verbose_name_plural": "points entries",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["membership", "-created_at"], name="ledgerman_entry_created_idx"),
                    models.Index(fields=["entry_type", "is_expired", "expires_at"], name="ledgerman_entry_lot_due_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Redemption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("points", models.PositiveIntegerField(verbose_name="points")),
                (
                    "value",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        help_text="Monetary value of the reward",
                        max_digits=12,
                        verbose_name="value",
                    ),
                ),
                ("reward_ref", models.CharField(blank=True, max_length=100, verbose_name="reward reference")),
                ("reward_name", models.CharField(max_length=200, verbose_name="reward")),
                (
                    "source_ref",
                    models.CharField(
                        blank=True,
                        help_text="Booking the reward was applied to",
                        max_length=100,
                        verbose_name="source reference",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("applied", "Applied"), ("expired", "Expired"), ("cancelled", "Cancelled")],
                        default="applied",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("redeemed_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="redeemed at")),
                (
                    "entry",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemption",
                        to="ledgerman.pointsentry",
                        verbose_name="points entry",
                    ),
                ),
                (
                    "membership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="redemptions",
                        to="ledgerman.loyaltymembership",
                        verbose_name="membership",
                    ),
                ),
            ],
            options={
                "verbose_name": "redemption",
                "verbose_name_plural": "redemptions",
                "ordering": ["-redeemed_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="TierChange",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "tier",
                    models.CharField(
                        choices=[("bronze", "Bronze"), ("silver", "Silver"), ("gold", "Gold"), ("platinum", "Platinum")],
                        max_length=20,
                        verbose_name="tier",
                    ),
                ),
                (
                    "previous_tier",
                    models.CharField(
                        blank=True,
                        choices=[("bronze", "Bronze"), ("silver", "Silver"), ("gold", "Gold"), ("platinum", "Platinum")],
                        max_length=20,
                        verbose_name="previous tier",
                    ),
                ),
                ("reason", models.CharField(default="Points threshold reached", max_length=200, verbose_name="reason")),
                ("changed_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="changed at")),
                (
                    "membership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tier_history",
                        to="ledgerman.loyaltymembership",
                        verbose_name="membership",
                    ),
                ),
            ],
            options={
                "verbose_name": "tier change",
                "verbose_name_plural": "tier changes",
                "ordering": ["-changed_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="LinkedAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("property_code", models.CharField(max_length=50, verbose_name="property")),
                ("guest_account_id", models.CharField(max_length=50, verbose_name="guest account")),
                ("display_name", models.CharField(blank=True, max_length=200, verbose_name="display name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email")),
                ("linked_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="linked at")),
                (
                    "membership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="linked_accounts",
                        to="ledgerman.loyaltymembership",
                        verbose_name="membership",
                    ),
                ),
                (
                    "group",
                    models.ForeignKey(
                        help_text="Group of the membership; an account is linked at most once per group",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="linked_accounts",
                        to="ledgerman.propertygroup",
                        verbose_name="group",
                    ),
                ),
            ],
            options={
                "verbose_name": "linked account",
                "verbose_name_plural": "linked accounts",
                "ordering": ["linked_at", "id"],
                "indexes": [
                    models.Index(fields=["property_code", "guest_account_id"], name="ledgerman_link_account_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("group", "property_code", "guest_account_id"),
                        name="ledgerman_unique_group_linked_account",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LoyaltyProgram",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("property_code", models.CharField(max_length=50, unique=True, verbose_name="property")),
                ("name", models.CharField(blank=True, max_length=200, verbose_name="name")),
                (
                    "tier_configuration",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text='Ascending list of {"tier", "min_points", "discount_percentage", "benefits"}',
                        verbose_name="tier configuration",
                    ),
                ),
                (
                    "points_per_currency",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("1"),
                        max_digits=8,
                        verbose_name="points per currency unit",
                    ),
                ),
                ("points_per_night", models.PositiveIntegerField(default=50, verbose_name="points per night")),
                (
                    "service_multipliers",
                    models.JSONField(
                        blank=True,
                        default=ledgerman.models.program.default_service_multipliers,
                        verbose_name="service multipliers",
                    ),
                ),
                (
                    "expiration_months",
                    models.PositiveIntegerField(
                        default=12,
                        help_text="Lifetime of earned points",
                        verbose_name="expiration (months)",
                    ),
                ),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "loyalty program",
                "verbose_name_plural": "loyalty programs",
            },
        ),
    ]
