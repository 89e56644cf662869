"""LoyaltyMembership model — the loyalty aggregate of one guest.

Balance semantics:
    tier_points
        Qualifies the member for a tier. Moved by earning and full
        adjustments only; never by redemption or expiration.

    available_points
        Redeemable balance. Down with redemption and expiration.

    total_points
        Lifetime display counter. Up with earning, down with expiration,
        untouched by redemption.

A membership is keyed by (guest_code, property_code). When the property
belongs to a PropertyGroup, the membership also carries the group and the
guest email, and becomes the canonical pool for that (group, email) pair.
"""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class LoyaltyTier(models.TextChoices):
    """Loyalty tiers, lowest first."""

    BRONZE = "bronze", _("Bronze")
    SILVER = "silver", _("Silver")
    GOLD = "gold", _("Gold")
    PLATINUM = "platinum", _("Platinum")


class LoyaltyMembership(models.Model):
    """
    Guest loyalty membership at a property (or property group).

    Mutated exclusively through ledgerman.store.MembershipStore.mutate(),
    which persists MUTABLE_FIELDS with a version compare-and-swap.
    Never hard-deleted: is_active=False retires it and keeps history.
    """

    MUTABLE_FIELDS = (
        "group",
        "guest_email",
        "tier",
        "tier_points",
        "available_points",
        "total_points",
        "lifetime_spending",
        "lifetime_points_earned",
        "lifetime_points_redeemed",
        "total_nights_stayed",
        "points_to_next_tier",
        "next_tier",
        "progress_percentage",
        "last_activity_at",
        "is_active",
    )

    # Identity
    guest_code = models.CharField(_("guest"), max_length=50, db_index=True)
    property_code = models.CharField(_("property"), max_length=50, db_index=True)

    # Group-scoped lookup
    group = models.ForeignKey(
        "ledgerman.PropertyGroup",
        on_delete=models.PROTECT,
        related_name="memberships",
        null=True,
        blank=True,
        verbose_name=_("group"),
    )
    guest_email = models.EmailField(_("guest email"), blank=True)

    # Tier
    tier = models.CharField(
        _("tier"),
        max_length=20,
        choices=LoyaltyTier.choices,
        default=LoyaltyTier.BRONZE,
    )

    # Balances
    tier_points = models.IntegerField(_("tier points"), default=0)
    available_points = models.IntegerField(
        _("available points"),
        default=0,
        help_text=_("Points available for redemption"),
    )
    total_points = models.IntegerField(_("total points"), default=0)

    # Lifetime statistics
    lifetime_spending = models.DecimalField(
        _("lifetime spending"),
        max_digits=14,
        decimal_places=2,
        default=Decimal("0"),
    )
    lifetime_points_earned = models.IntegerField(_("lifetime points earned"), default=0)
    lifetime_points_redeemed = models.IntegerField(_("lifetime points redeemed"), default=0)
    total_nights_stayed = models.IntegerField(_("nights stayed"), default=0)

    # Tier progress (derived by ledgerman.tiers)
    points_to_next_tier = models.IntegerField(_("points to next tier"), default=0)
    next_tier = models.CharField(
        _("next tier"),
        max_length=20,
        choices=LoyaltyTier.choices,
        null=True,
        blank=True,
        default=LoyaltyTier.SILVER,
    )
    progress_percentage = models.FloatField(_("progress (%)"), default=0)

    # Status
    is_active = models.BooleanField(_("active"), default=True)
    joined_at = models.DateTimeField(_("joined at"), auto_now_add=True)
    last_activity_at = models.DateTimeField(_("last activity"), null=True, blank=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    # Optimistic concurrency stamp
    version = models.PositiveIntegerField(_("version"), default=0)

    class Meta:
        verbose_name = _("loyalty membership")
        verbose_name_plural = _("loyalty memberships")
        constraints = [
            models.UniqueConstraint(
                fields=["guest_code", "property_code"],
                name="ledgerman_unique_guest_property",
            ),
            models.UniqueConstraint(
                fields=["group", "guest_email"],
                condition=models.Q(group__isnull=False),
                name="ledgerman_unique_group_email",
            ),
        ]
        indexes = [
            models.Index(fields=["property_code", "tier"], name="ledgerman_mbr_prop_tier_idx"),
            models.Index(fields=["-last_activity_at"], name="ledgerman_mbr_activity_idx"),
        ]

    def __str__(self):
        return f"{self.guest_code}@{self.property_code}: {self.available_points}pts | {self.tier}"

    @property
    def is_group_scoped(self) -> bool:
        return self.group_id is not None

    def save(self, *args, **kwargs):
        if self.guest_email:
            self.guest_email = self.guest_email.lower().strip()
        super().save(*args, **kwargs)
