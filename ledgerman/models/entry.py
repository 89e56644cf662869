"""PointsEntry model — append-only points history, including earn lots."""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class EntryType(models.TextChoices):
    """Points history entry types."""

    EARNED = "earned", _("Earned")
    REDEEMED = "redeemed", _("Redeemed")
    ADJUSTED = "adjusted", _("Adjusted")
    EXPIRED = "expired", _("Expired")


class AdjustmentKind(models.TextChoices):
    """Direction of an administrative adjustment."""

    INCREASE = "increase", _("Increase")
    DECREASE = "decrease", _("Decrease")


class AdjustmentScope(models.TextChoices):
    """Balances an administrative adjustment applies to."""

    FULL = "full", _("Tier and redeemable points")
    REDEEMABLE_ONLY = "redeemable_only", _("Redeemable points only")


class PointsEntry(models.Model):
    """
    Immutable record of a points movement.

    Entries of type EARNED are the lots: they carry expires_at and the
    is_expired flag, which is the only field ever updated after creation.
    EXPIRED entries point back to the lot they retired.
    """

    membership = models.ForeignKey(
        "ledgerman.LoyaltyMembership",
        on_delete=models.CASCADE,
        related_name="entries",
        verbose_name=_("membership"),
    )

    entry_type = models.CharField(_("type"), max_length=20, choices=EntryType.choices)
    points = models.IntegerField(
        _("points"),
        help_text=_("Positive for earning, negative for redemption/expiration"),
    )
    available_after = models.IntegerField(
        _("available after"),
        help_text=_("Available points after this entry"),
    )

    description = models.CharField(_("description"), max_length=255)
    source_ref = models.CharField(
        _("source reference"),
        max_length=100,
        blank=True,
        help_text=_("External ID (e.g. booking:123)"),
    )
    earned_at_property = models.CharField(_("earned at property"), max_length=50, blank=True)

    # Administrative adjustments
    adjustment_kind = models.CharField(
        _("adjustment kind"),
        max_length=20,
        choices=AdjustmentKind.choices,
        blank=True,
    )
    adjustment_scope = models.CharField(
        _("adjustment scope"),
        max_length=20,
        choices=AdjustmentScope.choices,
        blank=True,
    )
    admin_note = models.TextField(_("admin note"), blank=True)

    # Lots
    expires_at = models.DateTimeField(_("expires at"), null=True, blank=True, db_index=True)
    is_expired = models.BooleanField(_("expired"), default=False)
    lot = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        related_name="expirations",
        null=True,
        blank=True,
        verbose_name=_("expired lot"),
    )

    created_at = models.DateTimeField(_("created at"), default=timezone.now, db_index=True)

    class Meta:
        verbose_name = _("points entry")
        verbose_name_plural = _("points entries")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["membership", "-created_at"], name="ledgerman_entry_created_idx"),
            models.Index(fields=["entry_type", "is_expired", "expires_at"], name="ledgerman_entry_lot_due_idx"),
        ]

    def __str__(self):
        sign = "+" if self.points > 0 else ""
        return f"{sign}{self.points}pts: {self.description}"
