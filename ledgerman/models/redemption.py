"""Redemption model."""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class RedemptionStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    APPLIED = "applied", _("Applied")
    EXPIRED = "expired", _("Expired")
    CANCELLED = "cancelled", _("Cancelled")


class Redemption(models.Model):
    """A reward redeemed against a membership's available points."""

    membership = models.ForeignKey(
        "ledgerman.LoyaltyMembership",
        on_delete=models.CASCADE,
        related_name="redemptions",
        verbose_name=_("membership"),
    )
    entry = models.OneToOneField(
        "ledgerman.PointsEntry",
        on_delete=models.PROTECT,
        related_name="redemption",
        verbose_name=_("points entry"),
    )

    points = models.PositiveIntegerField(_("points"))
    value = models.DecimalField(
        _("value"),
        max_digits=12,
        decimal_places=2,
        default=Decimal("0"),
        help_text=_("Monetary value of the reward"),
    )
    reward_ref = models.CharField(_("reward reference"), max_length=100, blank=True)
    reward_name = models.CharField(_("reward"), max_length=200)
    source_ref = models.CharField(
        _("source reference"),
        max_length=100,
        blank=True,
        help_text=_("Booking the reward was applied to"),
    )
    status = models.CharField(
        _("status"),
        max_length=20,
        choices=RedemptionStatus.choices,
        default=RedemptionStatus.APPLIED,
    )
    redeemed_at = models.DateTimeField(_("redeemed at"), default=timezone.now)

    class Meta:
        verbose_name = _("redemption")
        verbose_name_plural = _("redemptions")
        ordering = ["-redeemed_at", "-id"]

    def __str__(self):
        return f"{self.reward_name} ({self.points}pts)"
