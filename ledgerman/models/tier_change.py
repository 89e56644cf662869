"""TierChange model — tier history of a membership."""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from ledgerman.models.membership import LoyaltyTier


class TierChange(models.Model):
    membership = models.ForeignKey(
        "ledgerman.LoyaltyMembership",
        on_delete=models.CASCADE,
        related_name="tier_history",
        verbose_name=_("membership"),
    )
    tier = models.CharField(_("tier"), max_length=20, choices=LoyaltyTier.choices)
    previous_tier = models.CharField(
        _("previous tier"),
        max_length=20,
        choices=LoyaltyTier.choices,
        blank=True,
    )
    reason = models.CharField(_("reason"), max_length=200, default="Points threshold reached")
    changed_at = models.DateTimeField(_("changed at"), default=timezone.now)

    class Meta:
        verbose_name = _("tier change")
        verbose_name_plural = _("tier changes")
        ordering = ["-changed_at", "-id"]

    def __str__(self):
        return f"{self.previous_tier or '-'} → {self.tier}"
