"""LoyaltyProgram model — per-property program rules."""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


def default_service_multipliers() -> dict:
    return {
        "laundry": 1,
        "transportation": 1,
        "tourism": 1.5,
        "travel": 1.5,
        "housekeeping": 1,
    }


class LoyaltyProgram(models.Model):
    """
    Loyalty program configuration of one property.

    tier_configuration is validated by ledgerman.tiers.validate_table()
    on clean() and before every use; an empty list means "use the
    LEDGERMAN TIER_TABLE setting or the built-in default".
    """

    property_code = models.CharField(_("property"), max_length=50, unique=True)
    name = models.CharField(_("name"), max_length=200, blank=True)

    tier_configuration = models.JSONField(
        _("tier configuration"),
        default=list,
        blank=True,
        help_text=_('Ascending list of {"tier", "min_points", "discount_percentage", "benefits"}'),
    )

    # Earning rules
    points_per_currency = models.DecimalField(
        _("points per currency unit"),
        max_digits=8,
        decimal_places=2,
        default=Decimal("1"),
    )
    points_per_night = models.PositiveIntegerField(_("points per night"), default=50)
    service_multipliers = models.JSONField(
        _("service multipliers"),
        default=default_service_multipliers,
        blank=True,
    )

    # Expiration
    expiration_months = models.PositiveIntegerField(
        _("expiration (months)"),
        default=12,
        help_text=_("Lifetime of earned points"),
    )

    is_active = models.BooleanField(_("active"), default=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("loyalty program")
        verbose_name_plural = _("loyalty programs")

    def __str__(self):
        return self.name or self.property_code

    def clean(self):
        from django.core.exceptions import ValidationError

        from ledgerman.exceptions import LedgermanError
        from ledgerman.tiers import parse_table

        if self.tier_configuration:
            try:
                parse_table(self.tier_configuration)
            except LedgermanError as e:
                raise ValidationError({"tier_configuration": e.message})

    def multiplier_for(self, category: str) -> Decimal:
        """Earning multiplier of a service category (1 when not configured)."""
        value = (self.service_multipliers or {}).get(category)
        if not value:
            return Decimal("1")
        return Decimal(str(value))
