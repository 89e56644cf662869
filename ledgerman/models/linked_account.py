"""LinkedAccount model — guest accounts pooled into a group membership."""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class LinkedAccount(models.Model):
    """
    A (property, guest account) pair sharing a group-scoped membership.

    The same guest email usually maps to a different account at each
    property of the group; every such account is linked here so earning
    or redeeming through it resolves to the canonical membership.
    """

    membership = models.ForeignKey(
        "ledgerman.LoyaltyMembership",
        on_delete=models.CASCADE,
        related_name="linked_accounts",
        verbose_name=_("membership"),
    )
    group = models.ForeignKey(
        "ledgerman.PropertyGroup",
        on_delete=models.CASCADE,
        related_name="linked_accounts",
        verbose_name=_("group"),
        help_text=_("Group of the membership; an account is linked at most once per group"),
    )
    property_code = models.CharField(_("property"), max_length=50)
    guest_account_id = models.CharField(_("guest account"), max_length=50)
    display_name = models.CharField(_("display name"), max_length=200, blank=True)
    email = models.EmailField(_("email"), blank=True)
    linked_at = models.DateTimeField(_("linked at"), default=timezone.now)

    class Meta:
        verbose_name = _("linked account")
        verbose_name_plural = _("linked accounts")
        ordering = ["linked_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["group", "property_code", "guest_account_id"],
                name="ledgerman_unique_group_linked_account",
            ),
        ]
        indexes = [
            models.Index(fields=["property_code", "guest_account_id"], name="ledgerman_link_account_idx"),
        ]

    def __str__(self):
        return f"{self.guest_account_id}@{self.property_code}"
