"""PropertyGroup model — properties sharing one loyalty pool."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class PropertyGroup(models.Model):
    """Ownership group whose properties share a single point pool per guest email."""

    # Identification
    code = models.SlugField(_("code"), max_length=50, unique=True)
    name = models.CharField(_("name"), max_length=200)
    description = models.TextField(_("description"), blank=True)

    is_active = models.BooleanField(
        _("active"),
        default=True,
        help_text=_("Inactive groups stop pooling points; properties fall back to per-property memberships"),
    )

    # Extensible metadata
    metadata = models.JSONField(_("metadata"), default=dict, blank=True)

    # Audit
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("property group")
        verbose_name_plural = _("property groups")
        ordering = ["name"]

    def __str__(self):
        return self.name

    @classmethod
    def for_property(cls, property_code: str) -> "PropertyGroup | None":
        """Active group the property belongs to, if any."""
        return cls.objects.filter(
            properties__property_code=property_code,
            is_active=True,
        ).first()

    def add_property(self, property_code: str) -> "GroupedProperty":
        """Attach a property to this group (moves it if it was in another group)."""
        grouped, _ = GroupedProperty.objects.update_or_create(
            property_code=property_code,
            defaults={"group": self},
        )
        return grouped


class GroupedProperty(models.Model):
    """Membership of a property in a group. A property belongs to at most one group."""

    group = models.ForeignKey(
        PropertyGroup,
        on_delete=models.CASCADE,
        related_name="properties",
        verbose_name=_("group"),
    )
    property_code = models.CharField(_("property"), max_length=50, unique=True)
    joined_at = models.DateTimeField(_("joined at"), auto_now_add=True)

    class Meta:
        verbose_name = _("grouped property")
        verbose_name_plural = _("grouped properties")

    def __str__(self):
        return f"{self.property_code} @ {self.group.code}"
