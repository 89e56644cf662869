"""Ledgerman admin.

Balances are read-only here: every points movement goes through
LoyaltyService so the ledger and the membership stay consistent.
"""

from django.contrib import admin
from django.utils.html import format_html

from ledgerman.models import (
    GroupedProperty,
    LinkedAccount,
    LoyaltyMembership,
    LoyaltyProgram,
    PointsEntry,
    PropertyGroup,
    Redemption,
    TierChange,
)


TIER_COLORS = {
    "bronze": "#cd7f32",
    "silver": "#c0c0c0",
    "gold": "#ffd700",
    "platinum": "#e5e4e2",
}


class ReadOnlyInline(admin.TabularInline):
    extra = 0

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# PropertyGroup Admin
# ===========================================


class GroupedPropertyInline(admin.TabularInline):
    model = GroupedProperty
    extra = 0
    fields = ["property_code", "joined_at"]
    readonly_fields = ["joined_at"]


@admin.register(PropertyGroup)
class PropertyGroupAdmin(admin.ModelAdmin):
    list_display = ["code", "name", "is_active", "property_count", "membership_count"]
    list_filter = ["is_active"]
    search_fields = ["code", "name", "properties__property_code"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [GroupedPropertyInline]

    def property_count(self, obj):
        return obj.properties.count()

    property_count.short_description = "Properties"

    def membership_count(self, obj):
        return obj.memberships.count()

    membership_count.short_description = "Memberships"


# ===========================================
# LoyaltyMembership Admin
# ===========================================


class PointsEntryInline(ReadOnlyInline):
    model = PointsEntry
    fk_name = "membership"
    fields = ["created_at", "entry_type", "points", "available_after", "description", "expires_at", "is_expired"]
    readonly_fields = fields
    ordering = ["-created_at", "-id"]
    max_num = 20
    verbose_name_plural = "Points history (latest 20)"


class RedemptionInline(ReadOnlyInline):
    model = Redemption
    fields = ["redeemed_at", "reward_name", "points", "value", "status", "source_ref"]
    readonly_fields = fields


class TierChangeInline(ReadOnlyInline):
    model = TierChange
    fields = ["changed_at", "previous_tier", "tier", "reason"]
    readonly_fields = fields


class LinkedAccountInline(ReadOnlyInline):
    model = LinkedAccount
    fields = ["property_code", "guest_account_id", "display_name", "email", "linked_at"]
    readonly_fields = fields


@admin.register(LoyaltyMembership)
class LoyaltyMembershipAdmin(admin.ModelAdmin):
    list_display = [
        "guest_code",
        "property_code",
        "group",
        "tier_badge",
        "available_points",
        "tier_points",
        "progress",
        "is_active",
        "last_activity_at",
    ]
    list_filter = ["tier", "is_active", "group"]
    search_fields = ["guest_code", "property_code", "guest_email", "linked_accounts__guest_account_id"]
    raw_id_fields = ["group"]
    readonly_fields = [
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
        "joined_at",
        "last_activity_at",
        "updated_at",
        "version",
    ]
    inlines = [PointsEntryInline, RedemptionInline, TierChangeInline, LinkedAccountInline]

    fieldsets = [
        ("Identification", {"fields": ["guest_code", "property_code", "group", "guest_email"]}),
        (
            "Balances",
            {"fields": ["tier", "tier_points", "available_points", "total_points"]},
        ),
        (
            "Tier progress",
            {"fields": ["next_tier", "points_to_next_tier", "progress_percentage"]},
        ),
        (
            "Lifetime",
            {
                "fields": [
                    "lifetime_spending",
                    "lifetime_points_earned",
                    "lifetime_points_redeemed",
                    "total_nights_stayed",
                ]
            },
        ),
        (
            "System",
            {
                "fields": ["is_active", "joined_at", "last_activity_at", "updated_at", "version"],
                "classes": ["collapse"],
            },
        ),
    ]

    def tier_badge(self, obj):
        color = TIER_COLORS.get(obj.tier, "#6c757d")
        text_color = "#000" if obj.tier in ("gold", "silver", "platinum") else "#fff"
        return format_html(
            '<span style="background:{}; color:{}; padding:2px 8px; '
            'border-radius:3px; font-size:11px;">{}</span>',
            color,
            text_color,
            obj.get_tier_display(),
        )

    tier_badge.short_description = "Tier"

    def progress(self, obj):
        if obj.next_tier is None:
            return "Top tier"
        return f"{obj.progress_percentage:.0f}% to {obj.get_next_tier_display()}"

    progress.short_description = "Progress"


# ===========================================
# PointsEntry Admin
# ===========================================


@admin.register(PointsEntry)
class PointsEntryAdmin(admin.ModelAdmin):
    list_display = [
        "created_at",
        "membership_link",
        "entry_type",
        "points_display",
        "available_after",
        "description",
        "is_expired",
    ]
    list_filter = ["entry_type", "is_expired", "adjustment_scope"]
    search_fields = ["membership__guest_code", "membership__guest_email", "description", "source_ref"]
    readonly_fields = [
        "membership",
        "entry_type",
        "points",
        "available_after",
        "description",
        "source_ref",
        "earned_at_property",
        "adjustment_kind",
        "adjustment_scope",
        "admin_note",
        "expires_at",
        "is_expired",
        "lot",
        "created_at",
    ]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def membership_link(self, obj):
        from django.urls import reverse

        url = reverse("admin:ledgerman_loyaltymembership_change", args=[obj.membership_id])
        return format_html('<a href="{}">{}</a>', url, obj.membership.guest_code)

    membership_link.short_description = "Membership"

    def points_display(self, obj):
        if obj.points > 0:
            return format_html('<span style="color:green">+{}</span>', obj.points)
        return format_html('<span style="color:red">{}</span>', obj.points)

    points_display.short_description = "Points"


# ===========================================
# LoyaltyProgram Admin
# ===========================================


@admin.register(LoyaltyProgram)
class LoyaltyProgramAdmin(admin.ModelAdmin):
    list_display = [
        "property_code",
        "name",
        "points_per_currency",
        "points_per_night",
        "expiration_months",
        "is_active",
    ]
    list_filter = ["is_active"]
    search_fields = ["property_code", "name"]
    readonly_fields = ["created_at", "updated_at"]

    fieldsets = [
        (None, {"fields": ["property_code", "name", "is_active"]}),
        (
            "Earning",
            {"fields": ["points_per_currency", "points_per_night", "service_multipliers", "expiration_months"]},
        ),
        ("Tiers", {"fields": ["tier_configuration"]}),
        ("Timestamps", {"fields": ["created_at", "updated_at"], "classes": ["collapse"]}),
    ]
