"""
Ledgerman signals — public event API.

Emitted by LoyaltyService after the mutation has been committed:
- points_earned:   sender=LoyaltyMembership, membership, points, entry
- points_redeemed: sender=LoyaltyMembership, membership, redemption
- points_adjusted: sender=LoyaltyMembership, membership, entry
- points_expired:  sender=LoyaltyMembership, membership, points
- tier_changed:    sender=LoyaltyMembership, membership, previous_tier, tier, upgraded
- account_linked:  sender=LoyaltyMembership, membership, linked_account
"""

from django.dispatch import Signal

points_earned = Signal()
points_redeemed = Signal()
points_adjusted = Signal()
points_expired = Signal()
tier_changed = Signal()
account_linked = Signal()
