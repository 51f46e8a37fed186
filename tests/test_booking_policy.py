"""
Unit tests for the booking policy
"""
import pytest

from lash_studio.core.booking_policy import BookingPolicy, get_booking_policy
from lash_studio.models.models import Appointment


@pytest.fixture
def policy():
    return BookingPolicy(
        locations=["Location A", "Location B"],
        deposit_categories=["lashes"],
        deposit_locations=["Location B"],
        deposit_amount=3000,
        category_order=["lashes", "eyebrows", "hair-removal"],
        cancellation_contact_url="https://wa.me/5500000000000",
    )


@pytest.mark.unit
class TestDepositRule:

    def test_deposit_for_lashes_at_deposit_location(self, policy):
        assert policy.requires_deposit(["lashes"], "Location B") is True

    def test_any_matching_category_is_enough(self, policy):
        assert policy.requires_deposit(["eyebrows", "lashes"], "Location B") is True

    def test_no_deposit_at_other_location(self, policy):
        assert policy.requires_deposit(["lashes"], "Location A") is False

    def test_no_deposit_for_other_categories(self, policy):
        assert policy.requires_deposit(["eyebrows", "hair-removal"], "Location B") is False

    def test_comparison_ignores_case_and_spaces(self, policy):
        assert policy.requires_deposit([" Lashes "], "location b") is True

    def test_remaining_balance(self, policy):
        assert policy.remaining_balance(5000) == 2000
        assert policy.remaining_balance(2500) == 0

    def test_cancellation_blocked_for_deposit_pair(self, policy):
        appointment = Appointment(service_categories="eyebrows,lashes", location="Location B")
        assert policy.blocks_cancellation(appointment) is True

    def test_cancellation_allowed_otherwise(self, policy):
        appointment = Appointment(service_categories="lashes", location="Location A")
        assert policy.blocks_cancellation(appointment) is False


@pytest.mark.unit
class TestPolicyLookups:

    def test_resolve_location_returns_configured_spelling(self, policy):
        assert policy.resolve_location("location a") == "Location A"
        assert policy.resolve_location("Somewhere") is None
        assert policy.resolve_location(None) is None

    def test_category_rank_orders_preferred_first(self, policy):
        categories = ["nails", "eyebrows", "brows-tint", "lashes", "hair-removal"]
        ordered = sorted(categories, key=policy.category_rank)
        assert ordered == ["lashes", "eyebrows", "hair-removal", "brows-tint", "nails"]

    def test_lunch_break_parsed(self, policy):
        start, end = policy.lunch_break
        assert (start.hour, start.minute) == (12, 0)
        assert (end.hour, end.minute) == (13, 59)

    def test_policy_from_settings(self):
        policy = get_booking_policy()
        assert policy.deposit_amount == 3000
        assert policy.max_services == 3
        assert policy.lead_time_hours == 24
