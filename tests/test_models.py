from decimal import Decimal

import pytest
from pydantic import ValidationError

from models import AccountSnapshot, Event, EventType, MAX_CLIENT_ID, MAX_EVENT_ID


class TestEventValidation:
    """Test event validation."""

    def test_deposit_with_amount(self):
        event = Event(type="deposit", client=1, tx=1, amount="1.2345")

        assert event.type == EventType.deposit
        assert event.amount == Decimal("1.2345")

    def test_type_is_normalized(self):
        event = Event(type=" Withdrawal ", client="2", tx="3", amount=" 4.5 ")

        assert event.type == EventType.withdrawal
        assert event.client == 2
        assert event.tx == 3
        assert event.amount == Decimal("4.5")

    @pytest.mark.parametrize("event_type", ["deposit", "withdrawal"])
    def test_amount_required_for_money_movement(self, event_type):
        with pytest.raises(ValidationError, match="Amount is required"):
            Event(type=event_type, client=1, tx=1)

    def test_blank_amount_counts_as_missing(self):
        with pytest.raises(ValidationError):
            Event(type="deposit", client=1, tx=1, amount="  ")

    @pytest.mark.parametrize("event_type", ["dispute", "resolve", "chargeback"])
    def test_reference_events_drop_amount(self, event_type):
        event = Event(type=event_type, client=1, tx=1, amount="5.00")

        assert event.amount is None

    def test_reference_event_with_blank_amount(self):
        event = Event(type="dispute", client=1, tx=1, amount="")

        assert event.amount is None

    def test_more_than_four_decimal_places_rejected(self):
        with pytest.raises(ValidationError):
            Event(type="deposit", client=1, tx=1, amount="1.23456")

    def test_amount_at_digit_limit_accepted(self):
        event = Event(type="deposit", client=1, tx=1, amount="999999999999999999999999.9999")

        assert event.amount == Decimal("999999999999999999999999.9999")

    @pytest.mark.parametrize("amount", [
        "9999999999999999999999999.9999",
        "99999999999999999999999999.9999",
        "1" + "0" * 28,
    ])
    def test_amount_beyond_digit_limit_rejected(self, amount):
        with pytest.raises(ValidationError):
            Event(type="deposit", client=1, tx=1, amount=amount)

    def test_negative_amount_passes_validation(self):
        """Negative amounts are left for the account to ignore."""
        event = Event(type="deposit", client=1, tx=1, amount="-1")

        assert event.amount == Decimal("-1")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            Event(type="transfer", client=1, tx=1, amount="1")

    @pytest.mark.parametrize("client", [-1, MAX_CLIENT_ID + 1])
    def test_client_out_of_range(self, client):
        with pytest.raises(ValidationError):
            Event(type="dispute", client=client, tx=1)

    @pytest.mark.parametrize("tx", [-1, MAX_EVENT_ID + 1])
    def test_tx_out_of_range(self, tx):
        with pytest.raises(ValidationError):
            Event(type="dispute", client=1, tx=tx)

    def test_id_bounds_accepted(self):
        event = Event(type="dispute", client=MAX_CLIENT_ID, tx=MAX_EVENT_ID)

        assert (event.client, event.tx) == (65535, 4294967295)

    def test_event_is_frozen(self):
        event = Event(type="deposit", client=1, tx=1, amount="1")

        with pytest.raises(ValidationError):
            event.amount = Decimal("100")


class TestEventType:
    """Test event type helpers."""

    def test_carries_amount(self):
        assert EventType.deposit.carries_amount
        assert EventType.withdrawal.carries_amount
        assert not EventType.dispute.carries_amount
        assert not EventType.resolve.carries_amount
        assert not EventType.chargeback.carries_amount


class TestAccountSnapshot:
    """Test snapshot values."""

    def test_equal_snapshots_hash_equal(self):
        a = AccountSnapshot(client=1, available=Decimal("1.50"), held=Decimal(0), total=Decimal("1.50"), locked=False)
        b = AccountSnapshot(client=1, available=Decimal("1.5"), held=Decimal("0.0"), total=Decimal("1.5"), locked=False)

        assert a == b
        assert len({a, b}) == 1

    def test_json_keeps_natural_precision(self):
        snapshot = AccountSnapshot(
            client=1,
            available=Decimal("1.2345"),
            held=Decimal("0"),
            total=Decimal("1.2345"),
            locked=True
        )

        data = snapshot.model_dump(mode="json")

        assert data == {
            "client": 1,
            "available": "1.2345",
            "held": "0",
            "total": "1.2345",
            "locked": True,
        }
