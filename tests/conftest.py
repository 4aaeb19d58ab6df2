"""Pytest configuration and fixtures."""

import logging
import os
import random
from decimal import Decimal

import pytest

# Must be set before config.get_settings() is first called
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")
os.environ.setdefault("ENABLE_REQUEST_LOGGING", "false")

from models import Event, EventType  # noqa: E402


def build_event(type, client, tx, amount=None) -> Event:
    return Event(
        type=type,
        client=client,
        tx=tx,
        amount=Decimal(amount) if amount is not None else None
    )


def generate_events(seed: int, count: int = 1000, clients: int = 5):
    """Random event stream: mostly fresh ids, disputes aimed at earlier deposits,
    and the occasional reused transaction id."""
    rng = random.Random(seed)
    events = [build_event("deposit", 0, 0, rng.randrange(1000))]
    deposits = [(0, 0)]

    for tx in range(1, count + 1):
        event_type = rng.choice(list(EventType))
        if event_type.carries_amount:
            client = rng.randrange(clients)
            amount = Decimal(rng.randrange(100000)) / 100
            event_id = rng.randrange(tx) if rng.random() < 0.02 else tx
            if event_type == EventType.deposit:
                deposits.append((client, event_id))
            events.append(build_event(event_type, client, event_id, amount))
        else:
            client, event_id = rng.choice(deposits)
            events.append(build_event(event_type, client, event_id))

    return events


@pytest.fixture
def make_event():
    """Factory for validated events."""
    return build_event


@pytest.fixture
def random_events():
    """Factory for reproducible random event streams."""
    return generate_events


@pytest.fixture(autouse=True)
def reset_logging_handlers():
    """Drop handlers bound to per-test capture streams."""
    yield
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
