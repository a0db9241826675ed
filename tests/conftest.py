"""Shared test fixtures and helpers."""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from inquiry_engine.automation.catalog import SequenceCatalog
from inquiry_engine.automation.sequencer import EmailAutomationSequencer
from inquiry_engine.automation.store import InMemorySequenceStore
from inquiry_engine.automation.transport import OutboxTransport
from inquiry_engine.clock import ManualClock, Scheduler
from inquiry_engine.config import (
    AppConfig,
    AutomationConfig,
    BrandConfig,
    ConsultationConfig,
    JourneyConfig,
    PricingConfig,
)
from inquiry_engine.inquiry.engine import InquiryPricingEngine
from inquiry_engine.journey.tracker import JourneyTracker

START = datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc)


def make_config(**sections) -> AppConfig:
    """AppConfig with fixed defaults (independent of the environment) plus overrides.

    Keyword arguments are per-section overrides, e.g.
    ``make_config(pricing={"history_limit": 3}, automation={"enabled": False})``.
    """
    config = AppConfig(
        pricing=PricingConfig(
            currency="AUD",
            history_limit=5,
            track_history=True,
            max_range_spread=0.5,
            context_confidence_threshold=0.6,
            performance_valid_days=30,
            collaboration_valid_days=14,
        ),
        consultation=ConsultationConfig(enabled=True, settle_delay_seconds=1.0, default_time="14:00"),
        automation=AutomationConfig(enabled=True, debug_mode=False),
        journey=JourneyConfig(
            max_dwell_seconds=300,
            dwell_saturation_seconds=600,
            min_interest_share=0.3,
            site_host="rrishmusic.com",
        ),
        brand=BrandConfig(artist_name="Rrish", site_url="https://www.rrishmusic.com"),
        log_level="INFO",
    )
    updates = {name: replace(getattr(config, name), **values) for name, values in sections.items()}
    return replace(config, **updates)


def make_performance_data(**overrides) -> dict:
    """The band wedding inquiry used throughout the pricing tests."""
    data = {
        "performance_format": "band",
        "performance_style": "acoustic",
        "event_type": "wedding",
        "duration": "4 hours",
        "budget_range": "2000-4000",
    }
    data.update(overrides)
    return data


def make_collaboration_data(**overrides) -> dict:
    data = {
        "project_type": "studio",
        "project_scope": "short-term",
        "timeline": "specific-date",
        "experience": "some-experience",
        "creative_vision": "Record and produce a four-track acoustic EP with layered guitars",
        "budget_range": "1000-3000",
    }
    data.update(overrides)
    return data


def make_contact_form(**overrides) -> dict:
    data = {"name": "Emma", "email": "emma@example.com", "serviceType": "teaching"}
    data.update(overrides)
    return data


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def scheduler(clock):
    return Scheduler(clock)


@pytest.fixture
def tracker(config, clock):
    return JourneyTracker(config=config, clock=clock)


@pytest.fixture
def engine(config, clock, scheduler):
    engine = InquiryPricingEngine(config=config, clock=clock, scheduler=scheduler)
    yield engine
    engine.dispose()


@pytest.fixture
def store():
    return InMemorySequenceStore()


@pytest.fixture
def transport():
    return OutboxTransport()


@pytest.fixture
def catalog():
    return SequenceCatalog()


@pytest.fixture
def sequencer(config, catalog, store, transport, clock):
    return EmailAutomationSequencer(
        config=config, catalog=catalog, store=store, transport=transport, clock=clock
    )
