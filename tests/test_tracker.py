import asyncio

import pytest

from conftest import make_sample

from airfieldwatch.domain import ErrorKind, FlightPhase
from airfieldwatch.models import Notice, NoticeAlertEvent, PhaseTransitionEvent
from airfieldwatch.services.event_bus import EventBus
from airfieldwatch.services.notices import NoticeCorrelator, StaticNoticeSource
from airfieldwatch.services.runways import DEFAULT_RUNWAYS
from airfieldwatch.services.tracker import AirportTracker, parse_position_sample


def _tracker(airport, notices=None):
    bus = EventBus()
    events = []
    bus.subscribe(None, events.append)
    return AirportTracker(airport, DEFAULT_RUNWAYS, bus, notices=notices), events


@pytest.mark.anyio
async def test_first_sighting_emits_no_transition(airport):
    tracker, events = _tracker(airport)

    update = await tracker.process_update(make_sample(km_north=20, altitude=4000))

    assert update.first_seen
    assert update.transition is None
    assert events == []
    assert tracker.get_tracked("4ca1b2").phase is FlightPhase.EN_ROUTE


@pytest.mark.anyio
async def test_phase_change_publishes_transition(airport):
    tracker, events = _tracker(airport)

    await tracker.process_update(make_sample(km_north=20, altitude=4000, squawk="7700"))
    update = await tracker.process_update(make_sample(km_north=15, altitude=2500, squawk="7700"))

    assert len(events) == 1
    event = events[0]
    assert isinstance(event, PhaseTransitionEvent)
    assert event is update.transition
    assert event.event_type is FlightPhase.APPROACH
    assert event.snapshot.previous_phase is FlightPhase.EN_ROUTE
    assert event.snapshot.runway_id == "12"
    assert event.snapshot.emergency == "emergency"
    assert event.snapshot.airport.code == "EGPK"
    assert event.snapshot.distance_m == pytest.approx(15_000, rel=0.01)

    stats = tracker.get_stats()
    assert stats.phase_counts["approach"] == 1
    assert stats.tracked_aircraft == 1
    assert stats.last_update is not None


@pytest.mark.anyio
async def test_same_phase_does_not_repeat_event(airport):
    tracker, events = _tracker(airport)

    for km in (20, 18, 16):
        await tracker.process_update(make_sample(km_north=km, altitude=2500))

    assert events == []


@pytest.mark.anyio
async def test_leaving_radius_evicts(airport):
    tracker, _ = _tracker(airport)

    await tracker.process_update(make_sample(km_north=40, altitude=2500))
    update = await tracker.process_update(make_sample(km_north=60, altitude=2500))
    never = await tracker.process_update(make_sample("ABCDEF", km_north=80))

    assert update.evicted
    assert not update.tracked
    assert tracker.list_tracked() == []
    assert not never.evicted


@pytest.mark.anyio
async def test_updates_for_one_aircraft_are_serialized(airport):
    observed = []

    class SlowSource:
        async def get_active(self):
            observed.append(tracker.get_tracked("4CA1B2").phase)
            await asyncio.sleep(0.01)
            return []

    correlator = NoticeCorrelator(SlowSource(), airport.reference)
    tracker, events = _tracker(airport, notices=correlator)
    await tracker.process_update(make_sample(km_north=20, altitude=4000))

    await asyncio.gather(
        tracker.process_update(make_sample(km_north=15, altitude=2500)),
        tracker.process_update(make_sample(km_north=2, altitude=300)),
    )

    assert observed == [FlightPhase.APPROACH, FlightPhase.LANDING]
    assert [e.event_type for e in events] == [FlightPhase.APPROACH, FlightPhase.LANDING]
    assert events[1].snapshot.previous_phase is FlightPhase.APPROACH


@pytest.mark.anyio
async def test_transition_alerts_are_published(airport):
    notice = Notice.model_validate(
        {"id": "RWY", "category": "runway", "priority": "high", "position": {"lat": 55.51, "lon": -4.59}}
    )
    correlator = NoticeCorrelator(StaticNoticeSource([notice]), airport.reference)
    tracker, events = _tracker(airport, notices=correlator)

    await tracker.process_update(make_sample(km_north=20, altitude=4000))
    update = await tracker.process_update(make_sample(km_north=10, altitude=2000))

    alerts = [e for e in events if isinstance(e, NoticeAlertEvent)]
    assert len(update.alerts) == 1
    assert alerts[0].transition_id == update.transition.id
    assert tracker.get_stats().notam_alerts == 1


@pytest.mark.anyio
async def test_history_is_newest_first_and_clearable(airport):
    tracker, _ = _tracker(airport)
    await tracker.process_update(make_sample(km_north=20, altitude=4000))
    await tracker.process_update(make_sample("ABCDEF", km_north=5, altitude=2000))

    history = tracker.recent_history()

    assert [entry.icao24 for entry in history] == ["ABCDEF", "4CA1B2"]
    assert [entry.icao24 for entry in tracker.recent_history("abcdef")] == ["ABCDEF"]
    tracker.clear_history()
    assert tracker.recent_history() == []


def test_invalid_sample_is_rejected():
    result = parse_position_sample({"icao24": "4CA1B2", "altitude": 2000})

    assert result.error is ErrorKind.INVALID
    assert not result.ok


def test_raw_sample_aliases_are_accepted():
    result = parse_position_sample(
        {"icao24": "4ca1b2", "latitude": 55.5, "longitude": -4.6, "altitude": 1200, "track": 300, "squawk": 7700}
    )

    assert result.ok
    sample = result.value
    assert sample.icao24 == "4CA1B2"
    assert sample.heading_deg == 300
    assert sample.squawk == "7700"
    assert sample.timestamp.tzinfo is not None


def test_reset_stats(airport):
    tracker, _ = _tracker(airport)
    tracker.reject("missing lat")

    tracker.reset_stats()

    assert tracker.get_stats().rejected_samples == 0
    assert all(count == 0 for count in tracker.get_stats().phase_counts.values())
