"""Tests for orthohr.analytics.orthostatic -- standing episodes and events."""

import pytest

from orthohr.analytics.orthostatic import (
    ElevationPhase,
    HeartRatePoint,
    OrthostaticTracker,
    Severity,
    classify_severity,
)
from orthohr.config import TrackerConfig

from tests.conftest import feed, make_event, standing_tracker


class TestSeverity:
    @pytest.mark.parametrize("increase,expected", [
        (0, Severity.NORMAL),
        (29, Severity.NORMAL),
        (30, Severity.MILD),
        (39, Severity.MILD),
        (40, Severity.MODERATE),
        (49, Severity.MODERATE),
        (50, Severity.SEVERE),
        (80, Severity.SEVERE),
    ])
    def test_base_tiers(self, increase, expected):
        assert classify_severity(increase, 60.0) == expected

    def test_ten_minutes_sustained_is_severe(self):
        assert classify_severity(31, 600.0) == Severity.SEVERE

    def test_ten_minutes_below_threshold_stays_normal(self):
        assert classify_severity(25, 900.0) == Severity.NORMAL

    def test_three_minutes_lifts_mild(self):
        assert classify_severity(35, 180.0) == Severity.MODERATE
        assert classify_severity(35, 179.0) == Severity.MILD

    def test_three_minutes_leaves_moderate_and_severe(self):
        assert classify_severity(45, 200.0) == Severity.MODERATE
        assert classify_severity(55, 200.0) == Severity.SEVERE

    def test_severity_is_pure(self):
        event = make_event(increase=38, sustained=240.0)
        assert event.severity == event.severity == Severity.MODERATE

    def test_labels(self):
        assert Severity.SEVERE.label == "Significant Response"
        assert Severity.MILD.color == "yellow"


class TestEventText:
    def test_description_not_recovered(self):
        event = make_event(increase=35, sustained=120.0)
        assert event.description == "Standing: +35 BPM (70→105) (sustained 2 min), not recovered"

    def test_description_recovered(self):
        event = make_event(increase=35, sustained=45.0, recovery_time=40.0, is_recovered=True)
        assert event.description == "Standing: +35 BPM (70→105), recovered in 40s"

    def test_clinical_summary_sustained(self):
        event = make_event(increase=32, sustained=700.0)
        assert event.clinical_summary == "Peak: +32 BPM, Sustained: 700s [Sustained Response]"

    def test_to_dict(self):
        event = make_event(increase=40)
        d = event.to_dict()
        assert d["severity"] == "moderate"
        assert d["heart_rate_pattern"] == []


class TestGuards:
    def test_no_episode_no_evaluation(self):
        tracker = OrthostaticTracker()
        assert tracker.update(150, 20.0) is None
        assert tracker.end_standing(30.0) is None

    def test_settle_time(self):
        tracker = standing_tracker(70)
        tracker.update(120, 9.9)
        assert tracker.episode.phase == ElevationPhase.NONE
        assert tracker.episode.pattern == []

    def test_zero_baseline_disables_events(self):
        tracker = standing_tracker(0)
        updates = feed(tracker, [(15.0, 130), (60.0, 135), (120.0, 80)])
        assert updates == []
        assert tracker.end_standing(130.0) is None
        assert len(tracker.events) == 0

    def test_invalid_rate_ignored(self):
        tracker = standing_tracker(70)
        assert tracker.update(0, 20.0) is None
        assert tracker.update(-5, 21.0) is None
        assert tracker.episode.pattern == []


class TestElevation:
    def test_elevation_starts_at_threshold(self):
        tracker = standing_tracker(70)
        tracker.update(99, 10.0)
        assert not tracker.episode.is_elevated
        tracker.update(100, 11.0)
        assert tracker.episode.is_elevated
        assert tracker.episode.elevation_started_at == 11.0

    def test_29_seconds_no_event(self):
        tracker = standing_tracker(70)
        updates = feed(tracker, [(10.0, 100), (25.0, 110), (39.0, 80)])
        assert updates == []
        assert len(tracker.events) == 0
        assert tracker.episode.phase == ElevationPhase.RECOVERING

    def test_30_seconds_creates_event(self):
        tracker = standing_tracker(70)
        updates = feed(tracker, [(10.0, 100), (25.0, 110), (40.0, 80)])
        assert len(updates) == 1
        event = updates[0].event
        assert updates[0].kind == "created"
        assert event.sustained_duration == pytest.approx(30.0)
        assert event.peak_heart_rate == 110
        assert event.increase == 40
        assert event.timestamp == pytest.approx(10.0)
        assert event.duration == pytest.approx(40.0)
        assert event.recovery_time is None
        assert not event.is_recovered

    def test_peak_is_maximum_not_latest(self):
        tracker = standing_tracker(70)
        updates = feed(tracker, [(10.0, 120), (30.0, 130), (50.0, 105), (60.0, 90)])
        assert updates[0].event.peak_heart_rate == 130

    def test_pattern_window_drops_old_points(self):
        tracker = standing_tracker(70, at=0.0)
        feed(tracker, [(10.0, 150), (300.0, 110), (700.0, 105)])
        times = [p.seconds_since_standing for p in tracker.episode.pattern]
        assert times == [300.0, 700.0]

    def test_peak_limited_to_window(self):
        tracker = standing_tracker(70, at=0.0)
        updates = feed(tracker, [(10.0, 150), (300.0, 110), (700.0, 105), (710.0, 80)])
        # The 150 BPM point fell out of the 600 s window
        assert updates[0].event.peak_heart_rate == 110

    def test_pattern_snapshot_is_immutable(self):
        tracker = standing_tracker(70)
        updates = feed(tracker, [(10.0, 110), (45.0, 85)])
        event = updates[0].event
        tracker.update(86, 50.0)
        assert event.heart_rate_pattern == (
            HeartRatePoint(110, 10.0),
            HeartRatePoint(85, 45.0),
        )

    def test_re_elevation_clears_recovery(self):
        tracker = standing_tracker(70)
        feed(tracker, [(10.0, 110), (45.0, 78), (50.0, 110)])
        ep = tracker.episode
        assert ep.is_elevated
        assert ep.recovery_started_at is None
        assert ep.near_baseline_since is None
        assert not ep.has_recovered


class TestRecovery:
    def test_recovery_amends_once(self):
        tracker = standing_tracker(70)
        updates = feed(tracker, [(10.0, 110), (45.0, 78), (60.0, 76), (75.0, 75)])
        assert [u.kind for u in updates] == ["created", "amended"]
        amended = updates[1].event
        assert amended.is_recovered
        assert amended.recovery_time == pytest.approx(30.0)
        assert tracker.events.last is amended
        assert tracker.episode.phase == ElevationPhase.RECOVERED

    def test_amendment_is_single_shot(self):
        tracker = standing_tracker(70)
        feed(tracker, [(10.0, 110), (45.0, 78), (75.0, 75)])
        recovery = tracker.events.last.recovery_time
        more = feed(tracker, [(90.0, 74), (200.0, 72), (400.0, 71)])
        assert more == []
        assert tracker.events.last.recovery_time == recovery

    def test_recovery_clock_restarts_above_margin(self):
        tracker = standing_tracker(70)
        updates = feed(tracker, [
            (10.0, 110), (45.0, 78),  # event; near baseline from 45
            (60.0, 90),               # +20 breaks the hold
            (70.0, 78), (95.0, 77), (100.0, 76),
        ])
        assert [u.kind for u in updates] == ["created", "amended"]
        assert updates[1].event.recovery_time == pytest.approx(30.0)

    def test_recovery_between_margin_and_threshold_not_counted(self):
        tracker = standing_tracker(70)
        updates = feed(tracker, [(10.0, 110), (45.0, 95), (100.0, 92), (200.0, 95)])
        assert [u.kind for u in updates] == ["created"]
        assert tracker.episode.phase == ElevationPhase.RECOVERING

    def test_brief_elevation_recovery_does_not_amend_older_event(self):
        tracker = standing_tracker(70)
        feed(tracker, [(10.0, 110), (45.0, 78), (75.0, 75)])
        first = tracker.events.last

        tracker.begin_standing(70, 100.0)
        updates = feed(tracker, [(110.0, 110), (120.0, 75), (160.0, 74)])
        assert updates == []
        assert tracker.events.last is first


class TestEpisodeEnd:
    def test_sitting_while_elevated_emits_event(self):
        tracker = standing_tracker(70)
        feed(tracker, [(10.0, 105), (50.0, 112)])
        update = tracker.end_standing(100.0)
        assert update.kind == "created"
        assert update.event.sustained_duration == pytest.approx(90.0)
        assert update.event.duration == pytest.approx(100.0)
        assert not update.event.is_recovered
        assert tracker.episode is None

    def test_sitting_after_brief_elevation_no_event(self):
        tracker = standing_tracker(70)
        feed(tracker, [(10.0, 105)])
        assert tracker.end_standing(20.0) is None
        assert len(tracker.events) == 0

    def test_sitting_while_recovering_no_new_event(self):
        tracker = standing_tracker(70)
        feed(tracker, [(10.0, 110), (45.0, 78)])
        assert tracker.end_standing(50.0) is None
        assert len(tracker.events) == 1

    def test_new_episode_resets_state(self):
        tracker = standing_tracker(70)
        feed(tracker, [(10.0, 110)])
        tracker.begin_standing(80, 30.0)
        ep = tracker.episode
        assert ep.baseline_rate == 80
        assert ep.phase == ElevationPhase.NONE
        assert ep.pattern == []
        assert ep.elevation_started_at is None


class TestEventLog:
    def test_capped_at_twenty(self):
        tracker = OrthostaticTracker()
        first_ids = []
        for i in range(21):
            start = i * 1000.0
            tracker.begin_standing(70, start)
            update = tracker.update(110, start + 10.0)
            assert update is None
            update = tracker.end_standing(start + 50.0)
            first_ids.append(update.event.id)
        assert len(tracker.events) == 20
        ids = [e.id for e in tracker.events]
        assert ids == first_ids[1:]

    def test_custom_capacity(self):
        tracker = OrthostaticTracker(TrackerConfig(max_events=2))
        for i in range(3):
            tracker.begin_standing(70, i * 100.0)
            tracker.update(110, i * 100.0 + 10.0)
            tracker.end_standing(i * 100.0 + 60.0)
        assert len(tracker.events) == 2


class TestEndToEndScenario:
    def test_long_episode_with_recovery(self):
        tracker = standing_tracker(70, at=0.0)
        updates = {}
        for t, bpm in [(12.0, 95), (35.0, 105), (600.0, 108), (960.0, 102),
                       (965.0, 98), (1010.0, 78), (1045.0, 76)]:
            u = tracker.update(bpm, t)
            if u is not None:
                updates[t] = u

            if t == 12.0:
                assert not tracker.episode.is_elevated
            if t == 35.0:
                assert tracker.episode.is_elevated

        created = updates[965.0]
        assert created.kind == "created"
        assert created.event.sustained_duration == pytest.approx(930.0)
        assert created.event.peak_heart_rate == 108
        assert created.event.increase == 38
        assert created.event.severity == Severity.SEVERE
        assert not created.event.is_recovered

        assert 1010.0 not in updates
        amended = updates[1045.0]
        assert amended.kind == "amended"
        assert amended.event.recovery_time == pytest.approx(35.0)
        assert amended.event.is_recovered
        assert amended.event.id == created.event.id
