"""Unit tests for src/timeline/registry.py"""
import pytest

from src.timeline.models import Mode
from src.timeline.probe import ProbeError
from src.timeline.registry import Timeline
from tests.conftest import fake_prober, make_config


@pytest.fixture
def durations():
    return {"a.mp3": 1200, "b.mp3": 3400, "c.mp3": 500, "d.mp3": 0}


@pytest.mark.unit
class TestOffsets:
    def test_first_clip_starts_at_zero(self, build_config, durations):
        tl = Timeline(prober=fake_prober(durations))
        meta = tl.register("/clips/a.mp3", build_config)
        assert meta.start_time == 0
        assert meta.duration == 1200

    def test_offsets_are_prefix_sums(self, build_config, durations):
        tl = Timeline(prober=fake_prober(durations))
        starts = [tl.register(f"/clips/{n}", build_config).start_time for n in ("a.mp3", "b.mp3", "c.mp3", "d.mp3")]
        assert starts == [0, 1200, 4600, 5100]
        assert tl.total_duration_ms == 5100

    def test_discovery_order_not_sorted(self, build_config, durations):
        tl = Timeline(prober=fake_prober(durations))
        for name in ("c.mp3", "a.mp3", "b.mp3"):
            tl.register(f"/clips/{name}", build_config)
        assert [c.display_name for c in tl] == ["c.mp3", "a.mp3", "b.mp3"]
        assert [c.start_offset_ms for c in tl] == [0, 500, 1700]

    def test_zero_length_clip_does_not_shift(self, build_config, durations):
        tl = Timeline(prober=fake_prober(durations))
        tl.register("/clips/d.mp3", build_config)
        assert tl.register("/clips/a.mp3", build_config).start_time == 0


@pytest.mark.unit
class TestIdempotentRegistration:
    def test_reregister_returns_same_position(self, build_config, durations):
        tl = Timeline(prober=fake_prober(durations))
        tl.register("/clips/a.mp3", build_config)
        first_b = tl.register("/clips/b.mp3", build_config)
        again_b = tl.register("/clips/b.mp3", build_config)
        assert again_b == first_b

    def test_reregister_leaves_count_and_offsets(self, build_config, durations):
        tl = Timeline(prober=fake_prober(durations))
        for name in ("a.mp3", "b.mp3"):
            tl.register(f"/clips/{name}", build_config)
        tl.register("/clips/a.mp3", build_config)
        c = tl.register("/clips/c.mp3", build_config)
        assert len(tl) == 3
        assert c.start_time == 4600
        assert tl.total_duration_ms == 5100

    def test_reregister_does_not_reprobe(self, build_config, durations):
        prober = fake_prober(durations)
        tl = Timeline(prober=prober)
        tl.register("/clips/a.mp3", build_config)
        tl.register("/clips/a.mp3", build_config)
        assert prober.calls == ["/clips/a.mp3"]


@pytest.mark.unit
class TestProbeFailure:
    def test_failure_propagates_and_nothing_appended(self, build_config, durations):
        def prober(path, config):
            if path.endswith("bad.mp3"):
                raise ProbeError(path, "no 'Duration:' found")
            return durations[path.rsplit("/", 1)[-1]]

        tl = Timeline(prober=prober)
        tl.register("/clips/a.mp3", build_config)
        with pytest.raises(ProbeError):
            tl.register("/clips/bad.mp3", build_config)
        assert len(tl) == 1
        assert "/clips/bad.mp3" not in tl
        assert tl.register("/clips/b.mp3", build_config).start_time == 1200


@pytest.mark.unit
class TestMetadata:
    def test_payload_uses_public_names(self, build_config, durations):
        tl = Timeline(prober=fake_prober(durations))
        payload = tl.register("/clips/a.mp3", build_config).to_payload()
        assert set(payload) == {"outputPaths", "filename", "startTime", "duration"}
        assert payload["filename"] == "a.mp3"

    def test_build_mode_points_at_published_urls(self, build_config, durations):
        tl = Timeline(prober=fake_prober(durations))
        meta = tl.register("/clips/a.mp3", build_config)
        assert meta.output_paths == ["/audio/merged-audio.mp3", "/audio/merged-audio.webm"]

    def test_interactive_mode_points_at_working_urls(self, interactive_config, durations):
        tl = Timeline(prober=fake_prober(durations))
        meta = tl.register("/clips/a.mp3", interactive_config)
        assert meta.output_paths == ["/temp/audio/merged-audio.mp3", "/temp/audio/merged-audio.webm"]

    def test_output_paths_follow_requested_types(self, tmp_path, durations):
        cfg = make_config(tmp_path, Mode.INTERACTIVE, output_types=["secondary"])
        tl = Timeline(prober=fake_prober(durations))
        assert tl.register("/clips/a.mp3", cfg).output_paths == ["/temp/audio/merged-audio.webm"]

    def test_windows_path_display_name(self, build_config):
        tl = Timeline(prober=lambda path, cfg: 10)
        assert tl.register("C:\\clips\\intro.mp3", build_config).filename == "intro.mp3"

    def test_paths_snapshot_is_a_copy(self, build_config, durations):
        tl = Timeline(prober=fake_prober(durations))
        tl.register("/clips/a.mp3", build_config)
        snapshot = tl.paths()
        tl.register("/clips/b.mp3", build_config)
        assert snapshot == ["/clips/a.mp3"]
