# Copyright (c) 2026 Signer — MIT License

"""Tests for the session controller and local store."""

import json

import pytest

import codec
from ceremony import Config, TickResult
from conftest import FailingStore, MemoryStore, run_loop
from session import LocalStore, PatternRejected, Session, sanitize_pattern


@pytest.fixture
def make_session(qapp):
    sessions = []

    def make(store=None, link="", lexicon=("alpha", "beta", "gamma")):
        s = Session(store if store is not None else MemoryStore(), link=link, lexicon=lexicon)
        sessions.append(s)
        return s
    yield make
    for s in sessions:
        s.close()


class TestLoad:
    def test_defaults(self, make_session):
        s = make_session()
        assert s.source == "defaults"
        assert s.config == Config()

    def test_store_used_without_link(self, make_session):
        s = make_session(MemoryStore({"rate": 9, "patterns": ["77"]}))
        assert s.source == "store"
        assert s.config == Config(rate=9, patterns=["77"])

    def test_link_wins_over_store(self, make_session):
        s = make_session(MemoryStore({"rate": 9, "log": [1]}), link="?w=4")
        assert s.source == "link"
        assert s.config == Config(channels=4)

    def test_link_without_known_fields_falls_back(self, make_session):
        s = make_session(MemoryStore({"rate": 9}), link="?utm=x")
        assert s.source == "store"
        assert s.config.rate == 9

    def test_link_with_only_unparseable_values_falls_back(self, make_session):
        s = make_session(MemoryStore({"rate": 9, "log": [2]}), link="h=abc")
        assert s.source == "store"
        assert s.config == Config(rate=9, log=[2])

    def test_out_of_range_values_clamped(self, make_session):
        s = make_session(link="h=99&a=2&w=0")
        assert (s.config.rate, s.config.length, s.config.channels) == (30, 6, 1)

    def test_persists_on_startup(self, make_session):
        store = MemoryStore()
        s = make_session(store, link="h=4")
        assert store.saves[-1] == s.config
        assert s.link == "h=4&a=10&w=1&f=528"


class TestMutations:
    def test_every_change_persists(self, make_session):
        store = MemoryStore()
        s = make_session(store)
        before = len(store.saves)
        s.set_length(12)
        s.set_channels(3)
        s.set_rate(7)
        s.add_pattern("41")
        s.remove_pattern(0)
        s.clear_log()
        assert len(store.saves) == before + 6
        assert store.saves[-1] == Config(rate=7, length=12, channels=3, patterns=["41"])
        assert codec.decode(s.link) == {"rate": 7, "length": 12, "channels": 3, "patterns": ["41"]}

    def test_sliders_clamp(self, make_session):
        s = make_session()
        s.set_rate(0)
        s.set_length(100)
        s.set_channels(-3)
        assert (s.config.rate, s.config.length, s.config.channels) == (1, 30, 1)

    def test_add_pattern_strips_non_digits(self, make_session):
        s = make_session()
        assert s.add_pattern(" 4-1a7 ") == "417"
        assert s.config.patterns == ["528", "417"]

    def test_duplicate_patterns_allowed(self, make_session):
        s = make_session()
        s.add_pattern("528")
        assert s.config.patterns == ["528", "528"]

    def test_over_length_pattern_rejected(self, make_session):
        s = make_session()
        with pytest.raises(PatternRejected, match=r"aperture \(10\)"):
            s.add_pattern("12345678901")
        assert s.config.patterns == ["528"]

    def test_empty_pattern_rejected(self, make_session):
        with pytest.raises(PatternRejected):
            make_session().add_pattern("abc")

    def test_reset_keeps_log(self, make_session):
        s = make_session(MemoryStore({"rate": 9, "length": 20, "patterns": [], "log": [2, 1]}))
        s.reset()
        assert s.config == Config(log=[2, 1])

    def test_sanitize(self):
        assert sanitize_pattern("a1b2c3") == "123"


class TestTicks:
    def test_emission_appends_and_persists(self, make_session):
        store = MemoryStore()
        s = make_session(store)
        s._on_tick(TickResult(("1234528001",), 1))
        assert s.config.log == [1]
        assert s.veils == ("1234528001",)
        assert s.words == ["beta"]
        assert store.saves[-1].log == [1]

    def test_idle_tick_keeps_previous_veils(self, make_session):
        s = make_session()
        s._on_tick(TickResult(("111111",), None))
        s._on_tick(TickResult((), None))
        assert s.veils == ("111111",)
        assert s.config.log == []

    def test_play_emits_into_log(self, make_session):
        s = make_session(link="h=30&a=30&f=1")
        assert s.toggle()
        run_loop(500)
        s.pause()
        assert not s.playing
        assert s.config.log
        assert all(0 <= i < 3 for i in s.config.log)
        assert len(s.words) == len(s.config.log)

    def test_no_emission_before_lexicon(self, make_session):
        s = make_session(link="h=30&a=30&f=1", lexicon=())
        s.play()
        run_loop(200)
        s.pause()
        assert s.config.log == []
        s.set_lexicon(["only"])
        s.play()
        run_loop(300)
        s.pause()
        assert s.config.log
        assert set(s.words) == {"only"}

    def test_lexicon_is_set_once(self, make_session):
        s = make_session(lexicon=("a",))
        s.set_lexicon(("b", "c"))
        assert s.lexicon == ("a",)

    def test_rate_change_while_playing(self, make_session):
        s = make_session()
        s.play()
        token = s.scheduler.token
        s.set_rate(25)
        assert s.playing
        assert s.scheduler.token != token


class TestLocalStore:
    def test_round_trip(self, tmp_path):
        store = LocalStore(str(tmp_path / "nested" / "state.json"))
        config = Config(rate=3, patterns=["9"], log=[5])
        store.save(config)
        assert codec.merge(store.load()) == config

    def test_missing_file(self, tmp_path):
        assert LocalStore(str(tmp_path / "none.json")).load() == {}

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{oops", encoding="utf-8")
        assert LocalStore(str(path)).load() == {}

    def test_file_is_plain_json(self, tmp_path):
        path = tmp_path / "state.json"
        LocalStore(str(path)).save(Config(log=[1, 2]))
        assert json.loads(path.read_text(encoding="utf-8"))["log"] == [1, 2]

    def test_session_survives_corrupt_store(self, make_session, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("not json", encoding="utf-8")
        s = make_session(LocalStore(str(path)))
        assert s.source == "defaults"
        assert codec.loads(path.read_text(encoding="utf-8"))["patterns"] == ["528"]

    def test_session_survives_failing_store(self, make_session):
        s = make_session(FailingStore({"rate": 4}))
        assert s.source == "store"
        s._on_tick(TickResult(("1234528001",), 1))
        assert s.config.log == [1]
        assert codec.decode(s.link)["log"] == [1]

    def test_failing_store_still_signals_ticks(self, make_session):
        s = make_session(FailingStore(), link="h=30&a=30&f=1")
        emitted = []

        def on_ticked(result):
            if result.emitted is not None:
                emitted.append(result.emitted)
        s.scheduler.ticked.connect(on_ticked)
        s.play()
        run_loop(400)
        s.pause()
        assert s.config.log
        assert emitted == s.config.log
        assert codec.decode(s.link)["log"] == s.config.log
