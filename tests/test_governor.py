"""Tests for limit clamping and the resource governor."""

from __future__ import annotations

import pytest

from domaincrawler.config import BASE_CRAWL_TIME, BASE_URLS, MAX_CRAWL_TIME, MAX_URLS
from domaincrawler.governor import ResourceGovernor, bound_time, bound_urls


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestClamping:
    @pytest.mark.parametrize("raw", [-5, 0, None, "", "abc", "nan", True])
    def test_invalid_time_falls_back_to_base(self, raw):
        assert bound_time(raw) == BASE_CRAWL_TIME

    def test_time_above_max_is_capped(self):
        assert bound_time(10000) == MAX_CRAWL_TIME

    def test_time_in_range_is_kept(self):
        assert bound_time(30) == 30
        assert bound_time("45") == 45
        assert bound_time("12.7") == 12

    @pytest.mark.parametrize("raw", [-1, 0, None, "many"])
    def test_invalid_urls_fall_back_to_base(self, raw):
        assert bound_urls(raw) == BASE_URLS

    def test_urls_above_max_are_capped(self):
        assert bound_urls(MAX_URLS + 1) == MAX_URLS
        assert bound_urls(200) == 200


class TestDeadline:
    def test_deadline_is_start_plus_time_box(self):
        clock = FakeClock(500.0)
        governor = ResourceGovernor(time_box=-5, clock=clock, memory_files=())
        assert governor.time_box == BASE_CRAWL_TIME
        assert governor.deadline == 500.0 + BASE_CRAWL_TIME

    def test_expired_only_after_deadline(self):
        clock = FakeClock(0.0)
        governor = ResourceGovernor(time_box=20, clock=clock, memory_files=())
        clock.now = 20.0
        assert not governor.expired()
        clock.now = 20.5
        assert governor.expired()
        assert governor.remaining() == 0.0

    def test_stop_reason_order(self):
        clock = FakeClock(0.0)
        governor = ResourceGovernor(time_box=20, max_urls=60, clock=clock, memory_files=())
        assert governor.stop_reason(59) is None
        assert governor.stop_reason(60) == "max_urls"
        clock.now = 100.0
        assert governor.stop_reason(0) == "time_box"
        assert governor.stop_reason(60) == "max_urls"


class TestMemoryDanger:
    def _files(self, tmp_path, usage, limit):
        use_file = tmp_path / "memory.usage_in_bytes"
        limit_file = tmp_path / "memory.limit_in_bytes"
        if usage is not None:
            use_file.write_text(usage)
        if limit is not None:
            limit_file.write_text(limit)
        return [(str(use_file), str(limit_file))]

    def test_absent_interface_never_reports_danger(self, tmp_path):
        governor = ResourceGovernor(memory_files=self._files(tmp_path, None, None))
        assert not governor.in_container()
        assert not governor.memory_danger()
        assert governor.stop_reason(0) is None

    def test_high_usage_reports_danger(self, tmp_path):
        governor = ResourceGovernor(memory_files=self._files(tmp_path, "900\n", "1000\n"))
        assert governor.in_container()
        assert governor.memory_danger()
        assert governor.stop_reason(0) == "memory"

    def test_low_usage_is_safe(self, tmp_path):
        governor = ResourceGovernor(memory_files=self._files(tmp_path, "500", "1000"))
        assert not governor.memory_danger()

    def test_threshold_is_inclusive(self, tmp_path):
        governor = ResourceGovernor(memory_files=self._files(tmp_path, "80", "100"), max_load=80.0)
        assert governor.memory_danger()

    @pytest.mark.parametrize("usage,limit", [
        ("0", "1000"),
        ("900", "0"),
        ("900", "max"),
        ("garbage", "1000"),
        ("900", None),
    ])
    def test_unusable_values_fail_open(self, tmp_path, usage, limit):
        governor = ResourceGovernor(memory_files=self._files(tmp_path, usage, limit))
        assert not governor.memory_danger()

    def test_usage_is_reread_each_check(self, tmp_path):
        files = self._files(tmp_path, "100", "1000")
        governor = ResourceGovernor(memory_files=files)
        assert not governor.memory_danger()
        (tmp_path / "memory.usage_in_bytes").write_text("950")
        assert governor.memory_danger()

    def test_falls_through_to_second_interface(self, tmp_path):
        v2 = tmp_path / "v2"
        v2.mkdir()
        (v2 / "memory.current").write_text("990")
        (v2 / "memory.max").write_text("1000")
        files = [
            (str(tmp_path / "missing.usage"), str(tmp_path / "missing.limit")),
            (str(v2 / "memory.current"), str(v2 / "memory.max")),
        ]
        assert ResourceGovernor(memory_files=files).memory_danger()
