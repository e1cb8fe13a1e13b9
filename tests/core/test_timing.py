"""
Tests for Timer.

Validates:
    - Sections accumulate across repeated entries
    - result() includes total_seconds and every section
    - Misuse raises RuntimeError
"""

import pytest

from pyanova.core.compute import Timer


class TestTimer:

    def test_sections_reported(self):
        timer = Timer()
        timer.start()
        with timer.section('ss_evaluations'):
            pass
        with timer.section('assemble'):
            pass
        timer.stop()
        result = timer.result()
        assert set(result) == {'total_seconds', 'ss_evaluations', 'assemble'}
        assert result['total_seconds'] >= result['ss_evaluations']

    def test_repeated_section_accumulates(self):
        timer = Timer()
        timer.start()
        for _ in range(3):
            with timer.section('whiten'):
                pass
        timer.stop()
        assert list(timer.result()) == ['total_seconds', 'whiten']

    def test_section_recorded_on_exception(self):
        timer = Timer()
        timer.start()
        with pytest.raises(ValueError):
            with timer.section('classify'):
                raise ValueError("boom")
        timer.stop()
        assert 'classify' in timer.result()

    def test_stop_before_start(self):
        with pytest.raises(RuntimeError, match="before start"):
            Timer().stop()

    def test_result_before_stop(self):
        timer = Timer()
        timer.start()
        with pytest.raises(RuntimeError, match="before stop"):
            timer.result()
