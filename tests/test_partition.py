"""Tests for partition_tests in simfleet/multi_scan.py."""

from __future__ import annotations

import pytest

from simfleet.multi_scan import partition_tests


class TestPartitionTests:
    def test_empty_runs_everything_once(self):
        assert partition_tests([], 4) == [[]]

    def test_balanced_contiguous_chunks(self):
        assert partition_tests(list(range(10)), 4) == [[0, 1, 2], [3, 4, 5], [6, 7], [8, 9]]

    def test_even_split(self):
        assert partition_tests(list("abcdef"), 3) == [["a", "b"], ["c", "d"], ["e", "f"]]

    def test_fewer_tests_than_chunks(self):
        assert partition_tests(["a", "b"], 5) == [["a"], ["b"]]

    def test_single_chunk(self):
        assert partition_tests(["a", "b", "c"], 1) == [["a", "b", "c"]]

    @pytest.mark.parametrize("n", [1, 2, 3, 7, 10])
    @pytest.mark.parametrize("count", [1, 5, 23, 100])
    def test_concatenation_restores_input(self, n, count):
        tests = list(range(count))
        chunks = partition_tests(tests, n)

        assert [t for chunk in chunks for t in chunk] == tests
        assert len(chunks) == min(n, count)
        sizes = [len(c) for c in chunks]
        assert max(sizes) - min(sizes) <= 1
        assert all(sizes)

    def test_rejects_zero_chunks(self):
        with pytest.raises(ValueError):
            partition_tests(["a"], 0)
