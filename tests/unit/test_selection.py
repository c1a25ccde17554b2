"""
Unit tests for driver selection strategies.
"""
import random

import pytest

from conftest import MICHAEL, SARAH
from ridebook.errors import NoDriverAvailableError
from ridebook.services.selection import FirstDriverSelector, RandomDriverSelector


class TestRandomDriverSelector:
    def test_empty_pool_raises(self):
        with pytest.raises(NoDriverAvailableError):
            RandomDriverSelector().select([])

    def test_single_driver_always_chosen(self):
        selector = RandomDriverSelector()
        for _ in range(20):
            assert selector.select([SARAH]) == SARAH

    def test_choice_comes_from_pool(self):
        selector = RandomDriverSelector(random.Random(7))
        picks = {selector.select((MICHAEL, SARAH)).id for _ in range(50)}
        assert picks <= {MICHAEL.id, SARAH.id}

    def test_uniform_policy_reaches_every_driver(self):
        selector = RandomDriverSelector(random.Random(42))
        picks = {selector.select([MICHAEL, SARAH]).id for _ in range(100)}
        assert picks == {MICHAEL.id, SARAH.id}

    def test_seeded_rng_is_reproducible(self):
        a = RandomDriverSelector(random.Random(3))
        b = RandomDriverSelector(random.Random(3))
        pool = [MICHAEL, SARAH]
        assert [a.select(pool).id for _ in range(10)] == [b.select(pool).id for _ in range(10)]


class TestFirstDriverSelector:
    def test_empty_pool_raises(self):
        with pytest.raises(NoDriverAvailableError):
            FirstDriverSelector().select(())

    def test_picks_first(self):
        assert FirstDriverSelector().select([SARAH, MICHAEL]) == SARAH
