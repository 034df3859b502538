"""Tests for client/plan level compatibility."""

import pytest

from gym_kernel.domain.levels import is_level_compatible, level_rank
from gym_kernel.models.client import FitnessLevel


class TestLevelRank:
    def test_ordering(self):
        assert level_rank("beginner") < level_rank("intermediate") < level_rank("advanced")

    def test_missing_level_counts_as_beginner(self):
        assert level_rank(None) == level_rank("beginner")
        assert level_rank("") == 0

    def test_unknown_level_counts_as_beginner(self):
        assert level_rank("olympic") == 0

    def test_accepts_enum_and_mixed_case(self):
        assert level_rank(FitnessLevel.ADVANCED) == 2
        assert level_rank("Intermediate") == 1


class TestCompatibility:
    @pytest.mark.parametrize(
        "client_level, plan_level, expected",
        [
            ("beginner", "beginner", True),
            ("beginner", "advanced", True),
            ("intermediate", "beginner", False),
            ("intermediate", "advanced", True),
            ("advanced", "intermediate", False),
            ("advanced", "advanced", True),
            (None, "beginner", True),
        ],
    )
    def test_client_rank_must_not_exceed_plan_rank(self, client_level, plan_level, expected):
        assert is_level_compatible(client_level, plan_level) is expected
