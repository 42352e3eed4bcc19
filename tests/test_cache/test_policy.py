"""Tests for TTL policy resolution."""

from __future__ import annotations

import pytest

from warmcache.cache.policy import TTLPolicyTable
from warmcache.exceptions import InvalidUsageError
from warmcache.models import DEFAULT_TTL_POLICIES


@pytest.fixture()
def policy() -> TTLPolicyTable:
    return TTLPolicyTable(DEFAULT_TTL_POLICIES, default_ttl_seconds=600)


class TestResolve:
    def test_explicit_ttl_wins(self, policy: TTLPolicyTable) -> None:
        assert policy.resolve("token_prices", 30) == 30.0

    def test_family_prefix_applies(self, policy: TTLPolicyTable) -> None:
        assert policy.resolve("token_prices") == 120.0
        assert policy.resolve("token_prices_eth") == 120.0
        assert policy.resolve("ui_preferences") == 86400.0

    def test_unknown_family_falls_back_to_default(self, policy: TTLPolicyTable) -> None:
        assert policy.resolve("weather_forecast") == 600.0

    def test_longest_prefix_wins(self) -> None:
        table = TTLPolicyTable({"token_": 10, "token_prices": 20}, default_ttl_seconds=5)
        assert table.resolve("token_prices_btc") == 20.0
        assert table.resolve("token_supply") == 10.0
        assert table.family_for("token_prices_btc") == "token_prices"

    @pytest.mark.parametrize("bad", [0, -1, -0.5])
    def test_non_positive_explicit_ttl_rejected(self, policy: TTLPolicyTable, bad: float) -> None:
        with pytest.raises(InvalidUsageError):
            policy.resolve("token_prices", bad)


class TestIntrospection:
    def test_family_for_unknown_is_none(self, policy: TTLPolicyTable) -> None:
        assert policy.family_for("weather") is None

    def test_as_dict_is_a_copy(self, policy: TTLPolicyTable) -> None:
        table = policy.as_dict()
        table["token_prices"] = 1
        assert policy.resolve("token_prices") == 120.0
