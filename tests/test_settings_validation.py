import pytest
from pydantic import ValidationError

from page_oracle.settings import OracleSettings


@pytest.mark.parametrize(
    "field",
    ["cache_ttl_seconds", "request_timeout_seconds", "chain_timeout_seconds"],
)
def test_rejects_non_positive_durations(field):
    with pytest.raises(ValidationError):
        OracleSettings(**{field: 0})


def test_chain_timeout_must_cover_request_timeout():
    with pytest.raises(ValidationError, match="chain_timeout_seconds"):
        OracleSettings(request_timeout_seconds=20, chain_timeout_seconds=10)


def test_chain_timeout_may_equal_request_timeout():
    settings = OracleSettings(request_timeout_seconds=5, chain_timeout_seconds=5)

    assert settings.chain_timeout_seconds == 5


def test_rejects_negative_min_liquidity():
    with pytest.raises(ValidationError):
        OracleSettings(min_liquidity_usd=-1)


def test_rejects_negative_manual_weight():
    with pytest.raises(ValidationError, match="must not be negative"):
        OracleSettings(manual_weights={"ethereum": 1, "base": -1})


def test_rejects_manual_weights_without_positive_weight():
    with pytest.raises(ValidationError, match="at least one positive weight"):
        OracleSettings(manual_weights={"ethereum": 0})


def test_rejects_excluding_every_chain():
    with pytest.raises(ValidationError, match="no chain to aggregate"):
        OracleSettings(excluded_chains=["ethereum", "optimism", "base", "osmosis"])


def test_rejects_unknown_excluded_chain():
    with pytest.raises(ValidationError):
        OracleSettings(excluded_chains=["solana"])
