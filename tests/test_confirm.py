import pytest

from market_deployment.confirm import _confirm_resolution, _contains_null_address
from market_deployment.constants import NULL_ADDRESS
from market_deployment.errors import DeploymentCancelled


def answers(monkeypatch, *replies):
    replies = list(replies)
    monkeypatch.setattr("builtins.input", lambda prompt: replies.pop(0))
    return replies


def test_contains_null_address():
    assert _contains_null_address([1, [NULL_ADDRESS]])
    assert not _contains_null_address(["0x" + "ab" * 20, 250])


def test_confirmed(monkeypatch, capsys):
    remaining = answers(monkeypatch, "y")
    _confirm_resolution(["0x" + "ab" * 20, 250], "MarketFactory")
    assert remaining == []
    assert "[1]=250" in capsys.readouterr().out


def test_declined(monkeypatch):
    answers(monkeypatch, "N")
    with pytest.raises(DeploymentCancelled) as exc_info:
        _confirm_resolution([], "SportsOracle")
    assert exc_info.value.component == "SportsOracle"


def test_null_address_needs_second_confirmation(monkeypatch):
    answers(monkeypatch, "y", "n")
    with pytest.raises(DeploymentCancelled):
        _confirm_resolution([NULL_ADDRESS], "MarketFactory")
