import json

import pytest

from staking_strategy.constants import STATE_DIR_NAME
from staking_strategy.state import apply_state, clear_state, load_state, save_state, state_file


@pytest.fixture(autouse=True)
def state_home(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path))
    return tmp_path / STATE_DIR_NAME


def test_save_and_apply_state_round_trip(env, strategy):
    strategy.set_deposit_threshold(env.owner, 500)
    strategy.set_pause(env.owner, "withdraw", True)
    path = save_state(strategy)
    assert path == state_file(strategy.address)

    fresh = env.make_strategy()
    events_before = list(fresh.events)
    apply_state(fresh, load_state(fresh.address))

    assert fresh.deposit_threshold == 500
    assert fresh.withdraw_paused is True
    assert fresh.deposit_paused is False
    # Restoring settings is not an admin action and emits nothing.
    assert fresh.events == events_before


def test_load_state_missing_or_foreign_version(strategy, capsys):
    assert load_state(strategy.address) is None

    state_file(strategy.address).write_text(json.dumps({"version": "0", "deposit_threshold": 1}), encoding="utf-8")
    assert load_state(strategy.address) is None
    assert "unexpected format" in capsys.readouterr().err


def test_apply_empty_state_is_noop(strategy):
    apply_state(strategy, None)
    assert strategy.deposit_threshold == 0
    assert not strategy.deposit_paused


def test_clear_state(strategy, state_home, capsys):
    save_state(strategy)
    assert state_home.exists()
    clear_state()
    assert not state_home.exists()
    assert "cleared" in capsys.readouterr().err
