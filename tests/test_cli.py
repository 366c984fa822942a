"""
tests/test_cli.py -- Tests for the create-user command in main.py.

The settings lookup is patched so the command writes to a throw-away
in-memory database instead of the configured one.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import patch

import pytest

import main
from auth.store import UserStore
from auth.strategy import LocalStrategy

_URL = "sqlite:///file:test_cli?mode=memory&cache=shared&uri=true"


@pytest.fixture
def cli_store():
    # Holding one store open keeps the shared in-memory DB alive between calls.
    store = UserStore(_URL)
    with patch.object(main, "get_settings", return_value=SimpleNamespace(database_url=_URL)):
        yield store
    store.close()


def _args(name: str, email=None, age=None):
    return main.build_parser().parse_args(
        ["create-user", name] + (["--email", email] if email else []) + (["--age", age] if age else [])
    )


def test_create_user(cli_store: UserStore, capsys) -> None:
    assert main._create_user(_args("cliuser", email="cli@example.com", age="44"), password="clipass") == 0
    assert "Created user 'cliuser'" in capsys.readouterr().out
    assert LocalStrategy(cli_store).authenticate("cliuser", "clipass").ok
    assert cli_store.get_by_name("cliuser").age == 44


def test_create_user_duplicate(cli_store: UserStore, capsys) -> None:
    assert main._create_user(_args("dupe"), password="pw") == 0
    assert main._create_user(_args("dupe"), password="pw") == 1
    assert "already taken" in capsys.readouterr().out


def test_create_user_invalid_email(cli_store: UserStore, capsys) -> None:
    assert main._create_user(_args("bademail", email="nope"), password="pw") == 1
    assert "EMAIL" in capsys.readouterr().out
    assert cli_store.get_by_name("bademail") is None


def test_password_prompt_mismatch(cli_store: UserStore, capsys) -> None:
    with patch.object(main.getpass, "getpass", side_effect=["one", "two"]):
        assert main._create_user(_args("prompted")) == 1
    assert cli_store.get_by_name("prompted") is None


def test_no_command_prints_help(capsys) -> None:
    assert main.main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()
