"""Admin CLI against a local database."""
import json

import pytest

from statusnet.cli import main


@pytest.fixture(autouse=True)
def local_env(tmp_path, monkeypatch):
    monkeypatch.setenv("STATUSNET_DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("STATUSNET_SIGNING_KEY", str(tmp_path / ".signing_key"))


def test_provision_then_show(capsys):
    assert main(["provision", "alice", "pw1", "US", "alice", "--friends", "CA;bob"]) == 0
    capsys.readouterr()

    assert main(["show", "profiles", "US", "alice"]) == 0
    record = json.loads(capsys.readouterr().out)
    assert record == {"friends": "CA;bob", "status": "", "updates": ""}


def test_show_missing_record(capsys):
    assert main(["show", "profiles", "US", "nobody"]) == 1
    assert "404" in capsys.readouterr().err


def test_keygen_is_stable(capsys, tmp_path):
    assert main(["keygen"]) == 0
    first = capsys.readouterr().out
    assert main(["keygen"]) == 0
    assert capsys.readouterr().out == first
    assert "STATUSNET_VERIFY_KEY=" in first
    assert (tmp_path / ".signing_key").exists()


def test_unknown_service_rejected():
    with pytest.raises(SystemExit):
        main(["serve", "mail"])
