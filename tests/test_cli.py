"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner
from keyring.errors import PasswordDeleteError

from bookpackage import __version__
from bookpackage.__main__ import _mask, cli
from bookpackage.service import ResourceService

from conftest import JONAH_ULT


class FakeKeyring:
    def __init__(self, password=None):
        self.password = password

    def get_password(self, service, account):
        return self.password

    def set_password(self, service, account, password):
        self.password = password

    def delete_password(self, service, account):
        if self.password is None:
            raise PasswordDeleteError("not found")
        self.password = None


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def keychain(monkeypatch):
    fake = FakeKeyring()
    monkeypatch.setattr("bookpackage.config.keyring", fake)
    monkeypatch.delenv("DOOR43_TOKEN", raising=False)
    return fake


@pytest.fixture
def offline(monkeypatch, keychain, door43, recording_sleep):
    """Route every ResourceService the CLI builds to the fake content service."""
    monkeypatch.setenv("BOOKPACKAGE_BASE_URL", "https://door43.test")
    monkeypatch.setattr(
        "bookpackage.__main__.ResourceService",
        lambda settings: ResourceService(
            settings, transport=door43.transport, sleep=recording_sleep
        ),
    )
    return door43


@pytest.fixture
def usfm_file(tmp_path):
    path = tmp_path / "32-JON.usfm"
    path.write_text(JONAH_ULT, encoding="utf-8")
    return path


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_mask():
    assert _mask("abcdefghijkl") == "abcd...ijkl"
    assert _mask("short") == "*****"


class TestPackage:
    def test_table(self, runner, offline):
        result = runner.invoke(cli, ["package", "JON"])
        assert result.exit_code == 0, result.output
        assert "literal_text" in result.output
        assert "en_gst" in result.output

    def test_summary_file(self, runner, offline, tmp_path):
        out = tmp_path / "jon.json"
        result = runner.invoke(cli, ["package", "jon", "-o", str(out)])
        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert data["book"] == "JON"
        assert data["slots"]["literal_text"]["source"] == "en_ult"

    def test_empty_package(self, runner, offline):
        result = runner.invoke(cli, ["package", "REV"])
        assert result.exit_code == 0
        assert "No resource types resolved" in result.output


class TestArticles:
    def test_word(self, runner, offline):
        result = runner.invoke(cli, ["word", "kt/god"])
        assert result.exit_code == 0, result.output
        assert "God" in result.output
        assert "Key Term" in result.output

    def test_missing_word(self, runner, offline):
        result = runner.invoke(cli, ["word", "kt/nothing"])
        assert result.exit_code == 1
        assert "No word article found" in result.output

    def test_academy_article(self, runner, offline):
        result = runner.invoke(cli, ["article", "figs-metaphor"])
        assert result.exit_code == 0, result.output
        assert "Metaphor" in result.output


class TestHelps:
    def test_helps_for_verse(self, runner, offline):
        result = runner.invoke(cli, ["helps", "JON 1:2"])
        assert result.exit_code == 0, result.output
        assert "Arise is a call to act." in result.output
        assert "What did Yahweh tell Jonah to do?" in result.output
        assert "names/nineveh" in result.output

    def test_no_helps(self, runner, offline):
        result = runner.invoke(cli, ["helps", "JON 4:11"])
        assert result.exit_code == 0
        assert "No helps found" in result.output

    def test_unreadable_reference(self, runner, offline):
        result = runner.invoke(cli, ["helps", "sometime"])
        assert result.exit_code == 1
        assert "cannot read reference" in result.output


class TestAlign:
    def test_table(self, runner, usfm_file):
        result = runner.invoke(cli, ["align", str(usfm_file), "-c", "1", "-V", "1"])
        assert result.exit_code == 0, result.output
        assert "JON 1:1" in result.output
        assert "H1697" in result.output
        assert "H3068" in result.output
        assert "Unaligned words: of, came" in result.output

    def test_json_file(self, runner, usfm_file, tmp_path):
        out = tmp_path / "align.json"
        result = runner.invoke(
            cli, ["align", str(usfm_file), "-c", "1", "-V", "1", "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["verse_ref"] == "JON 1:1"
        assert [g["strong"] for g in data["groups"]] == ["H1697", "H3068"]
        assert [i["text"] for i in data["groups"][0]["instances"]] == [
            "Now",
            "the",
            "word",
        ]

    def test_missing_verse(self, runner, usfm_file):
        result = runner.invoke(cli, ["align", str(usfm_file), "-c", "2", "-V", "1"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestToken:
    def test_set_show_clear(self, runner, keychain):
        result = runner.invoke(cli, ["token", "set", "--token", "abcdefghijkl"])
        assert result.exit_code == 0
        assert keychain.password == "abcdefghijkl"

        result = runner.invoke(cli, ["token", "show"])
        assert "abcd...ijkl" in result.output
        assert "abcdefghijkl" not in result.output

        result = runner.invoke(cli, ["token", "clear"])
        assert "Token removed" in result.output
        assert keychain.password is None

    def test_clear_without_token(self, runner, keychain):
        result = runner.invoke(cli, ["token", "clear"])
        assert result.exit_code == 0
        assert "No stored token" in result.output

    def test_show_without_token(self, runner, keychain):
        result = runner.invoke(cli, ["token", "show"])
        assert "anonymous" in result.output

    def test_environment_token_shown_masked(self, runner, keychain, monkeypatch):
        monkeypatch.setenv("DOOR43_TOKEN", "0123456789abcdef")
        result = runner.invoke(cli, ["token", "show"])
        assert "0123...cdef" in result.output
