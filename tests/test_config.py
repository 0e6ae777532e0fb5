"""Tests for the configuration system."""

import pytest

from trustgate.config import TrustGateConfig, load_config, read_git_config


class TestTrustGateConfig:
    """Defaults and validation."""

    def test_defaults(self):
        cfg = TrustGateConfig()
        assert cfg.keydir == "keys"
        assert cfg.gpg_program == "gpg"
        assert cfg.git_program == "git"
        assert cfg.log_format == "console"

    def test_keydir_slashes_are_trimmed(self):
        assert TrustGateConfig(keydir="/meta/keys/").keydir == "meta/keys"

    @pytest.mark.parametrize("keydir", ["", "/", "../keys", "keys/../other", "a//b", "./keys"])
    def test_bad_keydir_raises(self, keydir):
        with pytest.raises(ValueError):
            TrustGateConfig(keydir=keydir)

    def test_empty_program_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            TrustGateConfig(gpg_program="  ")

    def test_bad_log_format_raises(self):
        with pytest.raises(ValueError):
            TrustGateConfig(log_format="xml")

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("TRUSTGATE_KEYDIR", "trusted")
        assert TrustGateConfig().keydir == "trusted"


class TestLoadConfig:
    """Reading settings from git config."""

    def test_without_store(self):
        assert load_config().keydir == "keys"

    def test_reads_git_config(self, repo):
        repo.config = {"hooks.verify.keydir": "meta/keys", "hooks.verify.gpgprogram": "gpg2"}
        cfg = load_config(repo)
        assert cfg.keydir == "meta/keys"
        assert cfg.gpg_program == "gpg2"

    def test_falls_back_to_gpg_program(self, repo):
        repo.config = {"gpg.program": "/usr/local/bin/gpg"}
        assert load_config(repo).gpg_program == "/usr/local/bin/gpg"

    def test_hook_setting_beats_gpg_program(self, repo):
        repo.config = {"gpg.program": "gpg", "hooks.verify.gpgprogram": "gpg-hook"}
        assert read_git_config(repo) == {"gpg_program": "gpg-hook"}

    def test_overrides_win(self, repo):
        repo.config = {"hooks.verify.keydir": "meta/keys"}
        assert load_config(repo, keydir="other").keydir == "other"

    def test_none_overrides_are_ignored(self, repo):
        repo.config = {"hooks.verify.keydir": "meta/keys"}
        assert load_config(repo, keydir=None).keydir == "meta/keys"

    def test_git_config_beats_environment(self, repo, monkeypatch):
        monkeypatch.setenv("TRUSTGATE_KEYDIR", "from-env")
        repo.config = {"hooks.verify.keydir": "from-git"}
        assert load_config(repo).keydir == "from-git"

    def test_invalid_git_config_raises(self, repo):
        repo.config = {"hooks.verify.keydir": "../escape"}
        with pytest.raises(ValueError):
            load_config(repo)
