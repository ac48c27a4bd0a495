"""Test settings and the token store"""

import os
import stat

import pytest
import yaml

from playout.config.auth import TokenStore, get_token_store, reset_token_store
from playout.config.settings import Settings, get_settings
from playout.exceptions import TokenStoreError


class TestSettings:
    """Test configuration loading"""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            'server': {'endpoint': 'https://takeout.example.com'},
            'playback': {'repeat': True, 'buffer': 0.5},
            'activity': {'enable_listenbrainz': True},
            'unknown': {'x': 1},
        }))

        settings = Settings(str(path))

        assert settings.loaded_from == path
        assert settings.server.endpoint == 'https://takeout.example.com'
        assert settings.playback.repeat is True
        assert settings.playback.buffer == 0.5
        assert settings.activity.enable_listenbrainz is True
        assert settings.activity.enable_track_activity is False
        assert settings.validate()

    def test_environment_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({'server': {'endpoint': 'https://file.example.com'}}))
        monkeypatch.setenv('PLAYOUT_ENDPOINT', 'https://env.example.com')
        monkeypatch.setenv('PLAYOUT_TOKENS', str(tmp_path / 'tokens.yaml'))

        settings = Settings(str(path))

        assert settings.server.endpoint == 'https://env.example.com'
        assert settings.get_token_storage_path() == tmp_path / 'tokens.yaml'

    def test_validate(self, tmp_path, monkeypatch):
        monkeypatch.delenv('PLAYOUT_ENDPOINT', raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({'server': {'endpoint': ''}, 'playback': {'buffer': 0}}))

        assert not Settings(str(path)).validate()

    def test_save_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({'server': {'endpoint': 'https://a.example.com'}}))
        settings = Settings(str(path))

        saved = settings.save_config(str(tmp_path / "out" / "config.yaml"))

        data = yaml.safe_load(saved.read_text())
        assert data['server']['endpoint'] == 'https://a.example.com'
        assert data['playback']['buffer'] == 1.0
        assert set(settings.as_dict()) == {'server', 'playback', 'activity', 'logging', 'network', 'security'}

    def test_user_agent(self, tmp_path):
        settings = Settings(str(tmp_path / "missing.yaml"))
        assert settings.network.user_agent.startswith("Playout/")


class TestTokenStore:
    """Test credential persistence"""

    def make_store(self, path):
        return TokenStore(token_file=path, endpoint="https://takeout.example.com/", user_agent="ua")

    def test_empty_store(self, tmp_path):
        store = self.make_store(tmp_path / "tokens.yaml")
        assert store.access_token() == ""
        assert not store.is_authenticated()
        assert store.endpoint() == "https://takeout.example.com"

    def test_persistence(self, tmp_path):
        path = tmp_path / "nested" / "tokens.yaml"
        store = self.make_store(path)
        store.update_access_code("C0DE", "ctok")
        store.update_tokens("a", "r", "m")
        store.update_listenbrainz_token("lbz")

        reloaded = self.make_store(path)

        assert reloaded.code() == "C0DE"
        assert reloaded.code_token() == "ctok"
        assert (reloaded.access_token(), reloaded.refresh_token(), reloaded.media_token()) == ("a", "r", "m")
        assert reloaded.listenbrainz_token() == "lbz"
        assert reloaded.is_authenticated()
        assert yaml.safe_load(path.read_text())['accesstoken'] == "a"

    @pytest.mark.skipif(os.name != 'posix', reason="POSIX permissions")
    def test_file_mode(self, tmp_path):
        path = tmp_path / "tokens.yaml"
        self.make_store(path).update_access_token("a")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_update_access_token(self, tmp_path):
        path = tmp_path / "tokens.yaml"
        store = self.make_store(path)
        store.update_tokens("a", "r", "m")
        store.update_access_token("a2")

        reloaded = self.make_store(path)
        assert reloaded.access_token() == "a2"
        assert reloaded.refresh_token() == "r"

    def test_write_failure(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        store = self.make_store(blocker / "tokens.yaml")
        with pytest.raises(TokenStoreError):
            store.update_access_token("a")

    def test_write_failure_keeps_previous_token(self, tmp_path):
        store = self.make_store(tmp_path / "tokens.yaml")
        store.update_tokens("a", "r", "m")
        blocker = tmp_path / "file"
        blocker.write_text("x")
        store.token_file = blocker / "tokens.yaml"

        with pytest.raises(TokenStoreError):
            store.update_access_token("a2")

        assert store.access_token() == "a"

    def test_corrupted_file(self, tmp_path):
        path = tmp_path / "tokens.yaml"
        path.write_text("- just\n- a list\n")
        assert self.make_store(path).access_token() == ""

    def test_revoke(self, tmp_path):
        path = tmp_path / "tokens.yaml"
        store = self.make_store(path)
        store.update_tokens("a", "r", "m")

        store.revoke()

        assert not path.exists()
        assert not store.is_authenticated()

    def test_global_store(self, tmp_path, monkeypatch):
        monkeypatch.setattr(get_settings().security, 'token_storage_path', str(tmp_path / 'global.yaml'))
        reset_token_store()
        try:
            store = get_token_store()
            assert store is get_token_store()
            assert store.token_file == tmp_path / 'global.yaml'
        finally:
            reset_token_store()
