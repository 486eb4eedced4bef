"""Tests for configuration loading from file and environment."""

import json
import tempfile
from pathlib import Path

import pytest
from hypothesis import given, strategies as st

from openstack_reporter.core.config import Config, ConfigManager
from openstack_reporter.core.exceptions import ConfigurationError


ENVIRON = {
    'OS_AUTH_URL': 'https://keystone.example.com:5000/v3/',
    'OS_USERNAME': 'reporter',
    'OS_PASSWORD': 'secret',
}


@st.composite
def valid_config(draw):
    """Generate valid Config objects."""
    host = draw(st.text(alphabet='abcdefghijklmnopqrstuvwxyz', min_size=1, max_size=20))
    return Config(
        auth_url=f"https://{host}.example.com:5000/v3",
        username=draw(st.text(min_size=1, max_size=20).filter(lambda x: x.strip())),
        password='secret',
        region_name=draw(st.sampled_from([None, 'RegionOne', 'eu-west'])),
        backup_max_age_days=draw(st.integers(min_value=1, max_value=365)),
    )


class TestConfigRoundTrip:

    @given(config=valid_config())
    def test_saved_settings_reload_without_password(self, config):
        """Saved settings come back, while the password must be supplied by the environment."""
        with tempfile.TemporaryDirectory() as temp_dir:
            manager = ConfigManager(config_dir=Path(temp_dir))
            manager.save_config(config)

            with open(manager.get_config_path()) as f:
                saved = json.load(f)
            assert 'password' not in saved
            assert saved['auth_url'] == config.auth_url

            loaded = manager.load_config(environ={'OS_PASSWORD': 'from-env'})

            assert loaded.auth_url == config.auth_url
            assert loaded.username == config.username
            assert loaded.region_name == config.region_name
            assert loaded.backup_max_age_days == config.backup_max_age_days
            assert loaded.password == 'from-env'


class TestLoadConfig:

    def test_environment_only(self, tmp_path):
        config = ConfigManager(tmp_path).load_config(environ=ENVIRON)

        assert config.auth_url == 'https://keystone.example.com:5000/v3'
        assert config.user_domain_name == 'Default'
        assert config.project_name is None
        assert config.single_project is False
        assert config.insecure is False
        assert config.data_dir == Path('data')

    def test_environment_overrides_file_and_options_override_environment(self, tmp_path):
        manager = ConfigManager(tmp_path)
        manager.config_file.write_text(json.dumps({'region_name': 'file-region', 'username': 'file-user'}))
        environ = dict(ENVIRON, OS_REGION_NAME='env-region', OS_PROJECT_NAME='infra', OS_INSECURE='true')

        config = manager.load_config(environ=environ, project_name='ops', data_dir=None)

        assert config.region_name == 'env-region'
        assert config.username == 'reporter'
        assert config.project_name == 'ops'
        assert config.single_project is True
        assert config.insecure is True

    def test_blank_values_are_unset(self, tmp_path):
        config = ConfigManager(tmp_path).load_config(environ=dict(ENVIRON, OS_PROJECT_NAME='  '))

        assert config.project_name is None

    def test_missing_settings_name_the_variables(self, tmp_path):
        with pytest.raises(ConfigurationError, match="OS_PASSWORD"):
            ConfigManager(tmp_path).load_config(environ={'OS_AUTH_URL': 'https://k:5000/v3', 'OS_USERNAME': 'u'})

    def test_invalid_auth_url(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            ConfigManager(tmp_path).load_config(environ=dict(ENVIRON, OS_AUTH_URL='keystone:5000'))

    def test_backup_age_must_be_positive(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigManager(tmp_path).load_config(environ=dict(ENVIRON, REPORTER_BACKUP_MAX_AGE_DAYS='0'))

    def test_corrupted_file(self, tmp_path):
        manager = ConfigManager(tmp_path)
        manager.config_file.write_text("invalid json content")

        with pytest.raises(ConfigurationError, match="Invalid configuration file"):
            manager.load_config(environ=ENVIRON)

    def test_password_hidden_from_repr(self, tmp_path):
        config = ConfigManager(tmp_path).load_config(environ=ENVIRON)

        assert 'secret' not in repr(config)


class TestConfigManagerFiles:

    def test_config_directory_creation(self, tmp_path):
        config_dir = tmp_path / "nested" / "config" / "dir"
        ConfigManager(config_dir=config_dir)

        assert config_dir.is_dir()

    def test_save_replaces_previous_file(self, tmp_path):
        manager = ConfigManager(tmp_path)
        manager.config_file.write_text(json.dumps({'region_name': 'old-region'}))

        manager.save_config(manager.load_config(environ=dict(ENVIRON, OS_REGION_NAME='new-region')))

        assert json.loads(manager.config_file.read_text())['region_name'] == 'new-region'
        assert not manager.config_file.with_suffix('.tmp').exists()

    def test_settings_from_older_files_are_ignored(self, tmp_path):
        manager = ConfigManager(tmp_path)
        manager.config_file.write_text(json.dumps({
            'created_at': '2024-01-01T00:00:00Z', 'version': '0.9', 'password': 'stale',
        }))

        config = manager.load_config(environ=ENVIRON)

        assert config.password == 'secret'
        assert not hasattr(config, 'created_at')
