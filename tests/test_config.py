import json

import pytest
from pydantic import ValidationError

from storage_metrics.config import ArrayConfig, EnvConfig, FileConfig, Settings
from storage_metrics.session import BearerTokenSession, Credentials, SessionState

CONFIG = """
log_level: DEBUG
tls_validation: normal
tls_ca: /etc/ssl/array-ca.pem
request_timeout: 12
arrays:
  - name: vnx1
    vendor: emc
    auth: cookie
    endpoint: 10.0.0.5
    username: monitor
    password: secret
    region: east
  - name: eseries1
    auth: bearer
    endpoint: https://10.0.0.9:8443
    token: preset
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text(CONFIG)
    return str(path)


def test_settings_from_yaml(config_file):
    settings = Settings(config_file=config_file)
    assert settings.log_level == 'DEBUG'
    assert settings.tls_validation == 'normal'
    assert settings.tls_ca == '/etc/ssl/array-ca.pem'
    assert settings.request_timeout == 12
    assert [a.name for a in settings.arrays] == ['vnx1', 'eseries1']
    vnx = settings.get_array('vnx1')
    assert vnx.credentials() == Credentials(username='monitor', password='secret')
    assert vnx.tags() == {'array': 'vnx1', 'vendor': 'emc', 'region': 'east'}


def test_missing_config_file_uses_defaults(tmp_path, caplog):
    settings = Settings(config_file=str(tmp_path / 'absent.yaml'))
    assert settings.tls_validation == 'strict'
    assert settings.arrays == []
    assert 'not found' in caplog.text


def test_unknown_array_name(config_file):
    with pytest.raises(KeyError):
        Settings(config_file=config_file).get_array('nope')


def test_invalid_tls_validation_rejected():
    with pytest.raises(ValidationError):
        FileConfig(tls_validation='sometimes')


def test_invalid_auth_style_rejected():
    with pytest.raises(ValidationError):
        ArrayConfig(name='a', endpoint='b', auth='kerberos')


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv('TLS_VALIDATION', 'NONE')
    monkeypatch.setenv('REQUEST_TIMEOUT', '5')
    monkeypatch.setenv('ARRAYS', json.dumps([{'name': 'bna', 'auth': 'token_header', 'endpoint': 'bna.local'}]))
    settings = Settings(from_env=True)
    assert settings.tls_validation == 'none'
    assert settings.request_timeout == 5.0
    assert settings.arrays[0].auth == 'token_header'
    assert settings.arrays[0].username == 'admin'


def test_env_config_rejects_bad_tls_validation(monkeypatch):
    monkeypatch.setenv('TLS_VALIDATION', 'maybe')
    with pytest.raises(ValidationError):
        EnvConfig()


def test_open_session_uses_array_auth_style(config_file, http):
    settings = Settings(config_file=config_file)
    client = settings.open_session(settings.get_array('eseries1'), session=http)
    assert isinstance(client, BearerTokenSession)
    assert client.state is SessionState.AUTHENTICATED
    assert client.timeout == 12
    assert client.base_url == 'https://10.0.0.9:8443'
