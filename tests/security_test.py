from structlog.testing import capture_logs

from scagate.core.config import AuthConfig
from scagate.core.logging import mask_secrets
from scagate.models.token import AccessToken
from scagate.models.token import Credentials


def test_auth_config_repr():
    config = AuthConfig(account='acme', username='jdoe', password='secret-password')
    assert 'secret-password' not in repr(config)
    assert '*****' in repr(config)


def test_credentials_repr():
    credentials = Credentials(username='jdoe', password='secret-password', tenant='acme')
    assert 'secret-password' not in repr(credentials)
    assert 'jdoe' in repr(credentials)


def test_access_token_repr():
    token = AccessToken(access_token='eyJsecret', token_type='Bearer', expires_in=3600)
    assert 'eyJsecret' not in repr(token)
    assert '*****' in repr(token)


def test_mask_secrets_processor():
    event = mask_secrets(None, 'info', {
        'event': 'request',
        'Authorization': 'Bearer abc',
        'password': 'hunter2',
        'url': 'https://api.example.com',
    })
    assert event['Authorization'] == '*****'
    assert event['password'] == '*****'
    assert event['url'] == 'https://api.example.com'


def test_partial_credentials_do_not_log_password():
    config = AuthConfig(account=None, username='jdoe', password='secret-password')
    with capture_logs() as captured:
        assert config.get_credentials() is None
    assert captured
    for event in captured:
        assert 'secret-password' not in str(event)
