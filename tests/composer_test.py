import time
from unittest.mock import MagicMock

import pytest
import requests

from scagate.core.exceptions import DeadlineExceeded
from scagate.services.composer_service import ComposerRegistryClient

REFERENCE = '9d172471e56433b5c7061006b9a766f262a3edfd'


def _response(status_code, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def registry(session):
    return ComposerRegistryClient(base_url='https://packagist.example.com/', session=session, timeout=5)


def test_find_version_by_reference(registry, session):
    session.get.return_value = _response(200, {
        'packages': {
            'zircote/swagger-php': [
                {'version': '3.1.1', 'source': {'reference': 'ffffffff'}},
                {'version': '3.1.0', 'source': {'reference': REFERENCE.upper()}},
                {'version': 'dev-master'},
            ],
        },
    })

    assert registry.find_version('zircote/swagger-php', REFERENCE) == '3.1.0'
    assert session.get.call_args.args[0] == 'https://packagist.example.com/p2/zircote/swagger-php.json'


def test_find_version_unknown_reference(registry, session):
    session.get.return_value = _response(200, {'packages': {'a/b': []}})
    assert registry.find_version('a/b', REFERENCE) is None


def test_find_version_missing_package(registry, session):
    session.get.return_value = _response(404)
    assert registry.find_version('a/b', REFERENCE) is None


def test_find_version_malformed_document(registry, session):
    session.get.return_value = _response(200, {'unexpected': {}})
    with pytest.raises(KeyError):
        registry.find_version('a/b', REFERENCE)


def test_find_alternative_name(registry, session):
    session.get.return_value = _response(200, {
        'results': [
            {'name': 'other/swagger-php', 'repository': 'https://github.com/other/swagger-php'},
            {'name': 'newvendor/swagger-php', 'repository': 'https://github.com/zircote/swagger-php'},
        ],
    })

    assert registry.find_alternative_name('zircote/swagger-php') == 'newvendor/swagger-php'
    assert session.get.call_args.kwargs['params'] == {'q': 'swagger-php'}


def test_find_alternative_name_never_raises(registry, session):
    session.get.side_effect = requests.ConnectionError('offline')
    assert registry.find_alternative_name('zircote/swagger-php') is None


def test_find_alternative_name_requires_vendor(registry, session):
    assert registry.find_alternative_name('swagger-php') is None
    session.get.assert_not_called()


def test_find_version_timeout_is_clamped_to_deadline(registry, session):
    session.get.return_value = _response(404)

    registry.find_version('a/b', REFERENCE, deadline=time.monotonic() + 2)

    assert 0 < session.get.call_args.kwargs['timeout'] <= 2


def test_find_version_after_deadline(registry, session):
    with pytest.raises(DeadlineExceeded):
        registry.find_version('a/b', REFERENCE, deadline=time.monotonic() - 10)
    session.get.assert_not_called()


def test_find_alternative_name_after_deadline(registry, session):
    with pytest.raises(DeadlineExceeded):
        registry.find_alternative_name('zircote/swagger-php', deadline=time.monotonic() - 10)
    session.get.assert_not_called()
