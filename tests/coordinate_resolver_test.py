import time
from unittest.mock import MagicMock
from unittest.mock import call

import pytest

from scagate.core.exceptions import DeadlineExceeded
from scagate.models.coordinate import FileLayout
from scagate.models.package_manager import PackageManager
from scagate.services.coordinate_resolver import CoordinateResolver
from scagate.services.coordinate_resolver import should_ignore
from scagate.services.coordinate_resolver import strip_go_suffixes


@pytest.fixture
def composer():
    return MagicMock()


@pytest.fixture
def resolver(composer):
    return CoordinateResolver(composer)


@pytest.mark.parametrize(
    'package_manager, path, name, version', [
        (PackageManager.NPM, 'lodash/-/lodash-0.2.1.tgz', 'lodash', '0.2.1'),
        (PackageManager.NPM, '@types/fs-extra/-/fs-extra-9.0.13.tgz', '@types/fs-extra', '9.0.13'),
        (PackageManager.NPM, 'http/-/http-0.0.1-security.tgz', 'http', '0.0.1-security'),
        (PackageManager.NUGET, 'dbup-core.4.5.0.nupkg', 'dbup-core', '4.5.0'),
        (PackageManager.NUGET, 'nuget-remote/Newtonsoft.Json.12.0.3.nupkg', 'Newtonsoft.Json', '12.0.3'),
        (
            PackageManager.PYPI,
            'pip-remote-cache/51/bd/23c926cd341ea6b7dd0b2a00aba99ae0f828be89d72b2190f27c11d4b7fb/requests-2.22.0-py2.py3-none-any.whl',
            'requests', '2.22.0',
        ),
        (PackageManager.PYPI, 'packages/source/python-dateutil-2.8.1.tar.gz', 'python-dateutil', '2.8.1'),
        (PackageManager.BOWER, 'bower-remote/bootstrap/bootstrap-v4.3.1.tar.gz', 'bootstrap', '4.3.1'),
        (PackageManager.GO, 'h12.io/socks/@v/v1.0.1.zip', 'h12.io/socks', 'v1.0.1'),
        (
            PackageManager.GO,
            'github.com/google/go-github/@v/v17.0.0+incompatible.zip',
            'github.com/google/go-github', 'v17.0.0',
        ),
        (
            PackageManager.GO,
            'github.com/golang/glog/@v/v0.0.0-20160126235308-23def4e6c14b.mod',
            'github.com/golang/glog', 'v0.0.0-20160126235308-23def4e6c14b',
        ),
        (
            PackageManager.IVY,
            'org/apache/commons/commons-lang3/3.9/jars/commons-lang3.jar',
            'org.apache.commons:commons-lang3', '3.9',
        ),
    ],
)
def test_resolve_from_path(resolver, package_manager, path, name, version):
    coordinate = resolver.resolve(path, None, package_manager)
    assert coordinate.is_valid
    assert coordinate.name == name
    assert coordinate.version == version


def test_resolve_unparsable_path_is_invalid(resolver):
    coordinate = resolver.resolve('lodash/lodash.tgz', None, PackageManager.NPM)
    assert not coordinate.is_valid
    assert coordinate.package_manager == PackageManager.NPM


def test_resolve_maven_from_layout(resolver):
    layout = FileLayout('org.apache.commons', 'commons-lang3', '3.9')
    coordinate = resolver.resolve('ignored/path.jar', layout, PackageManager.MAVEN)
    assert coordinate.name == 'org.apache.commons:commons-lang3'
    assert coordinate.version == '3.9'
    assert coordinate.package_type == 'maven'


def test_resolve_maven_snapshot_appends_integration_revision(resolver):
    layout = FileLayout('com.acme', 'core', '1.0', '20200101.120000-1')
    coordinate = resolver.resolve('ignored/path.jar', layout, PackageManager.GRADLE)
    assert coordinate.version == '1.0-20200101.120000-1'


def test_npm_ignores_layout(resolver):
    layout = FileLayout('npm', 'wrong', '9.9.9')
    coordinate = resolver.resolve('lodash/-/lodash-0.2.1.tgz', layout, PackageManager.NPM)
    assert coordinate.name == 'lodash'
    assert coordinate.version == '0.2.1'


def test_unsupported_uses_layout_verbatim(resolver):
    layout = FileLayout(None, 'thing', '1.2')
    coordinate = resolver.resolve('whatever', layout, PackageManager.UNSUPPORTED)
    assert coordinate.name == 'thing'
    assert coordinate.version == '1.2'
    assert not coordinate.is_valid


def test_resolve_composer_by_commit_reference(resolver, composer):
    composer.find_version.return_value = '3.1.0'
    path = 'zircote/swagger-php/commits/9d172471e56433b5c7061006b9a766f262a3edfd/swagger-php-9d1724.zip'

    coordinate = resolver.resolve(path, None, PackageManager.COMPOSER)

    assert coordinate.name == 'zircote/swagger-php'
    assert coordinate.version == '3.1.0'
    assert coordinate.package_type == 'php'
    composer.find_version.assert_called_once_with(
        'zircote/swagger-php', '9d172471e56433b5c7061006b9a766f262a3edfd',
        None,
    )


def test_resolve_composer_uses_alternative_name(resolver, composer):
    composer.find_version.side_effect = [None, '2.0.0']
    composer.find_alternative_name.return_value = 'newvendor/pkg'

    coordinate = resolver.resolve('oldvendor/pkg/commits/abc123/pkg.zip', None, PackageManager.COMPOSER)

    assert coordinate.name == 'newvendor/pkg'
    assert coordinate.version == '2.0.0'


def test_resolve_composer_not_found_is_invalid(resolver, composer):
    composer.find_version.return_value = None
    composer.find_alternative_name.return_value = None

    coordinate = resolver.resolve('vendor/pkg/commits/abc123/pkg.zip', None, PackageManager.COMPOSER)
    assert not coordinate.is_valid


def test_resolve_swallows_registry_errors(resolver, composer):
    composer.find_version.side_effect = KeyError('packages')
    coordinate = resolver.resolve('vendor/pkg/commits/abc123/pkg.zip', None, PackageManager.COMPOSER)
    assert not coordinate.is_valid


def test_resolve_composer_forwards_deadline(resolver, composer):
    composer.find_version.side_effect = [None, '2.0.0']
    composer.find_alternative_name.return_value = 'newvendor/pkg'
    deadline = time.monotonic() + 5

    resolver.resolve('oldvendor/pkg/commits/abc123/pkg.zip', None, PackageManager.COMPOSER, deadline)

    assert composer.find_version.call_args_list == [
        call('oldvendor/pkg', 'abc123', deadline),
        call('newvendor/pkg', 'abc123', deadline),
    ]
    composer.find_alternative_name.assert_called_once_with('oldvendor/pkg', deadline)


def test_resolve_composer_after_deadline_is_invalid(resolver, composer):
    composer.find_version.side_effect = DeadlineExceeded('composer version lookup')

    coordinate = resolver.resolve(
        'vendor/pkg/commits/abc123/pkg.zip', None, PackageManager.COMPOSER,
        time.monotonic() - 10,
    )

    assert not coordinate.is_valid
    composer.find_alternative_name.assert_not_called()


def test_should_ignore():
    assert should_ignore('pkg/index.json', PackageManager.NPM)
    assert should_ignore('pkg/index.html', PackageManager.PYPI)
    assert should_ignore('dbup-core.4.5.0.nuspec', PackageManager.NUGET)
    assert should_ignore('h12.io/socks/@v/v1.0.1.mod', PackageManager.GO)
    assert not should_ignore('h12.io/socks/@v/v1.0.1.zip', PackageManager.GO)
    assert not should_ignore('lodash/-/lodash-0.2.1.tgz', PackageManager.NPM)


def test_strip_go_suffixes():
    assert strip_go_suffixes('a/@v/v1.0.0+incompatible.info') == 'a/@v/v1.0.0'
    assert strip_go_suffixes('a/@v/v1.0.0') == 'a/@v/v1.0.0'
