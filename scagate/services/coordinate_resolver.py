import re

import structlog

from scagate.models.coordinate import ArtifactCoordinate
from scagate.models.coordinate import FileLayout
from scagate.models.package_manager import PackageManager
from scagate.services.composer_service import ComposerRegistryClient

logger = structlog.get_logger('coordinate_resolver')

# Ecosystems whose host layout is unreliable; always parsed from the path.
PATH_ONLY = frozenset({PackageManager.NPM})

GO_SUFFIXES = ('.mod', '.info', '.zip')
GO_INCOMPATIBLE = '+incompatible'

_VERSION_TOKEN = r'\d[0-9A-Za-z-]*(?:\.[0-9A-Za-z-]+)*'

PATTERNS: dict[PackageManager, re.Pattern] = {
    PackageManager.NPM: re.compile(
        r'(?P<name>.+)/-/.+?-(?P<version>\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]+)?)\.tgz',
    ),
    PackageManager.PYPI: re.compile(
        r'.+/(?P<name>[^/]+?)-(?P<version>\d+(?:\.[A-Za-z0-9]+)*)(?:-[^/]*)?'
        r'\.(?:whl|egg|zip|tar\.gz)',
    ),
    PackageManager.NUGET: re.compile(
        r'(?:.*/)?(?P<name>[^/]*?)\.(?P<version>\d+(?:\.\d+){2,}'
        r'(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?)\.nupkg',
    ),
    PackageManager.BOWER: re.compile(
        r'.*/(?P<name>[^/]+?)-v?(?P<version>\d+(?:\.[0-9A-Za-z]+)*).*\.tar\.gz',
    ),
    PackageManager.IVY: re.compile(
        rf'(?P<organization>.+)/(?P<module>[^/]+)/(?P<version>{_VERSION_TOKEN})/.+',
    ),
    PackageManager.GO: re.compile(r'(?P<name>.+)/@v/(?P<version>[^/]+)'),
    PackageManager.COMPOSER: re.compile(
        r'(?P<name>.+?)/commits/(?P<reference>[^/]+)/.+',
    ),
}
PATTERNS[PackageManager.SBT] = PATTERNS[PackageManager.IVY]


def should_ignore(path: str, package_manager: PackageManager) -> bool:
    """True for repository files that are not package artifacts."""
    not_nuget_package = package_manager == PackageManager.NUGET and not path.endswith('.nupkg')
    not_go_package = package_manager == PackageManager.GO and not path.endswith('.zip')
    return not_nuget_package or not_go_package or path.endswith(('.json', '.html'))


def strip_go_suffixes(path: str) -> str:
    for suffix in GO_SUFFIXES:
        if path.endswith(suffix):
            path = path[:-len(suffix)]
            break
    if path.endswith(GO_INCOMPATIBLE):
        path = path[:-len(GO_INCOMPATIBLE)]
    return path


class CoordinateResolver:
    """Maps a repository path and its layout hints to an ArtifactCoordinate."""

    def __init__(self, composer: ComposerRegistryClient | None = None):
        self._composer = composer

    @property
    def composer(self) -> ComposerRegistryClient:
        if self._composer is None:
            self._composer = ComposerRegistryClient()
        return self._composer

    def resolve(
        self,
        path: str,
        layout: FileLayout | None,
        package_manager: PackageManager,
        deadline: float | None = None,
    ) -> ArtifactCoordinate:
        """
        Resolve the coordinate of the artifact stored at `path`.

        Never raises: an unparsable path or a failing registry lookup yields
        an invalid coordinate, and so does a registry lookup made after
        `deadline` has passed.
        """
        layout = layout or FileLayout()

        if package_manager == PackageManager.UNSUPPORTED:
            return ArtifactCoordinate(
                package_manager, layout.module, layout.base_revision,
            )

        try:
            if layout.is_valid and package_manager not in PATH_ONLY:
                return self._from_layout(layout, package_manager)
            return self._from_path(path, package_manager, deadline)
        except Exception as e:
            logger.error(
                'There was a problem trying to resolve the artifact coordinate',
                path=path, package_manager=package_manager.key, error=str(e),
            )
            return ArtifactCoordinate.invalid(package_manager)

    def _from_layout(self, layout: FileLayout, package_manager: PackageManager) -> ArtifactCoordinate:
        name = layout.module
        version = layout.base_revision

        if package_manager.is_maven_family:
            name = f"{layout.organization}:{layout.module}"
            if layout.file_integration_revision:
                version = f"{version}-{layout.file_integration_revision}"

        return ArtifactCoordinate(package_manager, name, version)

    def _from_path(
        self,
        path: str,
        package_manager: PackageManager,
        deadline: float | None,
    ) -> ArtifactCoordinate:
        if package_manager == PackageManager.GO:
            path = strip_go_suffixes(path)

        pattern = PATTERNS.get(package_manager)
        if pattern is None:
            logger.info(
                'Path grammar not supported for package type',
                package_manager=package_manager.key, path=path,
            )
            return ArtifactCoordinate.invalid(package_manager)

        match = pattern.fullmatch(path)
        if match is None:
            logger.error(
                'Unable to parse artifact path', package_manager=package_manager.key,
                path=path,
            )
            return ArtifactCoordinate.invalid(package_manager)

        if package_manager == PackageManager.COMPOSER:
            return self._resolve_composer(
                match.group('name'), match.group('reference'), package_manager,
                deadline,
            )

        if package_manager in (PackageManager.IVY, PackageManager.SBT):
            organization = match.group('organization').replace('/', '.')
            name = f"{organization}:{match.group('module')}"
            return ArtifactCoordinate(package_manager, name, match.group('version'))

        return ArtifactCoordinate(
            package_manager, match.group('name'), match.group('version'),
        )

    def _resolve_composer(
        self,
        name: str,
        reference: str,
        package_manager: PackageManager,
        deadline: float | None,
    ) -> ArtifactCoordinate:
        version = self.composer.find_version(name, reference, deadline)
        if version is not None:
            return ArtifactCoordinate(package_manager, name, version)

        new_name = self.composer.find_alternative_name(name, deadline)
        if new_name is not None:
            version = self.composer.find_version(new_name, reference, deadline)
            if version is not None:
                return ArtifactCoordinate(package_manager, new_name, version)

        logger.warning(
            'Unable to get artifact version from Composer',
            name=name, reference=reference,
        )
        return ArtifactCoordinate.invalid(package_manager)
