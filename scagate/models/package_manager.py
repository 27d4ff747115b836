from enum import Enum


class PackageManager(str, Enum):
    GRADLE = 'gradle'
    MAVEN = 'maven'
    SBT = 'sbt'
    IVY = 'ivy'
    NPM = 'npm'
    BOWER = 'bower'
    GO = 'go'
    PYPI = 'pypi'
    NUGET = 'nuget'
    DOCKER = 'docker'
    COMPOSER = 'composer'
    COCOAPODS = 'cocoapods'
    UNSUPPORTED = 'not-supported'

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return self.value

    @property
    def key(self) -> str:
        return self.value

    @property
    def package_type(self) -> str | None:
        """Ecosystem key understood by the risk API."""
        return PACKAGE_TYPES[self]

    @property
    def is_maven_family(self) -> bool:
        return self.package_type == 'maven'

    @classmethod
    def from_package_type(cls, package_type: str | None) -> 'PackageManager':
        """Map a host repository type to a package manager, never None."""
        if package_type is None:
            return cls.UNSUPPORTED
        try:
            member = cls(package_type.strip().lower())
        except ValueError:
            return cls.UNSUPPORTED
        return member


PACKAGE_TYPES: dict[PackageManager, str | None] = {
    PackageManager.GRADLE: 'maven',
    PackageManager.MAVEN: 'maven',
    PackageManager.SBT: 'maven',
    PackageManager.IVY: 'maven',
    PackageManager.NPM: 'npm',
    PackageManager.BOWER: 'npm',
    PackageManager.GO: 'go',
    PackageManager.PYPI: 'python',
    PackageManager.NUGET: 'nuget',
    PackageManager.DOCKER: 'docker',
    PackageManager.COMPOSER: 'php',
    PackageManager.COCOAPODS: 'ios',
    PackageManager.UNSUPPORTED: None,
}
