import requests
import structlog

from scagate.core.client import get_registry_client
from scagate.core.client import request_timeout
from scagate.core.config import get_config

logger = structlog.get_logger('composer_service')


class ComposerRegistryClient:
    """Looks up Composer package versions on a Packagist compatible registry."""

    def __init__(
        self,
        base_url: str | None = None,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ):
        config = get_config()
        self.base_url = (base_url or config.api.packagist_url).rstrip('/')
        self._session = session
        self.cache_ttl = config.api.registry_cache_ttl
        self.timeout = timeout or config.api.timeout

    @property
    def session(self) -> requests.Session:
        # The on-disk cache is only created once a Composer path shows up
        if self._session is None:
            self._session = get_registry_client(expire_after=self.cache_ttl)
        return self._session

    def find_version(
        self,
        name: str,
        reference: str,
        deadline: float | None = None,
    ) -> str | None:
        """
        Find the version whose source commit reference matches `reference`.

        Returns None when the registry has no such package or version.
        Malformed registry documents raise.
        """
        url = f"{self.base_url}/p2/{name}.json"
        timeout = request_timeout(self.timeout, deadline, 'composer version lookup')
        response = self.session.get(url, timeout=timeout)
        if response.status_code != 200:
            logger.debug(
                'Package not found on registry',
                name=name, status=response.status_code,
            )
            return None

        versions = response.json()['packages'][name]
        for entry in versions:
            source = entry.get('source')
            if not source:
                continue
            if str(source.get('reference', '')).lower() == reference.lower():
                return entry['version']
        return None

    def find_alternative_name(self, name: str, deadline: float | None = None) -> str | None:
        """
        Search the registry for a package whose repository URL contains `name`.

        Used when a package was renamed on the registry but the repository
        path still carries the old vendor. Only an expired deadline raises.
        """
        logger.debug('Using Composer fallback', name=name)

        parts = name.split('/', 1)
        if len(parts) != 2:
            return None

        timeout = request_timeout(self.timeout, deadline, 'composer search')
        try:
            response = self.session.get(
                f"{self.base_url}/search.json",
                params={'q': parts[1]},
                timeout=timeout,
            )
            if response.status_code == 200:
                for result in response.json().get('results', []):
                    repository = result.get('repository')
                    if repository and name in repository:
                        logger.debug(
                            'Composer fallback found new name for the artifact',
                            name=name, new_name=result.get('name'),
                        )
                        return result.get('name')
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.debug('Composer fallback failed', name=name, error=str(e))
            return None

        logger.debug(
            "Composer fallback couldn't find any alternative name for the artifact",
            name=name,
        )
        return None
