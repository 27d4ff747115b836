import json
import time
from urllib.parse import quote

import requests
import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError
from ratelimit import RateLimitException
from ratelimit import limits

from scagate.core.client import get_http_client
from scagate.core.client import request_timeout
from scagate.core.config import get_config
from scagate.core.exceptions import DeadlineExceeded
from scagate.core.exceptions import ScaError
from scagate.core.exceptions import UnexpectedResponseBody
from scagate.core.exceptions import UnexpectedResponseCode
from scagate.core.exceptions import UserNotAuthenticated
from scagate.models.artifact_info import ArtifactInfo
from scagate.models.coordinate import ArtifactCoordinate
from scagate.models.risk import PackageLicenses
from scagate.models.risk import RiskAggregation
from scagate.models.risk import Vulnerability
from scagate.services.fallbacks import apply_fallback
from scagate.services.token_manager import AccessTokenManager

logger = structlog.get_logger('risk_client')

# Stay well below the API gateway limit shared by all plugin instances
API_CALLS = 600
API_PERIOD = 60

RISK_AGGREGATION_PATH = 'public/risk-aggregation/aggregated-risks'
VULNERABILITIES_PATH = 'vulnerabilities/search-requests'
PRIVATE_DEPENDENCIES_PATH = 'private-dependencies-repository/dependencies'

_vulnerabilities_adapter = TypeAdapter(list[Vulnerability])


def _encode(value: str) -> str:
    return quote(value, safe='')


class RiskAggregationClient:
    """Client for the SCA package, risk aggregation and license endpoints."""

    def __init__(
        self,
        api_url: str | None = None,
        session: requests.Session | None = None,
        token_manager: AccessTokenManager | None = None,
        timeout: float | None = None,
    ):
        config = get_config()
        url = api_url or config.api.api_url
        if not url.endswith('/'):
            url += '/'
        self.api_url = url
        self.session = session or get_http_client()
        self.token_manager = token_manager
        self.timeout = timeout or config.api.timeout

    @limits(calls=API_CALLS, period=API_PERIOD)
    def _take_slot(self) -> None:
        """Consume one call of the API rate limit, or raise RateLimitException."""

    def _wait_for_slot(self, deadline: float | None, operation: str) -> None:
        while True:
            try:
                self._take_slot()
                return
            except RateLimitException as e:
                if deadline is not None and time.monotonic() + e.period_remaining >= deadline:
                    raise DeadlineExceeded(operation) from e
                logger.debug(
                    'API rate limit reached, waiting',
                    operation=operation, seconds=round(e.period_remaining, 2),
                )
                time.sleep(e.period_remaining)

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        deadline: float | None = None,
        authenticated: bool = False,
        **kwargs,
    ) -> requests.Response:
        self._wait_for_slot(deadline, operation)
        headers = kwargs.pop('headers', {})
        if authenticated:
            if self.token_manager is None:
                raise UserNotAuthenticated()
            key, value = self.token_manager.get_authorization_header(deadline)
            headers[key] = value

        return self.session.request(
            method,
            f"{self.api_url}{path}",
            headers=headers,
            timeout=request_timeout(self.timeout, deadline, operation),
            **kwargs,
        )

    @staticmethod
    def _expect_ok(response: requests.Response) -> None:
        if response.status_code != 200:
            raise UnexpectedResponseCode(response.status_code)

    # -- Artifact information --

    def _artifact_info_response(
        self,
        package_type: str,
        name: str,
        version: str,
        private: bool,
        deadline: float | None,
    ) -> requests.Response:
        if private:
            path = f"packages/{package_type}/{_encode(name)}/{_encode(version)}"
        else:
            path = f"public/packages/{package_type}/{_encode(name)}/versions/{_encode(version)}"
        return self._request(
            'GET', path, 'artifact information', deadline, authenticated=private,
        )

    def get_artifact_info(
        self,
        package_type: str,
        name: str,
        version: str,
        private: bool = False,
        deadline: float | None = None,
    ) -> ArtifactInfo:
        """
        Fetch the package metadata of one version.

        A 404 from the public API is retried once under the ecosystem's
        alternative name (PyPI: '-' and '_' swapped).

        Raises:
            UnexpectedResponseCode for any final non-200 status
            UnexpectedResponseBody if the body is not an artifact document
        """
        response = self._artifact_info_response(
            package_type, name, version, private, deadline,
        )

        if response.status_code == 404 and not private:
            new_name = apply_fallback(package_type, name)
            if new_name is None:
                raise UnexpectedResponseCode(404)
            logger.debug(
                'Artifact not found, retrying with fallback name',
                name=name, new_name=new_name,
            )
            response = self._artifact_info_response(
                package_type, new_name, version, private, deadline,
            )

        self._expect_ok(response)

        try:
            return ArtifactInfo.model_validate_json(response.text)
        except ValidationError:
            raise UnexpectedResponseBody(response.text)

    # -- Risk aggregation and licenses --

    def get_risk_aggregation(
        self,
        package_type: str,
        name: str,
        version: str,
        deadline: float | None = None,
    ) -> RiskAggregation:
        """
        Fetch aggregated risks and merge in the identified licenses.

        Raises:
            UnexpectedResponseCode for a non-200 status
            UnexpectedResponseBody if the body has no aggregation
        """
        body = {
            'packageName': name,
            'version': version,
            'packageManager': package_type,
        }
        response = self._request(
            'POST', RISK_AGGREGATION_PATH, 'risk aggregation', deadline,
            json=body,
        )
        self._expect_ok(response)

        try:
            risks = RiskAggregation.model_validate_json(response.text)
        except ValidationError:
            raise UnexpectedResponseBody(response.text)

        risks.licenses = self.find_licenses(package_type, name, version, deadline)
        return risks

    def find_licenses(
        self,
        package_type: str,
        name: str,
        version: str,
        deadline: float | None = None,
    ) -> list[str]:
        """Identified license names; empty when the lookup fails for any reason."""
        try:
            return self.get_licenses(package_type, name, version, deadline)
        except (ScaError, requests.RequestException) as e:
            logger.debug(
                'License lookup failed, no licenses recorded',
                name=name, version=version, error=str(e),
            )
            return []

    def get_licenses(
        self,
        package_type: str,
        name: str,
        version: str,
        deadline: float | None = None,
    ) -> list[str]:
        def fetch(package_name: str) -> requests.Response:
            path = (
                f"public/packages/{package_type}/{_encode(package_name)}"
                f"/versions/{_encode(version)}/licenses"
            )
            return self._request('GET', path, 'license lookup', deadline)

        response = fetch(name)
        if response.status_code == 404:
            new_name = apply_fallback(package_type, name)
            if new_name is None:
                raise UnexpectedResponseCode(404)
            response = fetch(new_name)

        self._expect_ok(response)

        try:
            licenses = PackageLicenses.model_validate_json(response.text)
        except ValidationError:
            raise UnexpectedResponseBody(response.text)
        return licenses.names

    # -- Authenticated endpoints --

    def get_vulnerabilities(
        self,
        identifier: str,
        deadline: float | None = None,
    ) -> list[Vulnerability]:
        """List the vulnerabilities of a package known by its SCA identifier."""
        response = self._request(
            'POST', VULNERABILITIES_PATH, 'vulnerability search', deadline,
            authenticated=True, json=[identifier],
        )
        self._expect_ok(response)

        try:
            return _vulnerabilities_adapter.validate_json(response.text)
        except ValidationError:
            raise UnexpectedResponseBody(response.text)

    def suggest_private_package(
        self,
        coordinate: ArtifactCoordinate,
        deadline: float | None = None,
    ) -> bool:
        """Declare a package as resolved from a private repository."""
        body = [{
            'name': coordinate.name,
            'packageManager': coordinate.package_type,
            'version': coordinate.version,
            'resolvedBy': 'PrivateArtifactory',
        }]
        response = self._request(
            'POST', PRIVATE_DEPENDENCIES_PATH, 'private package suggestion',
            deadline, authenticated=True, data=json.dumps(body),
            headers={'Content-Type': 'application/json'},
        )
        if response.status_code != 200:
            raise UnexpectedResponseBody(response.text)
        return True
