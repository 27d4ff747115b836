import time
from datetime import timedelta
from pathlib import Path

import requests
import requests_cache
import structlog
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from scagate.__version__ import __version__
from scagate.core.exceptions import DeadlineExceeded

logger = structlog.get_logger('client')

USER_AGENT = f'scagate/{__version__}'
ORIGIN_HEADER = 'cxorigin'


def origin() -> str:
    return f'ScaGate {__version__}'


def _logging_hook(response, *args, **kwargs):
    if getattr(response, '_logged', False):
        return
    response._logged = True

    is_cached = getattr(response, 'from_cache', False)
    log_kwargs = {
        'method': response.request.method,
        'url': response.url,
        'status': response.status_code,
        'content_length': len(response.content) if response.content else 0,
        'elapsed': f"{response.elapsed.total_seconds():.3f}s",
        'cached': is_cached,
    }

    if is_cached:
        logger.debug('HTTP Request', _style='dim', **log_kwargs)
    else:
        logger.debug('HTTP Request', **log_kwargs)


def _mount(session: requests.Session, retries: int, pool_size: int) -> None:
    retry_strategy = Retry(
        total=retries,
        backoff_factor=1,
        status_forcelist=[500, 502, 503, 504],
    )
    adapter = HTTPAdapter(
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        max_retries=retry_strategy,
    )
    session.mount('https://', adapter)
    session.mount('http://', adapter)


def get_http_client(retries: int = 3, pool_size: int = 20) -> requests.Session:
    """
    Returns a session for the SCA and identity APIs with retry logic.

    Every request carries the User-Agent and origin headers.
    """
    session = requests.Session()
    session.headers.update({
        'User-Agent': USER_AGENT,
        ORIGIN_HEADER: origin(),
        'Accept': 'application/json',
    })
    session.hooks['response'].append(_logging_hook)
    _mount(session, retries, pool_size)

    logger.debug('Initialized HTTP Client', retries=retries, pool_size=pool_size)
    return session


def get_registry_client(
    cache_name: str = '.requests-cache/packagist.sqlite3',
    expire_after: int = 3600,
    retries: int = 3,
    pool_size: int = 10,
) -> requests_cache.CachedSession:
    """
    Returns a cached session for public package registry lookups.

    Only 200 responses are cached so a missing package is looked up again.
    """
    cache_path = Path(cache_name)
    cache_path.parent.mkdir(parents=True, exist_ok=True)

    session = requests_cache.CachedSession(
        cache_name=cache_name,
        backend='sqlite',
        expire_after=timedelta(seconds=expire_after),
        allowable_codes=[200],
    )
    session.headers.update({
        'User-Agent': USER_AGENT,
        ORIGIN_HEADER: origin(),
    })
    session.hooks['response'].append(_logging_hook)
    _mount(session, retries, pool_size)

    logger.debug(
        'Initialized Cached Registry Client',
        cache_name=cache_name,
        expire_after=expire_after,
    )
    return session


def request_timeout(default: float, deadline: float | None, operation: str) -> float:
    """
    Clamp a request timeout to the time left before `deadline`.

    `deadline` is an absolute time.monotonic() value.

    Raises:
        DeadlineExceeded if no time is left
    """
    if deadline is None:
        return default
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise DeadlineExceeded(operation)
    return min(default, remaining)
