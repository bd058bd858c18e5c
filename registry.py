"""Docker Hub style tag listing client.

Walks ``/v2/repositories/{namespace}/{repository}/tags`` page by page,
following the ``next`` URL until the registry stops returning one.
"""

import itertools
import logging
from typing import Iterator, List, Optional, Tuple

import requests

from errors import RegistryError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://hub.docker.com"
DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 100
REQUEST_TIMEOUT = 30


class RegistryClient:
    """Tag listing client for a Docker Hub compatible registry API."""

    def __init__(self, registry_url: str = DEFAULT_REGISTRY_URL,
                 max_pages: int = DEFAULT_MAX_PAGES,
                 timeout: float = REQUEST_TIMEOUT):
        self.registry_url = registry_url.rstrip('/')
        self.max_pages = max_pages
        self.timeout = timeout
        self._session = requests.Session()

    def tags_url(self, namespace: str, repository: str, page_size: int) -> str:
        return (f"{self.registry_url}/v2/repositories/{namespace}/{repository}"
                f"/tags?page_size={page_size}")

    def _get_page(self, url: str) -> Tuple[List[str], Optional[str]]:
        """Fetch one page and return (tag names, next page URL)."""
        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise RegistryError(f"Error getting tags from {url}: {e}") from e
        except ValueError as e:
            raise RegistryError(f"Malformed response from {url}: {e}") from e

        if not isinstance(data, dict):
            raise RegistryError(f"Malformed response from {url}: expected an object")
        results = data.get('results') or []
        if not isinstance(results, list):
            raise RegistryError(f"Malformed response from {url}: 'results' is not a list")

        names = []
        for result in results:
            name = result.get('name') if isinstance(result, dict) else None
            if name is None or name == '':
                continue
            if not isinstance(name, str):
                raise RegistryError(f"Malformed response from {url}: tag name {name!r} is not a string")
            names.append(name)
        return names, data.get('next') or None

    def _iter_pages(self, url: str) -> Iterator[List[str]]:
        pages = 0
        while url:
            if pages >= self.max_pages:
                raise RegistryError(
                    f"Gave up after {self.max_pages} pages; registry keeps returning 'next'"
                )
            names, url = self._get_page(url)
            pages += 1
            logger.debug("Page %d: %d tags", pages, len(names))
            yield names

    def fetch_all_tags(self, namespace: str, repository: str,
                       page_size: int = DEFAULT_PAGE_SIZE) -> List[str]:
        """Return every tag name of namespace/repository in the order received.

        Raises RegistryError on any failure; no partial list is returned.
        """
        url = self.tags_url(namespace, repository, page_size)
        tags = list(itertools.chain.from_iterable(self._iter_pages(url)))
        logger.debug("Fetched %d tags for %s/%s", len(tags), namespace, repository)
        return tags


def fetch_all_tags(namespace: str, repository: str,
                   page_size: int = DEFAULT_PAGE_SIZE) -> List[str]:
    """Fetch all tags from the default registry."""
    return RegistryClient().fetch_all_tags(namespace, repository, page_size)
