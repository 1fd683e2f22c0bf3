from typing import Any, Dict, Optional

import aiohttp

from ..config import REQUEST_TIMEOUT_SECONDS, get_logger

logger = get_logger(__name__)


class FeedClient:
    """
    Base class for upstream JSON feeds authenticated with an ``x-api-key`` header.

    Failures are not handled here: HTTP errors raise aiohttp.ClientResponseError
    and transport errors propagate as they are.
    """

    def __init__(self, base_url: str, api_key: str = '',
                 session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = REQUEST_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession()
        return self.session

    async def get_json(self, path: str, params: Dict[str, Any]) -> Any:
        headers = {'accept': 'application/json', 'x-api-key': self.api_key}
        url = f'{self.base_url}/{path.lstrip("/")}'
        async with self._get_session().get(url, params=params, headers=headers, timeout=self.timeout) as response:
            response.raise_for_status()
            return await response.json(content_type=None)
