"""
Client for the edge-cloud chat-bot document store.

Every call is a single outbound request scoped to one client: the client's API
key goes in the ``x-api-key`` header and its project id in the body or query.
Nothing is retried here. A replace that hits a document the store no longer
knows about (HTTP 404) falls back to creating it again; every other failure is
raised as RemoteUnavailableError for the caller to decide.
"""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, Union

import aiohttp

from ..config import REQUEST_TIMEOUT_SECONDS, DEFAULT_PAGE_SIZE
from .config import ClientCredentials
from .error_tracker import (
    MissingRequiredIdentifierError, RemoteNotFoundError, RemoteUnavailableError,
)
from .logging_manager import get_logger

logger = get_logger(__name__)

Content = Union[str, bytes]


def build_document_metadata(filename: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Metadata blob attached to an uploaded document.

    Caller supplied keys override the fixed ``type`` and ``filename`` fields.
    """
    return {
        'type': 'file',
        'filename': filename,
        **(metadata or {})
    }


def guess_content_type(filename: str) -> str:
    """Reports are CSV; every other upload is sent as JSON."""
    if filename.lower().endswith('.csv'):
        return 'text/csv'
    return 'application/json'


def build_payload(content: Content, filename: str, project_id: str,
                  metadata: Optional[Dict[str, Any]] = None) -> aiohttp.FormData:
    """Multipart body for document create/replace requests."""
    if isinstance(content, str):
        content = content.encode('utf-8')
    data = aiohttp.FormData()
    data.add_field('file', content, filename=filename, content_type=guess_content_type(filename))
    data.add_field('project_id', project_id)
    data.add_field('metadata', json.dumps(build_document_metadata(filename, metadata), ensure_ascii=False))
    return data


class RemoteDocumentClient:
    """
    Create, replace, fetch and list documents of a client's chat-bot.

    Can be used as an async context manager; otherwise call ``close()`` when done.
    """

    def __init__(self,
                 credentials_resolver: Callable[[str], ClientCredentials] = ClientCredentials.from_environment,
                 session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = REQUEST_TIMEOUT_SECONDS):
        """
        Args:
            credentials_resolver: Maps a client id to its credentials
            session: Shared aiohttp session; one is created on first use if omitted
            timeout: Total timeout per request in seconds
        """
        self.credentials_resolver = credentials_resolver
        self.session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._credentials: Dict[str, ClientCredentials] = {}

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

    def credentials(self, client_id: str) -> ClientCredentials:
        if client_id not in self._credentials:
            self._credentials[client_id] = self.credentials_resolver(client_id)
        return self._credentials[client_id]

    def _chatbot_url(self, creds: ClientCredentials, *parts: str) -> str:
        return '/'.join([f'{creds.host}/chatbot/{creds.chatbot_id}', *parts])

    async def _request(self, method: str, url: str, creds: ClientCredentials, context: str, **kwargs) -> Any:
        """
        Send one request and return the decoded JSON response.

        Raises:
            RemoteNotFoundError: On HTTP 404
            RemoteUnavailableError: On any other HTTP error or transport failure
        """
        headers = {'x-api-key': creds.api_key}
        try:
            async with self._get_session().request(method, url, headers=headers, timeout=self.timeout, **kwargs) as response:
                if response.status == 404:
                    raise RemoteNotFoundError(
                        f"{method} {url} returned 404",
                        source_id=context,
                        status_code=404
                    )
                if response.status >= 400:
                    error = await response.text()
                    raise RemoteUnavailableError(
                        f"{method} {url} failed with status {response.status}: {error}",
                        source_id=context,
                        status_code=response.status
                    )
                if response.status == 204:
                    return None
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise RemoteUnavailableError(
                        f"{method} {url} returned a body that is not JSON: {e}",
                        source_id=context,
                        status_code=response.status
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteUnavailableError(
                f"{method} {url} failed: {str(e) or type(e).__name__}",
                source_id=context,
                recovery_suggestion="Check connectivity to the controller host; the next sync cycle will retry"
            ) from e

    @staticmethod
    def _body(payload: Any) -> Any:
        if isinstance(payload, dict):
            return payload.get('body')
        return None

    @classmethod
    def _document_id(cls, payload: Any) -> Optional[str]:
        body = cls._body(payload)
        if isinstance(body, dict) and body.get('id'):
            return str(body['id'])
        return None

    async def create(self, content: Content, filename: str, client_id: str,
                     metadata: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """
        Upload a new document.

        Returns:
            The id assigned by the store, or None if the response carries no id

        Raises:
            RemoteUnavailableError: On transport or server failure (not retried)
        """
        creds = self.credentials(client_id)
        context = f'{client_id}/{filename}'
        try:
            payload = await self._request(
                'POST', self._chatbot_url(creds, 'document'), creds, context,
                data=build_payload(content, filename, creds.project_id, metadata)
            )
        except (RemoteNotFoundError, RemoteUnavailableError) as e:
            logger.error(f"Error - [{client_id}][{filename}] Error uploading document: {e.message}",
                         extra={'details': {'client_id': client_id, 'filename': filename, 'status_code': e.status_code}})
            if isinstance(e, RemoteNotFoundError):
                raise RemoteUnavailableError(e.message, source_id=context, status_code=404) from e
            raise

        document_id = self._document_id(payload)
        if not document_id:
            logger.warning(f"[{client_id}][{filename}] Upload response carried no document id")
            return None
        logger.info(f"[{client_id}][{filename}] Document created with id {document_id}")
        return document_id

    async def replace(self, document_id: Optional[str], content: Content, filename: str, client_id: str,
                      metadata: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """
        Replace the content of an existing document.

        If the store no longer has the document, it is created again and the
        new id is returned.

        Raises:
            MissingRequiredIdentifierError: If document_id is empty
            RemoteUnavailableError: On any failure other than 404
        """
        if not document_id:
            raise MissingRequiredIdentifierError(
                'Document ID is required for replacing a document',
                source_id=f'{client_id}/{filename}'
            )

        creds = self.credentials(client_id)
        context = f'{client_id}/{filename}'
        try:
            payload = await self._request(
                'PUT', self._chatbot_url(creds, 'document', document_id), creds, context,
                data=build_payload(content, filename, creds.project_id, metadata)
            )
        except RemoteNotFoundError:
            logger.info(f"[{client_id}][{filename}] Document {document_id} doesn't exist, uploading...")
            return await self.create(content, filename, client_id, metadata)
        except RemoteUnavailableError as e:
            logger.error(f"Error - [{client_id}][{filename}] Error replacing document {document_id}: {e.message}",
                         extra={'details': {'client_id': client_id, 'filename': filename, 'status_code': e.status_code}})
            raise

        logger.info(f"[{client_id}][{filename}] Document {document_id} replaced")
        return self._document_id(payload) or document_id

    async def fetch(self, document_id: Optional[str], client_id: str) -> Dict[str, Any]:
        """
        Fetch a single document.

        Raises:
            MissingRequiredIdentifierError: If document_id is empty
            RemoteNotFoundError: If the store has no such document
            RemoteUnavailableError: On any other failure
        """
        if not document_id:
            raise MissingRequiredIdentifierError('Document ID is required', source_id=client_id)

        creds = self.credentials(client_id)
        payload = await self._request(
            'GET', self._chatbot_url(creds, 'document', document_id), creds, f'{client_id}/{document_id}',
            params={'project_id': creds.project_id}
        )
        return self._body(payload)

    async def list(self, client_id: str, page: int = 0, page_size: int = DEFAULT_PAGE_SIZE) -> List[Dict[str, Any]]:
        """Fetch one page of the client's documents, in the store's order."""
        creds = self.credentials(client_id)
        payload = await self._request(
            'GET', self._chatbot_url(creds, 'document', 'list'), creds, client_id,
            params={'project_id': creds.project_id, 'page': page, 'number': page_size}
        )
        documents = self._body(payload) or []
        logger.info(f"[{client_id}] Documents list fetched (page: {page}, count: {len(documents)})")
        return documents

    async def get_chatbot(self, client_id: str) -> Dict[str, Any]:
        """Fetch the client's chat-bot resource."""
        creds = self.credentials(client_id)
        payload = await self._request(
            'GET', self._chatbot_url(creds), creds, client_id,
            params={'project_id': creds.project_id}
        )
        return self._body(payload) or {}

    async def update_chatbot(self, client_id: str, body: Dict[str, Any]) -> Any:
        """Update fields of the client's chat-bot resource."""
        creds = self.credentials(client_id)
        payload = await self._request('PUT', self._chatbot_url(creds), creds, client_id, json=body)
        return self._body(payload)
