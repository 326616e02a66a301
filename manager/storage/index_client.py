"""
Index-store client used for auxiliary verification.

IndexStoreClient wraps an httpx.AsyncClient bound to a single store node.
Only that address is ever contacted; other cluster members are not
discovered.

Example:
    async with await connect("n1") as client:
        await client.index("registers", "default", {"id": "42", "value": 3})
        doc = await client.get("registers", "default", "42")
        everything = await client.search("registers")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import httpx

from common.models.document import StoredDocument
from common.retry import constant_backoff, with_retry
from common.utils import normalize_source
from manager.config import DeploymentSettings, get_settings
from manager.errors import DocumentNotCreatedError, IndexStoreError, NoNodeAvailableError

logger = logging.getLogger(__name__)


def _doc_path(collection: str, kind: str, doc_id: Any) -> str:
    return "/" + "/".join(quote(str(part), safe="") for part in (collection, kind, doc_id))


def _document(hit: dict[str, Any]) -> StoredDocument:
    return StoredDocument(
        id=str(hit["_id"]),
        version=hit.get("_version"),
        index=hit.get("_index"),
        kind=hit.get("_type"),
        source=normalize_source(hit.get("_source") or {}),
    )


@dataclass
class IndexStoreClient:
    """
    Client for a single index-store node.

    Attributes:
        http: httpx.AsyncClient with base_url set to the store node.
        page_size: Hits fetched per scroll page.
        keep_alive_ms: Scroll context lifetime between page fetches.
    """

    http: httpx.AsyncClient
    page_size: int = 128
    keep_alive_ms: int = 60000

    async def __aenter__(self) -> "IndexStoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http.aclose()

    async def cluster_state(self) -> dict[str, Any]:
        """
        Fetch the cluster state.

        Raises:
            NoNodeAvailableError: When the node cannot be reached.
            httpx.HTTPStatusError: On HTTP error responses.
        """
        try:
            response = await self.http.get("/_cluster/state")
        except httpx.TransportError as e:
            raise NoNodeAvailableError(f"No index-store node available: {e}") from e
        response.raise_for_status()
        return response.json()

    async def index(self, collection: str, kind: str, document: dict[str, Any]) -> dict[str, Any]:
        """
        Write a document keyed by its ``id``.

        Raises:
            ValueError: When the document has no id. Nothing is sent.
            DocumentNotCreatedError: When the store does not answer 201.
        """
        doc_id = document.get("id")
        if doc_id is None or str(doc_id) == "":
            raise ValueError("Document must carry a non-empty id")

        response = await self.http.put(_doc_path(collection, kind, doc_id), json=document)
        if response.status_code != 201:
            raise DocumentNotCreatedError(
                f"Document {doc_id} not created in {collection}: HTTP {response.status_code}"
            )
        return response.json()

    async def get(self, collection: str, kind: str, doc_id: Any) -> Optional[StoredDocument]:
        """Fetch a document by id. Returns None when it does not exist."""
        response = await self.http.get(_doc_path(collection, kind, doc_id))
        if response.status_code == 404:
            return None
        response.raise_for_status()
        body = response.json()
        if not body.get("found", False):
            return None
        return _document(body)

    async def search(self, collection: Optional[str] = None) -> list[StoredDocument]:
        """
        Read every document with a scroll, one page at a time.

        Each call opens its own scroll context and clears it when the
        traversal ends.
        """
        keep_alive = f"{self.keep_alive_ms}ms"
        path = f"/{quote(collection, safe='')}/_search" if collection else "/_search"
        response = await self.http.post(
            path,
            params={"scroll": keep_alive},
            json={"size": self.page_size, "version": True, "query": {"match_all": {}}},
        )
        response.raise_for_status()
        page = response.json()

        results: list[StoredDocument] = []
        pages = 0
        while True:
            hits = page.get("hits", {}).get("hits", [])
            if not hits:
                break
            pages += 1
            results.extend(_document(hit) for hit in hits)
            response = await self.http.post(
                "/_search/scroll",
                json={"scroll": keep_alive, "scroll_id": page["_scroll_id"]},
            )
            response.raise_for_status()
            page = response.json()

        scroll_id = page.get("_scroll_id")
        if scroll_id:
            cleared = await self.http.request(
                "DELETE", "/_search/scroll", json={"scroll_id": [scroll_id]}
            )
            if cleared.status_code not in (200, 404):
                logger.debug(f"Scroll context not cleared: HTTP {cleared.status_code}")

        logger.debug(f"Scrolled {len(results)} documents in {pages} pages")
        return results


async def connect(
    node: str,
    settings: Optional[DeploymentSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> IndexStoreClient:
    """
    Open a client to a node and wait until its cluster state is readable.

    Only an unreachable node is retried, up to ``index_connect_attempts``
    times with ``index_connect_backoff`` seconds between attempts. Any
    other error closes the client and propagates.
    """
    settings = settings or get_settings()
    http = httpx.AsyncClient(
        base_url=f"http://{node}:{settings.index_port}",
        transport=transport,
    )
    client = IndexStoreClient(
        http=http,
        page_size=settings.scroll_page_size,
        keep_alive_ms=settings.scroll_keep_alive_ms,
    )

    def not_ready(attempt: int, error: BaseException) -> None:
        logger.info(f"Client not ready: {type(error).__name__} (attempt {attempt})")

    try:
        state = await with_retry(
            client.cluster_state,
            max_attempts=settings.index_connect_attempts,
            backoff=constant_backoff(settings.index_connect_backoff),
            retry_on=(NoNodeAvailableError,),
            on_retry=not_ready,
        )
        reported = state.get("cluster_name")
        if reported is not None and reported != settings.cluster_name:
            raise IndexStoreError(
                f"{node} belongs to cluster {reported!r}, expected {settings.cluster_name!r}"
            )
    except BaseException:
        await client.close()
        raise

    logger.info(f"Connected to index store on {node}")
    return client


async def index(
    client: IndexStoreClient, collection: str, kind: str, document: dict[str, Any]
) -> dict[str, Any]:
    return await client.index(collection, kind, document)


async def get(
    client: IndexStoreClient, collection: str, kind: str, doc_id: Any
) -> Optional[StoredDocument]:
    return await client.get(collection, kind, doc_id)


async def search(client: IndexStoreClient, collection: Optional[str] = None) -> list[StoredDocument]:
    return await client.search(collection)
