"""Webflow CMS implementation of the ListingPublisher."""

from typing import Any

import requests
import structlog

from registrations.domain import PublishedListing
from registrations.domain.errors import ListingRejectedError, UpstreamUnavailableError
from registrations.domain.listings import RECORD_KEY
from registrations.gateways.interfaces import ListingPublisher

logger = structlog.get_logger(__name__)

API_URL = "https://api.webflow.com/v2"
PAGE_SIZE = 100


def _to_listing(item: dict[str, Any]) -> PublishedListing:
    return PublishedListing(
        item_id=item["id"],
        fields=dict(item.get("fieldData") or {}),
        archived=bool(item.get("isArchived")),
    )


class WebflowPublisher(ListingPublisher):
    """Publishes listings into Webflow CMS collections.

    ``collections`` maps the logical collection names used by the engine
    (``classes``, ``purchases``) to Webflow collection ids.
    """

    def __init__(
        self,
        api_token: str,
        collections: dict[str, str],
        timeout: float = 10.0,
        base_url: str = API_URL,
        session: requests.Session | None = None,
    ) -> None:
        self._collections = collections
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    def _collection_url(self, collection: str) -> str:
        try:
            collection_id = self._collections[collection]
        except KeyError:
            raise ValueError(f"No Webflow collection configured for {collection!r}") from None
        return f"{self._base_url}/collections/{collection_id}/items"

    def _request(self, method: str, url: str, key: str = "", **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.exceptions.RequestException as exc:
            logger.warning("webflow_unreachable", method=method, url=url, error=str(exc))
            raise UpstreamUnavailableError("content-publishing", str(exc)) from exc

        if response.status_code == 429 or response.status_code >= 500:
            logger.warning("webflow_unavailable", method=method, status=response.status_code)
            raise UpstreamUnavailableError(
                "content-publishing", f"HTTP {response.status_code}"
            )
        if response.status_code >= 400:
            logger.error(
                "webflow_rejected",
                method=method,
                status=response.status_code,
                key=key,
                body=response.text[:500],
            )
            raise ListingRejectedError(key, response.text[:500])
        return response.json() if response.content else {}

    def list_listings(self, collection: str) -> list[PublishedListing]:
        url = self._collection_url(collection)
        listings: list[PublishedListing] = []
        offset = 0
        while True:
            page = self._request("GET", url, params={"offset": offset, "limit": PAGE_SIZE})
            items = page.get("items") or []
            listings.extend(_to_listing(item) for item in items)
            total = (page.get("pagination") or {}).get("total", len(listings))
            offset += len(items)
            if not items or offset >= total:
                break
        return listings

    def create_listing(self, collection: str, fields: dict[str, Any]) -> PublishedListing:
        body = {"isArchived": False, "isDraft": False, "fieldData": fields}
        item = self._request(
            "POST", self._collection_url(collection), key=str(fields.get(RECORD_KEY)), json=body
        )
        return _to_listing(item)

    def patch_listing(
        self,
        collection: str,
        item_id: str,
        fields: dict[str, Any],
        archived: bool | None = None,
    ) -> PublishedListing:
        body: dict[str, Any] = {"fieldData": fields}
        if archived is not None:
            body["isArchived"] = archived
        item = self._request(
            "PATCH", f"{self._collection_url(collection)}/{item_id}", key=item_id, json=body
        )
        return _to_listing(item)
