"""
Resolution of campaign image content references.

``image_ref`` is an opaque content address (an IPFS CID in practice). It is
turned into a public gateway URL; when the reference is empty or the gateway
cannot serve it, a placeholder image URL is used instead.
"""

from typing import Optional

import httpx

from web3fund_toolkit.shared.constants import ContentConstants
from web3fund_toolkit.shared.logging import get_logger
from web3fund_toolkit.shared.services.http_client import get_async_client

logger = get_logger(__name__)


class ContentService:
    """Build and optionally check gateway URLs for content references."""

    def __init__(
        self,
        gateway_template: Optional[str] = None,
        placeholder: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.gateway_template = (
            gateway_template or ContentConstants.GATEWAY_TEMPLATE
        )
        self.placeholder = placeholder or ContentConstants.PLACEHOLDER_IMAGE
        self._client = client

    def image_url(self, image_ref: str) -> str:
        """Gateway URL for a reference, or the placeholder if it is blank."""
        ref = (image_ref or "").strip()
        if not ref:
            return self.placeholder
        if ref.startswith("ipfs://"):
            ref = ref[len("ipfs://"):]
        return self.gateway_template.format(ref=ref)

    async def resolve(self, image_ref: str) -> str:
        """
        Resolve a reference to a URL that is known to answer.

        Issues a HEAD request against the gateway. Any HTTP or transport
        failure yields the placeholder.
        """
        url = self.image_url(image_ref)
        if url == self.placeholder:
            return url

        client = self._client or get_async_client()
        try:
            response = await client.head(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug(f"Content {image_ref!r} unavailable: {e}")
            return self.placeholder
        return url


content_service = ContentService()
