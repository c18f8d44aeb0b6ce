"""
Listing client for the Steam Community Market and the float inspection API.

Provides:
- resolve(): turn a pasted link into item metadata
- poll(): observe the cheapest live listing of a watched item
- fetch_image(): download an item picture

Every transport or parsing failure leaves this module as one of the
floatwatch error types.
"""

import asyncio
import re
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote

import aiohttp
import requests
from loguru import logger

from floatwatch.api.rate_limiter import IdentityRateLimiter
from floatwatch.config import Config
from floatwatch.errors import InvalidReference, NotFound, UpstreamError
from floatwatch.models import ItemMetadata, ListingSnapshot, ProxyIdentity, WatchedItem

INSPECT_LINK_RE = re.compile(
    r"^steam://rungame/730/(?P<steam>\d+)/(?:\+|%20)?csgo_econ_action_preview(?:%20|\s|\+)+"
    r"(?P<code>[SM]\d+A\d+D\d+)$"
)
LISTING_URL_RE = re.compile(
    r"^https?://steamcommunity\.com/market/listings/730/(?P<name>[^/?#]+)/?(?:[?#].*)?$"
)

# Grade names as they appear in asset "type" strings, most specific first
RARITY_COLORS = {
    "Contraband": "#e4ae39",
    "Covert": "#eb4b4b",
    "Extraordinary": "#eb4b4b",
    "Classified": "#d32ce6",
    "Exotic": "#d32ce6",
    "Restricted": "#8847ff",
    "Remarkable": "#8847ff",
    "Mil-Spec Grade": "#4b69ff",
    "Mil-Spec": "#4b69ff",
    "High Grade": "#4b69ff",
    "Industrial Grade": "#5e98d9",
    "Consumer Grade": "#b0c3d9",
    "Base Grade": "#b0c3d9",
}
DEFAULT_RARITY_COLOR = "#b0c3d9"


def rarity_color(rarity: str) -> str:
    """Map a rarity name to its display colour."""
    for name, color in RARITY_COLORS.items():
        if name.lower() == (rarity or "").strip().lower():
            return color
    return DEFAULT_RARITY_COLOR


def rarity_from_type(item_type: str) -> str:
    """Extract the grade from an asset type such as 'StatTrak™ Classified Rifle'."""
    for name in RARITY_COLORS:
        if name in (item_type or ""):
            return name
    return ""


def parse_inspect_link(link: str) -> Optional[str]:
    """Return the normalized inspect link, or None if the shape is wrong."""
    match = INSPECT_LINK_RE.match(link.strip())
    if not match:
        return None
    return (
        f"steam://rungame/730/{match.group('steam')}/"
        f"+csgo_econ_action_preview%20{match.group('code')}"
    )


def parse_listing_url(link: str) -> Optional[str]:
    """Return the market hash name of a listing URL, or None if the shape is wrong."""
    match = LISTING_URL_RE.match(link.strip())
    if not match:
        return None
    return unquote(match.group("name"))


def image_url(image_ref: str, image_host: str) -> str:
    """Full URL for an image reference (a URL already, or a Steam icon hash)."""
    if image_ref.startswith(("http://", "https://")):
        return image_ref
    return f"{image_host.rstrip('/')}/{image_ref}/360fx360f"


def parse_render_payload(data: Dict[str, Any], app_id: int = 730) -> List[Dict[str, Any]]:
    """
    Flatten a market render response into listing dictionaries.

    Args:
        data: JSON body of /market/listings/<app>/<name>/render/
        app_id: Steam app the assets belong to

    Returns:
        Listings sorted by total price ascending, each with listing_id,
        price (Decimal, fee included), inspect_link, name, type, icon_url
    """
    if not isinstance(data, dict) or not data.get("success", False):
        raise UpstreamError("Market returned an unsuccessful render response")

    listinginfo = data.get("listinginfo") or {}
    if not isinstance(listinginfo, dict):
        # Steam sends [] instead of {} when nothing is listed
        listinginfo = {}

    # Each level may come back as [] when empty
    assets = data.get("assets")
    for key in (str(app_id), "2"):
        assets = assets.get(key) if isinstance(assets, dict) else None
    if not isinstance(assets, dict):
        assets = {}

    listings = []
    for listing_id, info in listinginfo.items():
        if not isinstance(info, dict):
            raise UpstreamError(f"Malformed listing entry {listing_id}: {info!r}")
        asset = info.get("asset")
        if not isinstance(asset, dict):
            asset = {}
        asset_id = str(asset.get("id", ""))
        description = assets.get(asset_id)
        if not isinstance(description, dict):
            description = {}

        cents = int(info.get("converted_price", info.get("price", 0)) or 0)
        cents += int(info.get("converted_fee", info.get("fee", 0)) or 0)
        if cents <= 0:
            continue

        inspect_link = ""
        actions = asset.get("market_actions") or description.get("market_actions") or []
        if isinstance(actions, list) and actions and isinstance(actions[0], dict):
            inspect_link = (
                str(actions[0].get("link") or "")
                .replace("%listingid%", str(listing_id))
                .replace("%assetid%", asset_id)
            )

        listings.append({
            "listing_id": str(listing_id),
            "price": Decimal(cents) / 100,
            "inspect_link": inspect_link,
            "name": description.get("market_hash_name") or description.get("name", ""),
            "type": description.get("type", ""),
            "icon_url": description.get("icon_url", ""),
        })

    listings.sort(key=lambda x: x["price"])
    return listings


def parse_float_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract the fields used here from a float API response.

    Returns:
        Dictionary with float_value, full_item_name, rarity, image_url
    """
    if not isinstance(data, dict):
        raise UpstreamError("Float API returned a non-object payload")
    if "error" in data and "iteminfo" not in data:
        raise UpstreamError(f"Float API error: {data.get('error')}", status=data.get("code"))

    info = data.get("iteminfo")
    if not isinstance(info, dict):
        raise UpstreamError("Float API payload has no iteminfo")

    try:
        float_value = float(info["floatvalue"])
    except (KeyError, TypeError, ValueError) as e:
        raise UpstreamError(f"Float API payload has no usable floatvalue: {e}") from e

    name = info.get("full_item_name") or info.get("market_hash_name") or ""
    return {
        "float_value": float_value,
        "full_item_name": name,
        "rarity": info.get("rarity_name", ""),
        "image_url": info.get("imageurl", ""),
    }


class ListingClient:
    """
    Client for marketplace listings.
    Stateless apart from its HTTP session and the per-identity rate limiter.
    """

    def __init__(
        self,
        config: Config,
        rate_limiter: Optional[IdentityRateLimiter] = None,
    ):
        self.config = config
        self.rate_limiter = rate_limiter or IdentityRateLimiter(
            requests_per_minute=config.api.requests_per_minute,
        )
        self._timeout = aiohttp.ClientTimeout(total=config.api.request_timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.config.api.user_agent,
            "Connection": "keep-alive",
            "Keep-Alive": "3600",
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create async session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self.headers)
        return self._session

    async def close(self):
        """Close the async session."""
        if self._session and not self._session.closed:
            await self._session.close()

    # =========================================
    # Transport
    # =========================================

    async def _request(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        proxy: Optional[ProxyIdentity] = None,
        limited: bool = True,
        as_json: bool = True,
    ) -> Any:
        """
        Perform one GET and classify its failure modes.

        Args:
            url: Absolute URL
            params: Query parameters
            proxy: Identity to route through (None = direct)
            limited: Whether the request counts against the identity's budget
            as_json: Decode the body as JSON (otherwise return bytes)
        """
        if limited:
            await self.rate_limiter.acquire(proxy.address if proxy else None)

        session = await self._get_session()
        try:
            async with session.get(
                url,
                params=params,
                proxy=proxy.url if proxy else None,
                timeout=self._timeout,
            ) as response:
                if response.status == 404:
                    raise NotFound(f"{url} returned 404")
                if response.status == 429:
                    raise UpstreamError("Rate limited (HTTP 429)", status=429)
                if response.status >= 400:
                    raise UpstreamError(f"HTTP {response.status} from {url}", status=response.status)

                if as_json:
                    return await response.json(content_type=None)
                return await response.read()

        except asyncio.TimeoutError as e:
            raise UpstreamError(
                f"Request timed out after {self.config.api.request_timeout}s"
            ) from e
        except aiohttp.ClientError as e:
            raise UpstreamError(f"Network error: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"Invalid JSON from {url}: {e}") from e

    def _listing_render_url(self, label: str) -> str:
        return (
            f"{self.config.api.market_host}/market/listings/"
            f"{self.config.api.app_id}/{quote(label, safe='')}/render/"
        )

    async def _fetch_listings(
        self,
        label: str,
        proxy: Optional[ProxyIdentity] = None,
        count: int = 10,
    ) -> List[Dict[str, Any]]:
        params = {
            "query": "",
            "start": 0,
            "count": count,
            "country": "US",
            "language": "english",
            "currency": self.config.api.currency,
        }
        data = await self._request(self._listing_render_url(label), params=params, proxy=proxy)
        try:
            return parse_render_payload(data, self.config.api.app_id)
        except (AttributeError, KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise UpstreamError(f"Unexpected render payload for {label}: {e}") from e

    async def _inspect(
        self,
        inspect_link: str,
        proxy: Optional[ProxyIdentity] = None,
    ) -> Dict[str, Any]:
        data = await self._request(
            f"{self.config.api.float_api_host}/",
            params={"url": inspect_link},
            proxy=proxy,
            limited=False,
        )
        return parse_float_payload(data)

    # =========================================
    # Public operations
    # =========================================

    async def resolve(self, link: str) -> ItemMetadata:
        """
        Resolve a pasted link into item metadata.

        Args:
            link: CS inspect link or Steam market listing URL

        Returns:
            ItemMetadata with label, rarity and image reference

        Raises:
            InvalidReference: the link has neither accepted shape
            UpstreamError: the lookup failed
            NotFound: the listing URL has nothing listed
        """
        inspect_link = parse_inspect_link(link)
        if inspect_link:
            info = await self._inspect(inspect_link)
            if not info["full_item_name"]:
                raise UpstreamError("Float API did not return an item name")
            logger.debug(f"Resolved inspect link to {info['full_item_name']}")
            return ItemMetadata(
                label=info["full_item_name"],
                rarity=info["rarity"],
                image_ref=info["image_url"],
            )

        market_name = parse_listing_url(link)
        if market_name:
            listings = await self._fetch_listings(market_name, count=1)
            if not listings:
                raise NotFound(f"No listings for {market_name}")
            first = listings[0]
            logger.debug(f"Resolved listing URL to {first['name'] or market_name}")
            return ItemMetadata(
                label=first["name"] or market_name,
                rarity=rarity_from_type(first["type"]),
                image_ref=first["icon_url"],
            )

        raise InvalidReference(f"Not a market listing or inspect link: {link!r}")

    async def poll(
        self,
        item: WatchedItem,
        proxy: Optional[ProxyIdentity] = None,
    ) -> ListingSnapshot:
        """
        Observe the cheapest live listing of an item.

        Args:
            item: Watched item (its label is the market hash name)
            proxy: Optional leased proxy to route through

        Returns:
            ListingSnapshot of the cheapest listing

        Raises:
            NotFound: nothing is listed any more
            UpstreamError: transient failure, worth retrying
        """
        listings = await self._fetch_listings(item.label, proxy=proxy, count=1)
        if not listings:
            raise NotFound(f"No live listings for {item.label}")

        cheapest = listings[0]
        if not cheapest["inspect_link"]:
            raise UpstreamError(f"Listing {cheapest['listing_id']} has no inspect link")

        try:
            info = await self._inspect(cheapest["inspect_link"], proxy=proxy)
        except NotFound as e:
            # Sold between the two requests; the next poll sees the new cheapest
            raise UpstreamError(f"Listing {cheapest['listing_id']} vanished during inspection") from e

        return ListingSnapshot(
            float_value=info["float_value"],
            price=cheapest["price"],
            title=cheapest["name"] or info["full_item_name"] or item.label,
            image_ref=cheapest["icon_url"] or info["image_url"],
            rarity=info["rarity"] or rarity_from_type(cheapest["type"]),
            listing_id=cheapest["listing_id"],
        )

    async def fetch_image(self, image_ref: str) -> bytes:
        """Download an item image."""
        if not image_ref:
            raise UpstreamError("Empty image reference")
        url = image_url(image_ref, self.config.api.image_host)
        return await self._request(url, limited=False, as_json=False)

    # =========================================
    # Synchronous Convenience Methods
    # =========================================

    def check_connection(self) -> bool:
        """Synchronous reachability probe of the marketplace for simple scripts."""
        try:
            response = requests.get(
                self.config.api.market_host,
                headers={"User-Agent": self.config.api.user_agent},
                timeout=self.config.api.request_timeout,
            )
            return response.status_code < 500
        except requests.RequestException as e:
            logger.error(f"Marketplace unreachable: {e}")
            return False
