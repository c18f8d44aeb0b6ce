"""
Item registration: the "add to watchlist" flow.

Parses what the user typed, resolves the link, caches the item picture the
first time the item is seen and appends the item to the watchlist.
"""

from typing import Optional, Union
from decimal import Decimal
from loguru import logger

from floatwatch.api.listing_client import ListingClient, rarity_color
from floatwatch.errors import DuplicateItem, NotFound, UpstreamError
from floatwatch.models import WatchedItem
from floatwatch.storage.image_cache import ImageCache
from floatwatch.storage.watchlist import WatchlistStore
from floatwatch.utils.parsing import parse_float, parse_link, parse_price


async def register_item(
    link: str,
    target_float: Union[str, float],
    target_price: Union[str, Decimal],
    client: ListingClient,
    watchlist: WatchlistStore,
    image_cache: Optional[ImageCache] = None,
) -> WatchedItem:
    """
    Resolve a link and add the item to the watchlist.

    Args:
        link: Inspect link or market listing URL as pasted
        target_float: Desired float, as typed or already parsed
        target_price: Desired price, as typed or already parsed
        client: Listing client used for resolution and image download
        watchlist: Store the item is appended to (and persisted)
        image_cache: Optional cache for the item picture

    Returns:
        The new WatchedItem

    Raises:
        InvalidReference, InvalidInput: bad user input, nothing fetched
        UpstreamError, NotFound: the link could not be resolved
        DuplicateItem: the label is already on the watchlist
    """
    link = parse_link(link)
    float_value = parse_float(str(target_float))
    price = parse_price(str(target_price))

    metadata = await client.resolve(link)

    if watchlist.contains(metadata.label):
        raise DuplicateItem(metadata.label)

    if image_cache is not None and metadata.image_ref and not image_cache.contains(metadata.label):
        try:
            image_cache.add(metadata.label, await client.fetch_image(metadata.image_ref))
        except (UpstreamError, NotFound) as e:
            logger.warning(f"Could not download image for {metadata.label}: {e}")

    item = WatchedItem(
        label=metadata.label,
        target_float=float_value,
        target_price=price,
        rarity_color=rarity_color(metadata.rarity),
    )

    if not watchlist.add(item):
        raise DuplicateItem(item.label)
    watchlist.persist()

    logger.info(f"Registered {item}")
    return item
