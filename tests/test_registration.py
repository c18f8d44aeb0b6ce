import tempfile
import unittest
from decimal import Decimal
from pathlib import Path

from floatwatch.errors import DuplicateItem, InvalidInput, NotFound, UpstreamError
from floatwatch.models import ItemMetadata
from floatwatch.registration import register_item
from floatwatch.storage.image_cache import ImageCache
from floatwatch.storage.watchlist import WatchlistStore
from tests.helpers import REDLINE, FakeResolver

LINK = "https://steamcommunity.com/market/listings/730/AK-47%20%7C%20Redline%20%28Field-Tested%29"


class FailingImageResolver(FakeResolver):
    async def fetch_image(self, image_ref):
        raise UpstreamError("image host down", status=503)


class MissingImageResolver(FakeResolver):
    async def fetch_image(self, image_ref):
        raise NotFound("https://img/abc123 returned 404")


class TestRegisterItem(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.watchlist = WatchlistStore(root / "watchlist.json")
        self.watchlist.load()
        self.images = ImageCache(root / "images")
        self.metadata = ItemMetadata(label=REDLINE, rarity="Classified", image_ref="abc123")

    def tearDown(self):
        self._tmp.cleanup()

    async def test_registers_and_persists(self):
        client = FakeResolver(self.metadata)

        item = await register_item(LINK, "0.15", "$12.5", client, self.watchlist, self.images)

        self.assertEqual(item.label, REDLINE)
        self.assertEqual(item.target_float, 0.15)
        self.assertEqual(item.target_price, Decimal("12.50"))
        self.assertEqual(item.rarity_color, "#d32ce6")
        self.assertEqual(client.resolved, [LINK])
        self.assertEqual(self.images.get(REDLINE), client.image)
        self.assertEqual([i.label for i in WatchlistStore(self.watchlist.path).load()], [REDLINE])

    async def test_duplicate_label_is_rejected(self):
        client = FakeResolver(self.metadata)
        await register_item(LINK, "0.15", "12", client, self.watchlist, self.images)

        with self.assertRaises(DuplicateItem):
            await register_item(LINK, "0.05", "1", client, self.watchlist, self.images)

        self.assertEqual(len(self.watchlist), 1)
        self.assertEqual(self.watchlist.get(REDLINE).target_float, 0.15)

    async def test_bad_input_fails_before_resolving(self):
        client = FakeResolver(self.metadata)

        with self.assertRaises(InvalidInput):
            await register_item(LINK, "2", "12", client, self.watchlist)

        self.assertEqual(client.resolved, [])
        self.assertEqual(len(self.watchlist), 0)

    async def test_cached_image_is_not_downloaded_again(self):
        self.images.add(REDLINE, b"old")
        client = FakeResolver(self.metadata)

        await register_item(LINK, "0.15", "12", client, self.watchlist, self.images)

        self.assertEqual(client.images_fetched, [])
        self.assertEqual(self.images.get(REDLINE), b"old")

    async def test_image_failure_does_not_block_registration(self):
        client = FailingImageResolver(self.metadata)

        item = await register_item(LINK, "0.15", "12", client, self.watchlist, self.images)

        self.assertTrue(self.watchlist.contains(item.label))
        self.assertFalse(self.images.contains(item.label))

    async def test_missing_image_does_not_block_registration(self):
        client = MissingImageResolver(self.metadata)

        item = await register_item(LINK, "0.15", "12", client, self.watchlist, self.images)

        self.assertEqual(len(self.watchlist), 1)
        self.assertTrue(self.watchlist.contains(item.label))
        self.assertFalse(self.images.contains(item.label))


if __name__ == "__main__":
    unittest.main()
