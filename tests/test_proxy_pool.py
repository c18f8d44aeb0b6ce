import threading
import unittest

from floatwatch.api.proxy_pool import ProxyPool
from floatwatch.errors import NoProxyAvailable
from floatwatch.models import ProxyIdentity


class TestProxyPool(unittest.TestCase):

    def test_from_addresses_drops_blanks_and_duplicates(self):
        pool = ProxyPool.from_addresses(["1.1.1.1:80", " ", "2.2.2.2:80", "1.1.1.1:80 "])
        self.assertEqual([p["address"] for p in pool.snapshot()], ["1.1.1.1:80", "2.2.2.2:80"])
        self.assertEqual(len(pool), 2)

    def test_lease_hands_out_first_free_proxy(self):
        pool = ProxyPool.from_addresses(["1.1.1.1:80", "2.2.2.2:80"])
        first = pool.try_lease()
        second = pool.try_lease()

        self.assertEqual(first.address, "1.1.1.1:80")
        self.assertEqual(second.address, "2.2.2.2:80")
        self.assertEqual(pool.leased, 2)
        with self.assertRaises(NoProxyAvailable):
            pool.try_lease()

    def test_release_makes_proxy_leasable_again(self):
        pool = ProxyPool.from_addresses(["1.1.1.1:80"])
        proxy = pool.try_lease()
        pool.release(proxy)

        self.assertEqual(pool.available, 1)
        self.assertIs(pool.try_lease(), proxy)

    def test_double_release_is_noop(self):
        pool = ProxyPool.from_addresses(["1.1.1.1:80", "2.2.2.2:80"])
        proxy = pool.try_lease()
        pool.release(proxy)
        pool.release(proxy)

        self.assertEqual(pool.available, 2)

    def test_empty_pool_never_leases(self):
        with self.assertRaises(NoProxyAvailable):
            ProxyPool().try_lease()

    def test_proxy_url(self):
        self.assertEqual(ProxyIdentity(address="1.1.1.1:80").url, "http://1.1.1.1:80")


class TestProxyPoolConcurrency(unittest.TestCase):

    def test_concurrent_leases_are_exclusive(self):
        pool = ProxyPool.from_addresses([f"10.0.0.{i}:8080" for i in range(4)])
        outstanding = set()
        outstanding_lock = threading.Lock()
        violations = []
        failures = []

        def worker():
            for _ in range(200):
                try:
                    proxy = pool.try_lease()
                except NoProxyAvailable:
                    failures.append(1)
                    continue
                with outstanding_lock:
                    if proxy.address in outstanding:
                        violations.append(proxy.address)
                    outstanding.add(proxy.address)
                with outstanding_lock:
                    outstanding.discard(proxy.address)
                pool.release(proxy)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(violations, [])
        self.assertEqual(pool.available, 4)

    def test_no_more_leases_than_proxies(self):
        pool = ProxyPool.from_addresses([f"10.0.0.{i}:8080" for i in range(3)])
        leased = []
        barrier = threading.Barrier(10)

        def worker():
            barrier.wait()
            try:
                leased.append(pool.try_lease())
            except NoProxyAvailable:
                pass

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(leased), 3)
        self.assertEqual(len({p.address for p in leased}), 3)


if __name__ == "__main__":
    unittest.main()
