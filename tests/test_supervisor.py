import asyncio
import unittest

from floatwatch.errors import NoProxyAvailable
from floatwatch.models import MonitorStatus
from floatwatch.monitoring.supervisor import MonitorSupervisor
from tests.helpers import (
    CountingPool,
    GatedClient,
    ScriptedClient,
    make_config,
    make_item,
    snapshot,
)


class RecordingNotifier:
    def __init__(self):
        self.events = []

    async def send_event(self, event):
        self.events.append(event)


class TestMonitorSupervisor(unittest.IsolatedAsyncioTestCase):

    async def asyncTearDown(self):
        supervisor = getattr(self, "supervisor", None)
        if supervisor is not None:
            client = supervisor.client
            if isinstance(client, GatedClient):
                client.gate.set()
            await asyncio.wait_for(supervisor.stop_all(), timeout=2)

    async def test_second_start_for_same_label_is_noop(self):
        self.supervisor = MonitorSupervisor(GatedClient(snapshot(0.9, "99.00")), make_config())
        item = make_item()

        first = self.supervisor.start(item)
        second = self.supervisor.start(make_item(target_float=0.01))

        self.assertIsNotNone(first)
        self.assertIsNone(second)
        self.assertEqual(self.supervisor.active_count, 1)
        self.assertEqual(self.supervisor.active_labels(), [item.label])

    async def test_exhausted_pool_rejects_new_monitor_only(self):
        pool = CountingPool.of("10.0.0.1:8080")
        client = GatedClient(snapshot(0.9, "99.00"))
        self.supervisor = MonitorSupervisor(client, make_config(proxies=["10.0.0.1:8080"]), proxy_pool=pool)

        monitor_a = self.supervisor.start(make_item("Item A"))
        with self.assertRaises(NoProxyAvailable):
            self.supervisor.start(make_item("Item B"))

        self.assertTrue(self.supervisor.is_active("Item A"))
        self.assertFalse(self.supervisor.is_active("Item B"))
        self.assertEqual(monitor_a.status, MonitorStatus.POLLING)
        self.assertEqual(monitor_a.proxy.address, "10.0.0.1:8080")

        await asyncio.wait_for(client.entered.wait(), timeout=1)
        client.gate.set()
        await asyncio.sleep(0.01)
        self.assertEqual(monitor_a.status, MonitorStatus.POLLING)
        self.assertEqual(pool.release_calls, [])

    async def test_terminal_monitor_is_removed_and_reported_once(self):
        notifier = RecordingNotifier()
        seen = []
        self.supervisor = MonitorSupervisor(
            ScriptedClient(snapshot(0.17, "11.00")),
            make_config(),
            notifier=notifier,
            on_event=seen.append,
        )

        monitor = self.supervisor.start(make_item())
        await asyncio.wait_for(self.supervisor.wait_all(), timeout=2)

        self.assertEqual(monitor.status, MonitorStatus.MATCHED)
        self.assertEqual(self.supervisor.active_count, 0)
        self.assertEqual([e.status for e in seen], [MonitorStatus.MATCHED])
        self.assertEqual(len(notifier.events), 1)
        self.assertEqual(len(self.supervisor.events), 1)

    async def test_label_can_be_watched_again_after_terminal(self):
        self.supervisor = MonitorSupervisor(ScriptedClient(snapshot(0.17, "11.00")), make_config())

        self.supervisor.start(make_item())
        await asyncio.wait_for(self.supervisor.wait_all(), timeout=2)

        self.assertIsNotNone(self.supervisor.start(make_item()))
        await asyncio.wait_for(self.supervisor.wait_all(), timeout=2)

    async def test_start_all_reports_start_failures_per_item(self):
        pool = CountingPool.of("10.0.0.1:8080")
        statuses = []
        self.supervisor = MonitorSupervisor(
            GatedClient(snapshot(0.9, "99.00")),
            make_config(proxies=["10.0.0.1:8080"]),
            proxy_pool=pool,
            on_status=lambda label, status, text: statuses.append((label, status)),
        )

        started = self.supervisor.start_all([make_item("Item A"), make_item("Item B")])

        self.assertEqual([m.label for m in started], ["Item A"])
        self.assertIn(("Item B", MonitorStatus.FAILED), statuses)
        self.assertEqual(self.supervisor.events[0].label, "Item B")
        self.assertEqual(self.supervisor.get_stats()["start_failures"], 1)

    async def test_stop_all_waits_and_returns_every_proxy(self):
        pool = CountingPool.of("10.0.0.1:8080", "10.0.0.2:8080", "10.0.0.3:8080")
        self.supervisor = MonitorSupervisor(
            ScriptedClient(snapshot(0.9, "99.00")),
            make_config(proxies=["unused"], interval=60),
            proxy_pool=pool,
        )
        monitors = self.supervisor.start_all([make_item(f"Item {i}") for i in range(3)])
        self.assertEqual(pool.available, 0)
        await asyncio.sleep(0.01)

        await asyncio.wait_for(self.supervisor.stop_all(), timeout=2)

        self.assertTrue(all(m.status is MonitorStatus.STOPPED for m in monitors))
        self.assertEqual(self.supervisor.active_count, 0)
        self.assertEqual(pool.available, 3)
        self.assertEqual(sorted(pool.release_calls), sorted(p["address"] for p in pool.snapshot()))

    async def test_proxies_disabled_runs_direct(self):
        self.supervisor = MonitorSupervisor(ScriptedClient(snapshot(0.17, "11.00")), make_config())

        self.assertIsNone(self.supervisor.proxy_pool)
        monitor = self.supervisor.start(make_item())
        await asyncio.wait_for(self.supervisor.wait_all(), timeout=2)

        self.assertIsNone(monitor.proxy)

    async def test_stop_single_label(self):
        self.supervisor = MonitorSupervisor(
            ScriptedClient(snapshot(0.9, "99.00")), make_config(interval=60)
        )
        monitor = self.supervisor.start(make_item())
        await asyncio.sleep(0.01)

        self.assertTrue(self.supervisor.stop(monitor.label))
        self.assertFalse(self.supervisor.stop("not watched"))
        await asyncio.wait_for(monitor.wait(), timeout=1)

        self.assertEqual(monitor.status, MonitorStatus.STOPPED)
        self.assertFalse(self.supervisor.is_active(monitor.label))


if __name__ == "__main__":
    unittest.main()
