import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'backend'))

from app.core.dataset_cache import ALL_DATA_KEY, DatasetCache  # noqa: E402


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class DatasetCacheTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = DatasetCache(ttl_seconds=300, clock=self.clock)

    def test_hit_within_ttl(self):
        self.cache.set(ALL_DATA_KEY, {'rows': 1})
        self.clock.now += 300
        self.assertEqual(self.cache.get(), {'rows': 1})

    def test_expired_entry_is_evicted(self):
        self.cache.set(ALL_DATA_KEY, {'rows': 1})
        self.clock.now += 300.5
        self.assertIsNone(self.cache.get())
        self.assertEqual(self.cache.metrics()['entries'], 0)

    def test_clear(self):
        self.cache.set(ALL_DATA_KEY, {'rows': 1})
        self.cache.set('other', {'rows': 2})
        self.assertEqual(self.cache.clear(), 2)
        self.assertIsNone(self.cache.get())
        self.assertIsNone(self.cache.get('other'))

    def test_age_and_metrics(self):
        self.assertIsNone(self.cache.age_seconds())
        self.cache.set(ALL_DATA_KEY, {'rows': 1})
        self.clock.now += 12.5
        self.assertEqual(self.cache.age_seconds(), 12.5)
        self.cache.get()
        self.cache.get('missing')
        metrics = self.cache.metrics()
        self.assertEqual(metrics['hits'], 1)
        self.assertEqual(metrics['misses'], 1)
        self.assertEqual(metrics['hit_rate_pct'], 50.0)
        self.assertEqual(metrics['ttl_seconds'], 300)

    def test_instances_are_isolated(self):
        other = DatasetCache(ttl_seconds=300, clock=self.clock)
        self.cache.set(ALL_DATA_KEY, {'rows': 1})
        self.assertIsNone(other.get())


if __name__ == '__main__':
    unittest.main()
