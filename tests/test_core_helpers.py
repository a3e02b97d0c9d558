import io
import json
import sys
import unittest
from contextlib import redirect_stdout
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'backend'))

from app.core.logging_config import log_duration, structured_log  # noqa: E402
from app.core.request_metrics import LatencyRecorder  # noqa: E402
from app.core.rounding import round_half_up, round_int  # noqa: E402


class RoundingTests(unittest.TestCase):
    def test_ties_round_up(self):
        self.assertEqual(round_int(2.5), 3)
        self.assertEqual(round_int(0.5), 1)
        self.assertEqual(round_half_up(0.25, 1), 0.3)
        self.assertEqual(round_half_up(83.456, 1), 83.5)

    def test_invalid_values(self):
        self.assertEqual(round_half_up(float('nan'), 1), 0.0)


class LatencyRecorderTests(unittest.TestCase):
    def test_summary_percentiles(self):
        recorder = LatencyRecorder()
        for v in range(1, 101):
            recorder.observe('/api/v1/dataset', v)
        stats = recorder.summary()['/api/v1/dataset']
        self.assertEqual(stats['count'], 100)
        self.assertEqual(stats['p50_ms'], 50.5)
        self.assertEqual(stats['max_ms'], 100)

    def test_samples_are_bounded(self):
        recorder = LatencyRecorder(max_samples=3)
        for v in (1, 2, 3, 4):
            recorder.observe('/x', v)
        self.assertEqual(recorder.summary()['/x']['count'], 3)
        recorder.reset()
        self.assertEqual(recorder.summary(), {})


class StructuredLogTests(unittest.TestCase):
    def _lines(self, fn):
        out = io.StringIO()
        with redirect_stdout(out):
            fn()
        return [json.loads(line) for line in out.getvalue().splitlines()]

    def test_event_is_tagged_and_drops_empty_fields(self):
        [line] = self._lines(lambda: structured_log('info', 'dataset_cache_cleared', removed=1, trace_id=None, duration_ms=12.3456))
        self.assertEqual(line['message'], 'dataset_cache_cleared')
        self.assertEqual(line['service'], 'productores-api-v1')
        self.assertEqual(line['removed'], 1)
        self.assertEqual(line['duration_ms'], 12.35)
        self.assertNotIn('trace_id', line)

    def test_log_duration_reports_completion_and_failure(self):
        def ok():
            with log_duration('dataset_build', cache_key='all'):
                pass

        def boom():
            with self.assertRaises(ValueError):
                with log_duration('dataset_build', cache_key='all'):
                    raise ValueError('bad row')

        [done] = self._lines(ok)
        [failed] = self._lines(boom)
        self.assertEqual((done['message'], done['cache_key']), ('dataset_build_completed', 'all'))
        self.assertIn('duration_ms', done)
        self.assertEqual((failed['message'], failed['level'], failed['error']), ('dataset_build_failed', 'error', 'bad row'))


if __name__ == '__main__':
    unittest.main()
