"""Tests for logging context."""
import logging
import threading
import unittest

from moneylog.utils.logger import UserContextFilter, get_logger


class TestUserContextFilter(unittest.TestCase):
    """Test per-thread user tagging."""

    def _record(self):
        return logging.LogRecord("moneylog", logging.INFO, __file__, 1, "msg", None, None)

    def test_defaults_to_system(self):
        user_filter = UserContextFilter()
        record = self._record()

        self.assertTrue(user_filter.filter(record))
        self.assertEqual(record.user_id, "system")

    def test_context_is_per_thread(self):
        user_filter = UserContextFilter()
        user_filter.user_id = "1"
        seen = []

        def worker():
            user_filter.user_id = "2"
            record = self._record()
            user_filter.filter(record)
            seen.append(record.user_id)

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

        record = self._record()
        user_filter.filter(record)
        self.assertEqual(seen, ["2"])
        self.assertEqual(record.user_id, "1")

    def test_get_logger_is_shared(self):
        self.assertIs(get_logger(), get_logger())
        self.assertEqual(get_logger().name, "moneylog")


if __name__ == "__main__":
    unittest.main()
