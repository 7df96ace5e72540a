import json
import logging
import unittest

from kiosk.infra.logging import JsonFormatter


class JsonFormatterTest(unittest.TestCase):
    def test_extra_fields_are_carried_into_the_line(self) -> None:
        record = logging.LogRecord("kiosk.store", logging.ERROR, __file__, 1, "Failed to save %d orders", (3,), None)
        record.event = "orders_save_failed"

        line = json.loads(JsonFormatter().format(record))

        self.assertEqual("Failed to save 3 orders", line["message"])
        self.assertEqual("ERROR", line["level"])
        self.assertEqual("kiosk.store", line["logger"])
        self.assertEqual("orders_save_failed", line["event"])
        self.assertNotIn("msg", line)
        self.assertNotIn("args", line)

    def test_non_ascii_guest_names_stay_readable(self) -> None:
        record = logging.LogRecord("kiosk", logging.INFO, __file__, 1, "Order for %s", ("Jürgen",), None)

        self.assertIn("Jürgen", JsonFormatter().format(record))


if __name__ == "__main__":
    unittest.main()
