import json
import tempfile
import unittest
from pathlib import Path

from storage_explorer.settings import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    AppSettings,
    SettingsStorage,
    clamp_page_size,
    parse_port,
)


class SettingsStorageTests(unittest.TestCase):
    def test_load_returns_defaults_when_missing(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            storage = SettingsStorage(path)

            settings = storage.load()

            self.assertEqual(AppSettings(), settings)

    def test_load_sanitizes_invalid_values(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            payload = {
                "page_size": "nope",
                "default_region": "  ",
                "host": 12,
                "port": 70000,
                "remember_last_view": "yes",
            }
            path.write_text(json.dumps(payload), encoding="utf-8")
            storage = SettingsStorage(path)

            settings = storage.load()

            self.assertEqual(AppSettings(), settings)

    def test_load_clamps_large_page_size(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            path.write_text(json.dumps({"page_size": 5000, "default_region": " eu-west-1 "}), encoding="utf-8")

            settings = SettingsStorage(path).load()

            self.assertEqual(MAX_PAGE_SIZE, settings.page_size)
            self.assertEqual("eu-west-1", settings.default_region)

    def test_load_ignores_corrupt_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            path.write_text("not json", encoding="utf-8")

            self.assertEqual(AppSettings(), SettingsStorage(path).load())

    def test_save_sanitizes_values(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "settings.json"
            storage = SettingsStorage(path)
            settings = AppSettings(page_size=0, port=-1, remember_last_view=False, host="0.0.0.0")

            storage.save(settings)

            saved = json.loads(path.read_text(encoding="utf-8"))
            self.assertEqual(DEFAULT_PAGE_SIZE, saved["page_size"])
            self.assertEqual(3000, saved["port"])
            self.assertFalse(saved["remember_last_view"])
            self.assertEqual("0.0.0.0", saved["host"])
            self.assertEqual(settings.host, storage.load().host)


class EnvironmentOverrideTests(unittest.TestCase):
    def test_host_and_port_come_from_environment(self):
        settings = AppSettings().with_environment({"HOST": "0.0.0.0", "PORT": "8080"})

        self.assertEqual("0.0.0.0", settings.host)
        self.assertEqual(8080, settings.port)

    def test_invalid_port_keeps_configured_value(self):
        settings = AppSettings(port=4000).with_environment({"PORT": "abc"})

        self.assertEqual(4000, settings.port)
        self.assertEqual("127.0.0.1", settings.host)


class HelperTests(unittest.TestCase):
    def test_clamp_page_size(self):
        self.assertEqual(DEFAULT_PAGE_SIZE, clamp_page_size(None))
        self.assertEqual(DEFAULT_PAGE_SIZE, clamp_page_size(0))
        self.assertEqual(DEFAULT_PAGE_SIZE, clamp_page_size(-3))
        self.assertEqual(DEFAULT_PAGE_SIZE, clamp_page_size(True))
        self.assertEqual(DEFAULT_PAGE_SIZE, clamp_page_size("many"))
        self.assertEqual(MAX_PAGE_SIZE, clamp_page_size(5000))
        self.assertEqual(50, clamp_page_size("50"))
        self.assertEqual(1, clamp_page_size(1))

    def test_parse_port(self):
        self.assertEqual(3000, parse_port("3000"))
        self.assertIsNone(parse_port("0"))
        self.assertIsNone(parse_port("65536"))
        self.assertIsNone(parse_port(None))


if __name__ == "__main__":
    unittest.main()
