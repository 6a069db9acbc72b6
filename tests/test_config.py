import unittest
import os
import json
import shutil
import tempfile
from unittest.mock import patch
from tunebridge.config import ConfigManager, DEFAULT_CONFIG


class TestConfigManager(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp(prefix="tunebridge_cfg_")
        self.config_file = os.path.join(self.test_dir, "config.json")

        patcher = patch('tunebridge.config.CONFIG_FILE', self.config_file)
        self.addCleanup(patcher.stop)
        patcher.start()

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_defaults_when_no_file(self):
        cfg = ConfigManager(self.config_file)
        self.assertEqual(9876, cfg.get("proxy_port"))
        self.assertEqual("default", cfg.get("non_existent_key", "default"))

    def test_defaults_are_not_shared_between_instances(self):
        a = ConfigManager(self.config_file)
        a.config["mirror_instances"].append("https://extra")
        b = ConfigManager(self.config_file)
        self.assertNotIn("https://extra", b.get("mirror_instances"))
        self.assertNotIn("https://extra", DEFAULT_CONFIG["mirror_instances"])

    def test_set_persists_and_reloads(self):
        cfg = ConfigManager(self.config_file)
        cfg.set("proxy_port", 12345)
        self.assertTrue(os.path.exists(self.config_file))

        reloaded = ConfigManager(self.config_file)
        self.assertEqual(12345, reloaded.get("proxy_port"))

    def test_missing_keys_are_merged_without_clobbering(self):
        with open(self.config_file, "w") as f:
            json.dump({"proxy_port": 1111, "custom": True}, f)
        cfg = ConfigManager(self.config_file)
        self.assertEqual(1111, cfg.get("proxy_port"))
        self.assertTrue(cfg.get("custom"))
        self.assertEqual(DEFAULT_CONFIG["download_quality"], cfg.get("download_quality"))

    def test_corrupt_file_falls_back_to_defaults(self):
        with open(self.config_file, "w") as f:
            f.write("{not json")
        cfg = ConfigManager(self.config_file)
        self.assertEqual(DEFAULT_CONFIG["proxy_port"], cfg.get("proxy_port"))

    def test_default_path_comes_from_module_constant(self):
        cfg = ConfigManager()
        self.assertEqual(self.config_file, cfg.path)


if __name__ == '__main__':
    unittest.main()
