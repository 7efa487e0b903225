import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from mcidle.core import config
from mcidle.core.manager_config import MCIDLE_SETTINGS, ManagerConfig, parse_env_file


class ManagerConfigTests(unittest.TestCase):
    def test_declared_keys_are_typed(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            conf = root / "mcidle.env"
            conf.write_text(
                "\n".join(
                    [
                        "# comment",
                        "SERVICE=minecraft",
                        "export WEB_PORT=8765",
                        "RCON_TIMEOUT_SECONDS=2.5",
                        "WORLD_STORE=./worlds",
                        'LEVEL_NAME="survival"',
                        "IDLE_THRESHOLD_SECONDS=-4",
                        "MAINTENANCE_DEFAULT_MINUTES=soon",
                    ]
                ),
                encoding="utf-8",
            )
            cfg = ManagerConfig(conf)
            self.assertEqual(cfg.get("SERVICE"), "minecraft")
            self.assertEqual(cfg.get("WEB_PORT"), 8765)
            self.assertEqual(cfg.get("RCON_TIMEOUT_SECONDS"), 2.5)
            self.assertEqual(cfg.get("WORLD_STORE"), root / "worlds")
            self.assertEqual(cfg.get("LEVEL_NAME"), "survival")
            self.assertEqual(cfg.get("IDLE_THRESHOLD_SECONDS"), 1)
            self.assertEqual(cfg.get("MAINTENANCE_DEFAULT_MINUTES"), 60)

    def test_missing_file_uses_declared_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            settings = ManagerConfig(Path(tmp) / "absent.env").as_dict()
            self.assertEqual(settings["IDLE_THRESHOLD_SECONDS"], 60)
            self.assertEqual(settings["WORLD_STORE"], Path("/opt/minecraft/worlds"))
            self.assertEqual(settings["IDLE_TIMER_UNIT"], "mc-idle-shutdown.timer")
            self.assertIsNone(settings["SERVER_PROPERTIES"])
            self.assertEqual(set(settings), {setting.key for setting in MCIDLE_SETTINGS})

    def test_undeclared_key_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            conf = Path(tmp) / "mcidle.env"
            conf.write_text("IDLE_TRESHOLD=30\n", encoding="utf-8")
            cfg = ManagerConfig(conf)
            self.assertEqual(parse_env_file(conf), {"IDLE_TRESHOLD": "30"})
            with self.assertRaises(KeyError):
                cfg.get("IDLE_TRESHOLD")
            self.assertNotIn("IDLE_TRESHOLD", cfg.as_dict())

    def test_resolve_config_path_prefers_env(self):
        with patch.dict(os.environ, {"MCIDLE_CONFIG": "/srv/custom.env"}):
            self.assertEqual(config.resolve_config_path("/app"), Path("/srv/custom.env"))

    def test_resolve_config_path_falls_back_to_app_dir(self):
        with patch.dict(os.environ, {"MCIDLE_CONFIG": ""}), patch.object(config, "DEFAULT_CONFIG_CANDIDATES", ()):
            self.assertEqual(config.resolve_config_path("/app"), Path("/app") / "mcidle.env")

    def test_env_override_wins_over_config(self):
        with patch.dict(os.environ, {"MCIDLE_API_TOKEN": " secret "}):
            self.assertEqual(config.env_override("cfg", "MCIDLE_API_TOKEN"), "secret")
        with patch.dict(os.environ, {"MCIDLE_API_TOKEN": ""}):
            self.assertEqual(config.env_override(" cfg ", "MCIDLE_API_TOKEN"), "cfg")


if __name__ == "__main__":
    unittest.main()
