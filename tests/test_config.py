"""Tests for config file management."""

from src import config
from src.config import load_config, save_config


class TestConfig:
    def test_default_config(self):
        cfg = load_config()
        assert cfg["tables"]["ranges"] is None
        assert cfg["canonical"]["block_size"] == 256
        assert cfg["gaps"]["region_start"] == "500000"
        assert cfg["gaps"]["min_size"] == 1024
        assert cfg["allocation"]["block_size"] == 1024
        assert cfg["webhook"] is None

    def test_save_and_load(self):
        cfg = load_config()
        cfg["tables"]["ranges"] = "/data/ranges.json"
        cfg["canonical"]["block_size"] = 1024
        cfg["gaps"]["region_end"] = "50FFFF"
        cfg["webhook"] = "https://hooks.example.com/icao"

        path = save_config(cfg)
        assert path.exists()

        loaded = load_config()
        assert loaded["tables"]["ranges"] == "/data/ranges.json"
        assert loaded["tables"]["prefixes"] is None
        assert loaded["canonical"]["block_size"] == 1024
        assert loaded["gaps"]["region_end"] == "50FFFF"
        assert loaded["webhook"] == "https://hooks.example.com/icao"

    def test_hex_strings_stay_strings(self):
        cfg = load_config()
        cfg["gaps"]["region_start"] = "000100"
        save_config(cfg)
        assert load_config()["gaps"]["region_start"] == "000100"

    def test_null_values_roundtrip(self):
        cfg = load_config()
        cfg["reports"]["path"] = None
        save_config(cfg)
        assert load_config()["reports"]["path"] is None

    def test_hand_written_file(self):
        config.CONFIG_DIR.mkdir(parents=True)
        config.CONFIG_FILE.write_text(
            "# comment\n"
            "allocation:\n"
            "  block_size: 2048\n"
            "\n"
            "webhook: https://hooks.example.com/x\n"
        )
        cfg = load_config()
        assert cfg["allocation"]["block_size"] == 2048
        assert cfg["webhook"] == "https://hooks.example.com/x"
        # Untouched sections keep their defaults
        assert cfg["canonical"]["block_size"] == 256

    def test_bool_values(self):
        config.CONFIG_DIR.mkdir(parents=True)
        config.CONFIG_FILE.write_text("extra:\n  enabled: true\n  other: False\n")
        cfg = load_config()
        assert cfg["extra"]["enabled"] is True
        assert cfg["extra"]["other"] is False
