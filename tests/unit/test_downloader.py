"""Tests for main/downloader.py - CLI entry point."""
from __future__ import annotations

import json
import os
from unittest.mock import patch

import pytest


class TestCreateCliParser:
    """Tests for create_cli_parser function."""

    def test_defaults(self):
        """Defaults defer to config for paths and shelf."""
        from main.downloader import create_cli_parser

        args = create_cli_parser().parse_args([])

        assert args.csv_file == "data.csv"
        assert args.output_dir is None
        assert args.store is None
        assert args.shelf is None
        assert args.log_level == "INFO"
        assert args.config == "config.json"

    def test_all_options(self):
        """Every option is parsed."""
        from main.downloader import create_cli_parser

        args = create_cli_parser().parse_args([
            "export.csv", "--output_dir", "books", "--store", "s.json",
            "--shelf", "wishlist", "--log-level", "DEBUG", "--config", "c.json",
        ])

        assert args.csv_file == "export.csv"
        assert args.output_dir == "books"
        assert args.store == "s.json"
        assert args.shelf == "wishlist"
        assert args.log_level == "DEBUG"
        assert args.config == "c.json"

    def test_invalid_log_level(self):
        """Unknown log levels are rejected."""
        from main.downloader import create_cli_parser

        with pytest.raises(SystemExit):
            create_cli_parser().parse_args(["--log-level", "LOUD"])


class TestRun:
    """Tests for run function."""

    def _args(self, *argv):
        from main.downloader import create_cli_parser
        return create_cli_parser().parse_args(list(argv))

    def test_missing_catalog(self, temp_dir, monkeypatch):
        """A missing catalog exits with code 1."""
        from main.downloader import run

        config = os.path.join(temp_dir, "config.json")
        monkeypatch.setenv("SHELFFETCH_CONFIG_PATH", config)

        code = run(self._args(os.path.join(temp_dir, "nope.csv"), "--config", config))

        assert code == 1

    def test_corrupt_store(self, temp_dir, sample_csv_file, monkeypatch):
        """An unreadable record store exits with code 1."""
        from main.downloader import run

        config = os.path.join(temp_dir, "config.json")
        monkeypatch.setenv("SHELFFETCH_CONFIG_PATH", config)
        store = os.path.join(temp_dir, "store.json")
        with open(store, "w", encoding="utf-8") as f:
            f.write("[")

        code = run(self._args(sample_csv_file, "--store", store, "--config", config))

        assert code == 1

    def test_paths_from_config(self, temp_dir, sample_csv_file, monkeypatch):
        """Output directory and store file default to the config values."""
        from main.downloader import run

        config = os.path.join(temp_dir, "config.json")
        output_dir = os.path.join(temp_dir, "configured-out")
        with open(config, "w", encoding="utf-8") as f:
            json.dump({"paths": {"output_dir": output_dir, "store_file": os.path.join(temp_dir, "s.json")},
                       "catalog": {"shelf_marker": "no-such-shelf"},
                       "deferred": {"base_delay_s": 0, "jitter_s": 0.01, "drain_poll_s": 0.01}}, f)
        monkeypatch.setenv("SHELFFETCH_CONFIG_PATH", config)

        code = run(self._args(sample_csv_file, "--config", config))

        assert code == 0
        assert os.path.isdir(output_dir)


class TestMain:
    """Tests for main function."""

    def test_exit_code_from_run(self):
        """main exits with run's return code."""
        from main.downloader import main

        with patch("main.downloader.run", return_value=1), patch("main.downloader.configure_logging"):
            with pytest.raises(SystemExit) as exc_info:
                main(["data.csv"])

        assert exc_info.value.code == 1

    def test_keyboard_interrupt(self):
        """Ctrl-C exits cleanly."""
        from main.downloader import main

        with patch("main.downloader.run", side_effect=KeyboardInterrupt), \
                patch("main.downloader.configure_logging"):
            with pytest.raises(SystemExit) as exc_info:
                main([])

        assert exc_info.value.code == 0

    def test_unexpected_error(self):
        """Unexpected exceptions exit with code 1."""
        from main.downloader import main

        with patch("main.downloader.run", side_effect=RuntimeError("boom")), \
                patch("main.downloader.configure_logging"):
            with pytest.raises(SystemExit) as exc_info:
                main([])

        assert exc_info.value.code == 1
