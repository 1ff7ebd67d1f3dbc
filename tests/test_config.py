from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from chat_agent.config import ConfigError, find_config_path, load_config, with_db_path


class TestLoadConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = load_config(env={})
        self.assertEqual(cfg.stage, "dev")
        self.assertEqual(cfg.db_path, "chat_agent.sqlite3")
        self.assertEqual(cfg.default_row_limit, 100)
        self.assertEqual(cfg.max_row_limit, 500)

    def test_env_overrides(self) -> None:
        cfg = load_config(
            env={
                "STAGE": "prod",
                "CHAT_AGENT_DB_PATH": "/tmp/x.db",
                "CHAT_AGENT_DEFAULT_ROW_LIMIT": "20",
                "CHAT_AGENT_MAX_ROW_LIMIT": "200",
            }
        )
        self.assertEqual(cfg.stage, "prod")
        self.assertEqual(cfg.db_path, "/tmp/x.db")
        self.assertEqual(cfg.default_row_limit, 20)
        self.assertEqual(cfg.max_row_limit, 200)

    def test_yaml_file_then_env(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "chat-agent.yaml"
            p.write_text("db_path: from-file.db\ndefault_row_limit: 50\n", encoding="utf-8")
            cfg = load_config(p, env={"CHAT_AGENT_DEFAULT_ROW_LIMIT": "60"})
        self.assertEqual(cfg.db_path, "from-file.db")
        self.assertEqual(cfg.default_row_limit, 60)

    def test_empty_yaml_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "chat-agent.yaml"
            p.write_text("", encoding="utf-8")
            self.assertEqual(load_config(p, env={}).max_row_limit, 500)

    def test_unknown_keys_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "chat-agent.yaml"
            p.write_text("max_rows: 5\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_config(p, env={})

    def test_non_mapping_yaml_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "chat-agent.yaml"
            p.write_text("- a\n- b\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_config(p, env={})

    def test_bad_limits_rejected(self) -> None:
        for env in (
            {"CHAT_AGENT_MAX_ROW_LIMIT": "lots"},
            {"CHAT_AGENT_DEFAULT_ROW_LIMIT": "-1"},
            {"CHAT_AGENT_DEFAULT_ROW_LIMIT": "600"},
        ):
            with self.subTest(env=env):
                with self.assertRaises(ConfigError):
                    load_config(env=env)

    def test_with_db_path(self) -> None:
        cfg = load_config(env={})
        self.assertEqual(with_db_path(cfg, "other.db").db_path, "other.db")
        self.assertIs(with_db_path(cfg, None), cfg)


class TestFindConfigPath(unittest.TestCase):
    def test_explicit_missing_path_raises(self) -> None:
        with self.assertRaises(ConfigError):
            find_config_path("/nonexistent/chat-agent.yaml")

    def test_repo_local_then_xdg(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            old_cwd = os.getcwd()
            old_xdg = os.environ.get("XDG_CONFIG_HOME")
            os.environ["XDG_CONFIG_HOME"] = os.path.join(td, ".config")
            try:
                os.chdir(td)
                self.assertIsNone(find_config_path(None))

                xdg = Path(td) / ".config" / "chat-agent" / "config.yaml"
                xdg.parent.mkdir(parents=True)
                xdg.write_text("stage: xdg\n", encoding="utf-8")
                self.assertEqual(find_config_path(None), xdg.resolve())

                local = Path(td) / "chat-agent.yaml"
                local.write_text("stage: local\n", encoding="utf-8")
                self.assertEqual(find_config_path(None), local.resolve())
            finally:
                os.chdir(old_cwd)
                if old_xdg is None:
                    os.environ.pop("XDG_CONFIG_HOME", None)
                else:
                    os.environ["XDG_CONFIG_HOME"] = old_xdg
