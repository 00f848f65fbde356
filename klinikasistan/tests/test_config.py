"""Tests for env-driven configuration."""
from __future__ import annotations

import asyncio
import os
import unittest
import uuid
from unittest.mock import patch

from klinikasistan.clients.llm.config import LLMConfig
from klinikasistan.clients.llm.providers.noop import NoOpLLMClient
from klinikasistan.clients.llm.registry import LLMRegistry, build_llm_client_from_env
from klinikasistan.config import ClinicConfig, PostgresConfig, load_clinic_config, load_postgres_config
from klinikasistan.core.enums import ReminderChannel
from klinikasistan.core.exceptions import ConfigurationError

_LLM_KEYS = {"OPENAI_API_KEY": "", "GEMINI_API_KEY": "", "GOOGLE_API_KEY": "", "LLM_MODEL": ""}


class TestClinicConfig(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = load_clinic_config()
        self.assertEqual(config.timezone, "Europe/Istanbul")
        self.assertIsNone(config.default_clinic_id)
        self.assertEqual(config.reminder_cooldown_days, 30)
        self.assertEqual(config.default_appointment_minutes, 30)
        self.assertEqual(config.reminder_channel, ReminderChannel.WHATSAPP)

    def test_env_values(self):
        clinic_id = uuid.uuid4()
        env = {
            "DEFAULT_CLINIC_ID": str(clinic_id),
            "CLINIC_TIMEZONE": "Europe/Berlin",
            "REMINDER_CHANNEL": "telegram",
            "LLM_TIMEOUT_SECONDS": "12.5",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_clinic_config()
        self.assertEqual(config.default_clinic_id, clinic_id)
        self.assertEqual(config.tzinfo.key, "Europe/Berlin")
        self.assertEqual(config.reminder_channel, ReminderChannel.TELEGRAM)
        self.assertEqual(config.llm_timeout_seconds, 12.5)

    def test_invalid_values(self):
        for env in (
            {"CLINIC_TIMEZONE": "Mars/Olympus"},
            {"DEFAULT_CLINIC_ID": "clinic-1"},
            {"REMINDER_CHANNEL": "PIGEON"},
            {"DEFAULT_APPOINTMENT_MINUTES": "0"},
        ):
            with patch.dict(os.environ, env, clear=True):
                with self.assertRaises(ValueError, msg=str(env)):
                    load_clinic_config()

    def test_direct_construction_validates(self):
        with self.assertRaises(ValueError):
            ClinicConfig(assistant_max_tool_steps=0)


class TestPostgresConfig(unittest.TestCase):
    def test_overrides_win(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql://db/klinik", "DB_POOL_SIZE": "3"}, clear=True):
            config = load_postgres_config(pool_size=7)
        self.assertEqual(config.url, "postgresql://db/klinik")
        self.assertEqual(config.pool_size, 7)

    def test_rejects_other_databases(self):
        with self.assertRaises(ValueError):
            PostgresConfig(url="mysql://db/klinik")

    def test_async_url_selects_asyncpg(self):
        self.assertEqual(PostgresConfig(url="postgres://u@db/klinik").async_url, "postgresql+asyncpg://u@db/klinik")
        self.assertEqual(
            PostgresConfig(url="postgresql+asyncpg://db/klinik").async_url, "postgresql+asyncpg://db/klinik"
        )

    def test_negative_overflow_rejected(self):
        with self.assertRaises(ValueError):
            PostgresConfig(max_overflow=-1)


class TestLLMConfig(unittest.TestCase):
    def test_no_key_means_noop_client(self):
        with patch.dict(os.environ, _LLM_KEYS, clear=False):
            self.assertIsNone(LLMConfig.from_env())
            client = build_llm_client_from_env()
        self.assertIsInstance(client, NoOpLLMClient)
        with self.assertRaises(ConfigurationError):
            asyncio.run(client.chat([{"role": "user", "content": "merhaba"}]))

    def test_openai_wins(self):
        env = dict(_LLM_KEYS, OPENAI_API_KEY="sk-1", GEMINI_API_KEY="g-1")
        with patch.dict(os.environ, env, clear=False):
            config = LLMConfig.from_env()
        self.assertEqual(config.provider, "openai")
        self.assertEqual(config.model, "gpt-4o-mini")

    def test_registry_unknown_provider(self):
        with self.assertRaises(KeyError):
            LLMRegistry().build("claude", {})
