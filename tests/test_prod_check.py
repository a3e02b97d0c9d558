"""Tests para validación de configuración de producción (prod_check)."""
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'backend'))

from app.core.prod_check import validate_production_config  # noqa: E402

HTTPS_SOURCES = {
    'eficienciaTotal': 'https://datos.example.com/eficiencia_total.csv',
    'eficienciaMensual': 'https://datos.example.com/eficiencia_mensual.csv',
}


class TestProdCheck(unittest.TestCase):
    """Validación en arranque para APP_ENV=prod."""

    def _prod(self, mock_settings, cors='https://app.example.com', sources=None, ttl=300):
        mock_settings.app_env = "prod"
        mock_settings.cors_origins = cors
        mock_settings.csv_sources.return_value = sources or HTTPS_SOURCES
        mock_settings.dataset_cache_ttl_seconds = ttl

    @patch("app.core.prod_check.settings")
    def test_skip_validation_when_not_prod(self, mock_settings):
        mock_settings.app_env = "dev"
        mock_settings.cors_origins = "*"
        validate_production_config()  # no raise

    @patch("app.core.prod_check.settings")
    def test_prod_fails_when_cors_is_wildcard(self, mock_settings):
        self._prod(mock_settings, cors="*")
        with self.assertRaises(RuntimeError) as ctx:
            validate_production_config()
        self.assertIn("CORS_ORIGINS", str(ctx.exception))

    @patch("app.core.prod_check.settings")
    def test_prod_fails_when_source_is_plain_http(self, mock_settings):
        self._prod(mock_settings, sources={**HTTPS_SOURCES, 'contratosTotal': 'http://datos.example.com/c.csv'})
        with self.assertRaises(RuntimeError) as ctx:
            validate_production_config()
        self.assertIn("contratosTotal", str(ctx.exception))

    @patch("app.core.prod_check.settings")
    def test_prod_fails_when_cache_ttl_disabled(self, mock_settings):
        self._prod(mock_settings, ttl=0)
        with self.assertRaises(RuntimeError) as ctx:
            validate_production_config()
        self.assertIn("DATASET_CACHE_TTL_SECONDS", str(ctx.exception))

    @patch("app.core.prod_check.settings")
    def test_prod_passes_with_valid_config(self, mock_settings):
        self._prod(mock_settings, cors="https://app.example.com,https://other.example.com")
        validate_production_config()  # no raise
