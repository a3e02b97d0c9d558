"""
Validaciones de configuración en arranque para APP_ENV=prod.
Si alguna falla, se lanza RuntimeError y la aplicación no inicia.
"""
from urllib.parse import urlparse

from app.core.config import settings


def validate_production_config() -> None:
    """Comprueba que en producción no se use CORS * ni fuentes CSV sin https."""
    if (getattr(settings, "app_env", "dev") or "dev").strip().lower() != "prod":
        return

    errors: list[str] = []

    if not (settings.cors_origins or "").strip():
        errors.append("CORS_ORIGINS no puede estar vacío en producción.")
    elif settings.cors_origins.strip() == "*":
        errors.append(
            "CORS_ORIGINS no puede ser '*' en producción. "
            "Configure una lista explícita de orígenes (ej: https://app.ejemplo.com)."
        )

    for name, url in settings.csv_sources().items():
        if urlparse(str(url or "")).scheme != "https":
            errors.append(f"La fuente CSV '{name}' debe usar https en producción.")

    if int(settings.dataset_cache_ttl_seconds or 0) <= 0:
        errors.append("DATASET_CACHE_TTL_SECONDS debe ser mayor que 0 en producción.")

    if errors:
        raise RuntimeError(
            "Configuración de producción inválida:\n  - " + "\n  - ".join(errors)
        )
