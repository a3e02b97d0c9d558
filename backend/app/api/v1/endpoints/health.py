from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.dataset_cache import DatasetCache
from app.core.deps import get_dataset_cache
from app.core.request_metrics import summary as request_metrics_summary

router = APIRouter()


@router.get('/health')
def health(cache: DatasetCache = Depends(get_dataset_cache)):
    """
    Health check. Siempre 200: la API sirve aunque la caché esté vacía.
    cache_age_seconds es None cuando todavía no se cargaron los CSV.
    """
    age = cache.age_seconds()
    return {
        'ok': True,
        'service': settings.app_name,
        'env': settings.app_env,
        'dataset_cached': age is not None,
        'cache_age_seconds': round(age, 1) if age is not None else None,
        'sources': len(settings.csv_sources()),
    }


@router.get('/health/perf')
def health_perf(cache: DatasetCache = Depends(get_dataset_cache)):
    """Latencia por endpoint y métricas de la caché del dataset."""
    return {
        'service': settings.app_name,
        'request_latency': request_metrics_summary(),
        'dataset_cache': cache.metrics(),
    }
