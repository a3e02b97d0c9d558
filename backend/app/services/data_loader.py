"""
Assembly of the producer dataset: fetch the CSV extracts, parse, repair, derive analytics.

All extracts are fetched concurrently and the load is all-or-nothing: one failed
fetch fails the whole load and nothing is cached. Concurrent callers share the
in-flight load for the same key instead of fetching again.
"""
from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any

import httpx

from app.core.config import Settings
from app.core.dataset_cache import ALL_DATA_KEY, DatasetCache
from app.core.logging_config import log_duration, structured_log
from app.services.analytics_service import AnalyticsService
from app.services.consistency import correct_eficiencia_mensual, correct_eficiencia_total
from app.services.csv_parser import (
    ParsedTable,
    parse_contratos_mensuales,
    parse_cotizaciones_mensuales,
    parse_csv,
    validate_eficiencia_mensual,
    validate_eficiencia_total,
)

TABLE_KEYS = (
    'eficienciaTotal',
    'eficienciaMensual',
    'cotizacionesMensuales',
    'contratosMensuales',
    'cotizacionesTotal',
    'productorInfo',
    'contratosTotal',
)


class DatasetLoadError(Exception):
    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f'{source}: {detail}')
        self.source = source
        self.detail = detail


def parse_documents(texts: dict[str, str]) -> dict[str, ParsedTable]:
    return {
        'eficienciaTotal': parse_csv(texts.get('eficienciaTotal', ''), validate_eficiencia_total, 'eficienciaTotal'),
        'eficienciaMensual': parse_csv(texts.get('eficienciaMensual', ''), validate_eficiencia_mensual, 'eficienciaMensual'),
        'cotizacionesMensuales': parse_cotizaciones_mensuales(texts.get('cotizacionesMensuales', '')),
        'contratosMensuales': parse_contratos_mensuales(texts.get('contratosMensuales', '')),
        'cotizacionesTotal': parse_csv(texts.get('cotizacionesTotal', ''), table='cotizacionesTotal'),
        'productorInfo': parse_csv(texts.get('productorInfo', ''), table='productorInfo'),
        'contratosTotal': parse_csv(texts.get('contratosTotal', ''), table='contratosTotal'),
    }


def build_dataset(texts: dict[str, str]) -> dict[str, Any]:
    """Synchronous part of the pipeline: parse -> correct -> analytics."""
    parsed = parse_documents(texts)
    total_report = correct_eficiencia_total(parsed['eficienciaTotal'].rows)
    mensual_report = correct_eficiencia_mensual(parsed['eficienciaMensual'].rows)

    dataset: dict[str, Any] = {key: parsed[key].rows for key in TABLE_KEYS}
    dataset['eficienciaTotal'] = total_report.rows
    dataset['eficienciaMensual'] = mensual_report.rows
    dataset['performanceMetrics'] = AnalyticsService.calculate_advanced_performance_metrics(
        dataset['eficienciaTotal'],
        dataset['eficienciaMensual'],
        dataset['cotizacionesMensuales'],
        dataset['contratosMensuales'],
    )

    total_contracts = sum(int(p.get('Contratos') or 0) for p in dataset['eficienciaTotal'])
    total_quotes = sum(int(p.get('Cotizaciones') or 0) for p in dataset['eficienciaTotal'])
    dataset['meta'] = {
        'source': 'csv',
        'generated_at': datetime.now(timezone.utc).isoformat(),
        'rows': {key: len(dataset[key]) for key in TABLE_KEYS},
        'rejected': {key: parsed[key].rejected for key in TABLE_KEYS},
        'corrected': {
            'eficienciaTotal': total_report.corrected,
            'eficienciaMensual': mensual_report.corrected,
        },
        'total_contracts': total_contracts,
        'total_cotizaciones': total_quotes,
        'real_conversion_pct': round(total_contracts / total_quotes * 100, 2) if total_quotes > 0 else 0.0,
    }
    return dataset


class DatasetLoader:
    def __init__(
        self,
        settings: Settings,
        cache: DatasetCache,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self._transport = transport
        self._inflight: dict[str, asyncio.Task] = {}

    async def _fetch_one(self, client: httpx.AsyncClient, source: str, url: str) -> str:
        try:
            res = await client.get(url)
            res.raise_for_status()
            return res.text
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DatasetLoadError(source, str(exc)) from exc

    async def fetch_documents(self) -> dict[str, str]:
        sources = self.settings.csv_sources()
        timeout = float(max(1.0, self.settings.csv_fetch_timeout_seconds))
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport, follow_redirects=True) as client:
            tasks = [asyncio.ensure_future(self._fetch_one(client, name, url)) for name, url in sources.items()]
            try:
                texts = await asyncio.gather(*tasks)
            except BaseException:
                # siblings must finish before the client closes
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        return dict(zip(sources.keys(), texts))

    async def _load(self, key: str) -> dict[str, Any]:
        start = time.time()
        structured_log('info', 'dataset_load_started', cache_key=key)
        try:
            texts = await self.fetch_documents()
        except DatasetLoadError as exc:
            structured_log('error', 'dataset_load_failed', cache_key=key, source=exc.source, error=exc.detail)
            raise

        with log_duration('dataset_build', cache_key=key):
            dataset = build_dataset(texts)
        self.cache.set(key, dataset)
        meta = dataset['meta']
        forecast = dataset['performanceMetrics']['nextMonthPrediction']
        structured_log(
            'info',
            'dataset_load_completed',
            duration_ms=(time.time() - start) * 1000,
            cache_key=key,
            rows=meta['rows'],
            rejected=meta['rejected'],
            corrected=meta['corrected'],
            real_conversion_pct=meta['real_conversion_pct'],
            predicted_contracts=forecast['totalContracts'],
            predicted_cotizaciones=forecast['totalCotizaciones'],
            months_analyzed=forecast['monthsAnalyzed'],
        )
        return dataset

    async def load_all_data(self, force: bool = False, key: str = ALL_DATA_KEY) -> dict[str, Any]:
        if force:
            self.cache.clear()
        else:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            self._inflight.pop(key, None)

    def invalidate(self) -> int:
        removed = self.cache.clear()
        structured_log('info', 'dataset_cache_cleared', removed=removed)
        return removed
