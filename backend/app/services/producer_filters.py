from __future__ import annotations

import math
from typing import Any

from app.schemas.producers import SearchFilters

ITEMS_PER_PAGE = 10


def apply_advanced_filters(rows: list[dict] | None, filters: SearchFilters) -> list[dict]:
    if not rows or not isinstance(rows, list):
        return []

    term = (filters.search_term or '').strip().lower()
    out: list[dict] = []
    for item in rows:
        if term:
            name = str(item.get('productor') or '').lower()
            code = str(item.get('CodigoProductor') or '').lower()
            if term not in name and term not in code:
                continue
        conversion = float(item.get('Porcentaje_Conversion') or 0)
        quotes = int(item.get('Cotizaciones') or 0)
        if filters.min_conversion is not None and conversion < filters.min_conversion:
            continue
        if filters.max_conversion is not None and conversion > filters.max_conversion:
            continue
        if filters.min_cotizaciones is not None and quotes < filters.min_cotizaciones:
            continue
        if filters.max_cotizaciones is not None and quotes > filters.max_cotizaciones:
            continue
        out.append(item)
    return out


def sort_rows(rows: list[dict], key: str | None, direction: str = 'desc') -> list[dict]:
    """Sort by ``key``: text case-insensitively, numbers numerically; other rows keep their place."""
    if not key:
        return list(rows)
    reverse = direction == 'desc'
    values = [r.get(key) for r in rows]
    if all(isinstance(v, str) for v in values):
        return sorted(rows, key=lambda r: str(r.get(key)).lower(), reverse=reverse)
    if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        return sorted(rows, key=lambda r: r.get(key), reverse=reverse)
    return list(rows)


def paginate(rows: list[dict], page: int = 1, page_size: int = ITEMS_PER_PAGE) -> dict[str, Any]:
    page_size = max(1, page_size)
    total = len(rows)
    total_pages = math.ceil(total / page_size)
    page = max(1, page)
    start = (page - 1) * page_size
    return {
        'rows': rows[start:start + page_size],
        'page': page,
        'page_size': page_size,
        'total_pages': total_pages,
        'total': total,
    }


def producer_detail(dataset: dict[str, Any], code: str) -> dict[str, Any] | None:
    code = str(code or '').strip()
    producer = next((p for p in dataset.get('eficienciaTotal') or [] if p.get('CodigoProductor') == code), None)
    if producer is None:
        return None

    metrics = dataset.get('performanceMetrics') or {}
    analytics = next(
        (a for a in metrics.get('producerAnalytics') or [] if a.get('CodigoProductor') == code),
        None,
    )
    directory = next(
        (d for d in dataset.get('productorInfo') or [] if str(d.get('codigoproductor') or '') == code),
        None,
    )
    return {
        'producer': producer,
        'analytics': analytics,
        'directoryName': (directory or {}).get('productor') or producer.get('productor'),
        'eficienciaMensual': [m for m in dataset.get('eficienciaMensual') or [] if m.get('codigoProductor') == code],
        'cotizacionesMensuales': [m for m in dataset.get('cotizacionesMensuales') or [] if m.get('CodigoProductor') == code],
        'contratosMensuales': [m for m in dataset.get('contratosMensuales') or [] if m.get('codigoProductor') == code],
        'cotizacionesTotal': next(
            (t for t in dataset.get('cotizacionesTotal') or [] if t.get('CodigoProductor') == code), None
        ),
        'contratosTotal': next(
            (t for t in dataset.get('contratosTotal') or [] if t.get('codigoProductor') == code), None
        ),
    }
