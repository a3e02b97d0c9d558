from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from app.core.logging_config import structured_log

MONTH_NAMES = [
    'Enero',
    'Febrero',
    'Marzo',
    'Abril',
    'Mayo',
    'Junio',
    'Julio',
    'Agosto',
    'Septiembre',
    'Octubre',
    'Noviembre',
    'Diciembre',
]

INT_COLUMNS = frozenset({
    'TotalContratos',
    'TotalCotizaciones',
    'MesesActivos',
    'Año',
    'Mes',
    'CantidadMeses',
    'Cotizaciones',
    'Contratos',
})
FLOAT_COLUMNS = frozenset({'Eficiencia', 'PromedioMensual', 'Porcentaje_Conversion'})

_MAX_LOGGED_ERRORS = 5
_INT_PREFIX = re.compile(r'^\s*([+-]?\d+)')
_FLOAT_PREFIX = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')

Validator = Callable[[dict[str, Any]], bool]


@dataclass
class ParsedTable:
    table: str
    rows: list[dict[str, Any]] = field(default_factory=list)
    rejected: int = 0
    errors: list[str] = field(default_factory=list)


def month_name(month: int) -> str:
    return MONTH_NAMES[month - 1] if 1 <= month <= 12 else ''


def to_int(value: object) -> int:
    """Leading-integer parse ("12abc" -> 12); anything else is 0."""
    m = _INT_PREFIX.match(str(value or ''))
    return int(m.group(1)) if m else 0


def to_float(value: object) -> float:
    m = _FLOAT_PREFIX.match(str(value or ''))
    if not m:
        return 0.0
    try:
        parsed = float(m.group(1))
    except ValueError:
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def sanitize_count(value: object) -> int:
    """Strip currency symbols and separators, keep the integer floor."""
    cleaned = re.sub(r'[^0-9.]', '', str(value or ''))
    if not cleaned:
        return 0
    try:
        return int(math.floor(float(cleaned)))
    except (ValueError, OverflowError):
        return 0


def coerce_value(header: str, value: str) -> Any:
    if header in INT_COLUMNS:
        return to_int(value)
    if header in FLOAT_COLUMNS:
        return to_float(value)
    return value


def _split_line(line: str) -> list[str]:
    return [token.replace('"', '').strip() for token in line.split(',')]


def _iter_records(text: str) -> Iterator[tuple[int, dict[str, str]]]:
    lines = str(text or '').strip().split('\n')
    headers = _split_line(lines[0])
    if not any(headers):
        return
    for i, line in enumerate(lines[1:], start=1):
        if not line.strip():
            continue
        values = _split_line(line)
        yield i, {h: (values[idx] if idx < len(values) else '') for idx, h in enumerate(headers)}


def _report(table: str, rows: list[dict[str, Any]], errors: list[str]) -> ParsedTable:
    if errors:
        structured_log(
            'warning',
            'csv_rows_rejected',
            table=table,
            rejected=len(errors),
            kept=len(rows),
            sample=errors[:_MAX_LOGGED_ERRORS],
        )
    return ParsedTable(table=table, rows=rows, rejected=len(errors), errors=errors)


def parse_csv(text: str, validator: Validator | None = None, table: str = 'csv') -> ParsedTable:
    """Parse a header-first CSV document into typed row dicts.

    Declared numeric columns are coerced (empty or non-numeric -> 0), missing
    trailing fields become "" and rows rejected by ``validator`` are dropped and
    counted. Never raises: a document that cannot be read yields an empty table.
    """
    try:
        rows: list[dict[str, Any]] = []
        errors: list[str] = []
        for i, record in _iter_records(text):
            try:
                item = {header: coerce_value(header, value) for header, value in record.items()}
                if validator is None or validator(item):
                    rows.append(item)
                else:
                    errors.append(f'Row {i}: Failed validation')
            except Exception as exc:
                errors.append(f'Row {i}: Parse error - {exc}')
        return _report(table, rows, errors)
    except Exception as exc:
        structured_log('error', 'csv_parse_failed', table=table, error=str(exc))
        return ParsedTable(table=table)


def validate_eficiencia_total(item: dict[str, Any]) -> bool:
    return bool(
        item.get('CodigoProductor')
        and item.get('productor')
        and isinstance(item.get('Cotizaciones'), int)
        and isinstance(item.get('Contratos'), int)
        and isinstance(item.get('Porcentaje_Conversion'), float)
    )


def validate_eficiencia_mensual(item: dict[str, Any]) -> bool:
    year = item.get('Año')
    month = item.get('Mes')
    return bool(
        item.get('codigoProductor')
        and item.get('productor')
        and isinstance(year, int)
        and isinstance(month, int)
        and 2020 <= year <= 2030
        and 1 <= month <= 12
    )


def _valid_monthly(code: str, name: str, year: int, month: int) -> bool:
    return bool(code and name and year >= 2020 and 1 <= month <= 12)


def parse_contratos_mensuales(text: str) -> ParsedTable:
    table = 'contratosMensuales'
    try:
        rows: list[dict[str, Any]] = []
        errors: list[str] = []
        for i, obj in _iter_records(text):
            year = to_int(obj.get('Año'))
            month = to_int(obj.get('Mes'))
            item = {
                'codigoProductor': obj.get('codigoProductor') or '',
                'productor': obj.get('productor') or '',
                'Año': year,
                'Mes': month,
                'NombreMes': month_name(month) or obj.get('NombreMes') or '',
                'TotalContratos': sanitize_count(obj.get('TotalContratos')),
            }
            if _valid_monthly(item['codigoProductor'], item['productor'], year, month):
                rows.append(item)
            else:
                errors.append(f'Row {i}: Failed validation')
        return _report(table, rows, errors)
    except Exception as exc:
        structured_log('error', 'csv_parse_failed', table=table, error=str(exc))
        return ParsedTable(table=table)


def parse_cotizaciones_mensuales(text: str) -> ParsedTable:
    table = 'cotizacionesMensuales'
    try:
        rows: list[dict[str, Any]] = []
        errors: list[str] = []
        for i, obj in _iter_records(text):
            year = to_int(obj.get('Año'))
            month = to_int(obj.get('Mes'))
            item = {
                'CodigoProductor': obj.get('CodigoProductor') or '',
                'productor': obj.get('productor') or '',
                'Año': year,
                'Mes': month,
                'NombreMes': month_name(month) or obj.get('NombreMes') or '',
                'TotalCotizaciones': to_int(obj.get('TotalCotizaciones')),
                'PrimeraCotizacion': obj.get('PrimeraCotizacion') or '',
                'UltimaCotizacion': obj.get('UltimaCotizacion') or '',
            }
            if _valid_monthly(item['CodigoProductor'], item['productor'], year, month):
                rows.append(item)
            else:
                errors.append(f'Row {i}: Failed validation')
        return _report(table, rows, errors)
    except Exception as exc:
        structured_log('error', 'csv_parse_failed', table=table, error=str(exc))
        return ParsedTable(table=table)
