"""
Spreadsheet exports of the producer tables.

Column specs decide the header labels and how each cell is rendered:
percentages as "N.D%", dates as es-ES short dates (d/m/yyyy) or "N/A" when empty.
Workbooks are written with pandas on the openpyxl engine.
"""
from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

import pandas as pd
from openpyxl.utils import get_column_letter

from app.core.rounding import round_half_up
from app.models.enums import ColumnType
from app.schemas.exports import EXPORTABLE_TABLES, ExportColumn
from app.services.csv_parser import month_name

XLSX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
MISSING_DATE = 'N/A'
MAX_SHEET_NAME = 31
MAX_COLUMN_WIDTH = 55

RANKING_COLUMNS = [
    ExportColumn(key='CodigoProductor', label='Código', type=ColumnType.STRING),
    ExportColumn(key='productor', label='Productor', type=ColumnType.STRING),
    ExportColumn(key='Cotizaciones', label='Cotizaciones', type=ColumnType.NUMBER),
    ExportColumn(key='Contratos', label='Contratos', type=ColumnType.NUMBER),
    ExportColumn(key='Porcentaje_Conversion', label='% Conversión', type=ColumnType.PERCENTAGE),
    ExportColumn(key='Fecha_Actualizacion', label='Última Actualización', type=ColumnType.DATE),
]


@dataclass
class ExportFile:
    filename: str
    content: bytes
    media_type: str = XLSX_MEDIA_TYPE


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _plain_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_es_date(value: Any) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return MISSING_DATE
    parsed = pd.to_datetime(value, errors='coerce')
    if pd.isna(parsed):
        return MISSING_DATE
    return f'{parsed.day}/{parsed.month}/{parsed.year}'


def format_percentage(value: Any) -> Any:
    if not _is_number(value):
        return value
    return f'{round_half_up(value, 1):.1f}%'


def format_export_value(value: Any, column_type: ColumnType | str) -> Any:
    kind = ColumnType(column_type)
    if kind == ColumnType.DATE:
        return format_es_date(value)
    if kind == ColumnType.PERCENTAGE:
        return format_percentage(value)
    return value


def build_table(rows: Iterable[dict], columns: list[ExportColumn]) -> tuple[list[str], list[list[Any]]]:
    header = [c.label for c in columns]
    data = [[format_export_value(row.get(c.key), c.type) for c in columns] for row in rows]
    return header, data


def _sheet_name(name: str) -> str:
    # Excel no admite []:*?/\ en nombres de hoja
    return re.sub(r'[\[\]:*?/\\]', '', name)[:MAX_SHEET_NAME] or 'Hoja'


def _column_widths(header: list[str], data: list[list[Any]]) -> list[int]:
    widths = []
    for i, label in enumerate(header):
        longest = max([len(str(label))] + [len(str(row[i])) for row in data if i < len(row)])
        widths.append(min(MAX_COLUMN_WIDTH, longest + 2))
    return widths


def write_workbook(sheets: list[tuple[str, list[str], list[list[Any]]]]) -> bytes:
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine='openpyxl') as writer:
        for name, header, data in sheets:
            sheet = _sheet_name(name)
            pd.DataFrame(data, columns=header).to_excel(writer, sheet_name=sheet, index=False)
            ws = writer.sheets[sheet]
            for i, width in enumerate(_column_widths(header, data), 1):
                ws.column_dimensions[get_column_letter(i)].width = width
    return buf.getvalue()


def export_table(rows: list[dict], columns: list[ExportColumn], sheet_name: str, file_prefix: str) -> ExportFile:
    header, data = build_table(rows, columns)
    suffix = re.sub(r'\s', '_', sheet_name)
    filename = f'{file_prefix}_{suffix}.xlsx'
    return ExportFile(filename=filename, content=write_workbook([(sheet_name, header, data)]))


def producer_workbook_sheets(detail: dict[str, Any]) -> list[tuple[str, list[str], list[list[Any]]]]:
    producer = detail['producer']
    sheets = [(
        'Resumen General',
        ['Campo', 'Valor'],
        [
            ['Código Productor', producer.get('CodigoProductor')],
            ['Nombre', producer.get('productor')],
            ['Total Cotizaciones', producer.get('Cotizaciones')],
            ['Total Contratos', producer.get('Contratos')],
            ['% Conversión', f"{_plain_number(producer.get('Porcentaje_Conversion') or 0)}%"],
            ['Última Actualización', format_es_date(producer.get('Fecha_Actualizacion'))],
        ],
    )]

    eficiencia = detail.get('eficienciaMensual') or []
    if eficiencia:
        sheets.append((
            'Eficiencia Mensual',
            ['Año', 'Mes', 'Nombre Mes', 'Contratos', 'Cotizaciones', 'Eficiencia %'],
            [
                [
                    m.get('Año'),
                    m.get('Mes'),
                    m.get('NombreMes') or month_name(int(m.get('Mes') or 0)) or f"Mes {m.get('Mes')}",
                    m.get('TotalContratos'),
                    m.get('TotalCotizaciones'),
                    format_percentage(float(m.get('Eficiencia') or 0)),
                ]
                for m in eficiencia
            ],
        ))

    cotizaciones = detail.get('cotizacionesMensuales') or []
    if cotizaciones:
        sheets.append((
            'Cotizaciones Mensuales',
            ['Año', 'Mes', 'Nombre Mes', 'Total Cotizaciones', 'Primera Cotización', 'Última Cotización'],
            [
                [
                    m.get('Año'),
                    m.get('Mes'),
                    m.get('NombreMes'),
                    m.get('TotalCotizaciones'),
                    format_es_date(m.get('PrimeraCotizacion')),
                    format_es_date(m.get('UltimaCotizacion')),
                ]
                for m in cotizaciones
            ],
        ))

    contratos = detail.get('contratosMensuales') or []
    if contratos:
        sheets.append((
            'Contratos Mensuales',
            ['Año', 'Mes', 'Nombre Mes', 'Total Contratos'],
            [[m.get('Año'), m.get('Mes'), m.get('NombreMes'), m.get('TotalContratos')] for m in contratos],
        ))
    return sheets


def export_producer_workbook(detail: dict[str, Any]) -> ExportFile:
    producer = detail['producer']
    name = re.sub(r'\s+', '_', str(producer.get('productor') or ''))
    filename = f"Productor_{producer.get('CodigoProductor')}_{name}_Completo.xlsx"
    return ExportFile(filename=filename, content=write_workbook(producer_workbook_sheets(detail)))


def summary_rows(metrics: dict[str, Any]) -> list[list[Any]]:
    trends = metrics.get('trendsAnalysis') or {}
    forecast = metrics.get('nextMonthPrediction') or {}
    rows: list[list[Any]] = [
        ['Conversión Promedio', f"{float(metrics.get('averageConversion') or 0):.1f}%"],
        ['Contratos Totales', metrics.get('contractGrowth', 0)],
        ['Productores Mejorando', trends.get('improving', 0)],
        ['Productores Estables', trends.get('stable', 0)],
        ['Productores en Declive', trends.get('declining', 0)],
        ['Predicción Contratos Próximo Mes', forecast.get('totalContracts', 0)],
        ['', ''],
        ['Top 5 Productores', ''],
        ['Productor', 'Conversión %'],
    ]
    for p in (metrics.get('topPerformers') or [])[:5]:
        rows.append([p.get('productor'), f"{_plain_number(p.get('Porcentaje_Conversion') or 0)}%"])
    return rows


def export_dashboard_workbook(dataset: dict[str, Any], tables: list[str], include_summary: bool = True, today: date | None = None) -> ExportFile:
    sheets: list[tuple[str, list[str], list[list[Any]]]] = []
    metrics = dataset.get('performanceMetrics')
    if include_summary and metrics:
        sheets.append(('Resumen Ejecutivo', ['Métrica', 'Valor'], summary_rows(metrics)))

    for table in tables:
        rows = dataset.get(table) or []
        if not rows:
            continue
        header = list(rows[0].keys())
        sheets.append((EXPORTABLE_TABLES.get(table, table), header, [[r.get(h) for h in header] for r in rows]))

    if not sheets:
        sheets.append(('Sin datos', ['Mensaje'], [['no data']]))
    stamp = (today or date.today()).isoformat()
    return ExportFile(filename=f'Dashboard_Productores_{stamp}.xlsx', content=write_workbook(sheets))


def export_csv(rows: list[dict]) -> str:
    if not rows:
        rows = [{'message': 'no data'}]

    headers: list[str] = []
    for r in rows:
        for k in r.keys():
            if k not in headers:
                headers.append(k)
    out = io.StringIO()
    w = csv.DictWriter(out, fieldnames=headers)
    w.writeheader()
    for r in rows:
        w.writerow(r)
    return out.getvalue()
