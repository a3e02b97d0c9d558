import io
import sys
import unittest
from datetime import date
from pathlib import Path

import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'backend'))

from app.models.enums import ColumnType  # noqa: E402
from app.schemas.exports import ExportColumn  # noqa: E402
from app.services.data_loader import build_dataset  # noqa: E402
from app.services.export_service import (  # noqa: E402
    RANKING_COLUMNS,
    _column_widths,
    build_table,
    export_csv,
    export_dashboard_workbook,
    export_producer_workbook,
    export_table,
    format_es_date,
    format_export_value,
    summary_rows,
)
from app.services.producer_filters import producer_detail  # noqa: E402
from fixture_loader import load_csv_texts  # noqa: E402


def _read_sheets(content: bytes) -> dict:
    return pd.read_excel(io.BytesIO(content), sheet_name=None, engine='openpyxl', keep_default_na=False)


class FormattingTests(unittest.TestCase):
    def test_percentage(self):
        self.assertEqual(format_export_value(83.456, ColumnType.PERCENTAGE), '83.5%')
        self.assertEqual(format_export_value(5, 'percentage'), '5.0%')
        self.assertEqual(format_export_value('n/d', ColumnType.PERCENTAGE), 'n/d')

    def test_dates(self):
        self.assertEqual(format_export_value('2024-03-05', ColumnType.DATE), '5/3/2024')
        self.assertEqual(format_es_date('2024-12-31T10:00:00'), '31/12/2024')
        self.assertEqual(format_export_value('', ColumnType.DATE), 'N/A')
        self.assertEqual(format_es_date(None), 'N/A')
        self.assertEqual(format_es_date('no es fecha'), 'N/A')

    def test_plain_columns_pass_through(self):
        self.assertEqual(format_export_value(12, ColumnType.NUMBER), 12)
        self.assertEqual(format_export_value('Ana', ColumnType.STRING), 'Ana')

    def test_column_widths(self):
        self.assertEqual(_column_widths(['Código', 'x'], [['P1', 'y' * 80]]), [8, 55])

    def test_build_table_uses_labels(self):
        columns = [ExportColumn(key='productor', label='Productor'), ExportColumn(key='conv', label='%', type='percentage')]
        header, data = build_table([{'productor': 'Ana', 'conv': 20}], columns)
        self.assertEqual(header, ['Productor', '%'])
        self.assertEqual(data, [['Ana', '20.0%']])


class WorkbookTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.dataset = build_dataset(load_csv_texts())

    def test_export_table(self):
        file = export_table(self.dataset['eficienciaTotal'], RANKING_COLUMNS, 'Ranking Filtrado', 'ranking')
        self.assertEqual(file.filename, 'ranking_Ranking_Filtrado.xlsx')
        sheets = _read_sheets(file.content)
        frame = sheets['Ranking Filtrado']
        self.assertEqual(list(frame.columns), [c.label for c in RANKING_COLUMNS])
        self.assertEqual(len(frame), 6)
        p004 = frame[frame['Código'] == 'P004'].iloc[0]
        self.assertEqual(p004['Última Actualización'], 'N/A')
        self.assertEqual(p004['% Conversión'], '5.0%')

    def test_producer_workbook(self):
        detail = producer_detail(self.dataset, 'P001')
        file = export_producer_workbook(detail)
        self.assertEqual(file.filename, 'Productor_P001_Ana_Gómez_Completo.xlsx')
        sheets = _read_sheets(file.content)
        self.assertEqual(
            list(sheets),
            ['Resumen General', 'Eficiencia Mensual', 'Cotizaciones Mensuales', 'Contratos Mensuales'],
        )
        resumen = sheets['Resumen General']
        self.assertIn('15/3/2024', resumen['Valor'].astype(str).tolist())

    def test_dashboard_workbook(self):
        file = export_dashboard_workbook(
            self.dataset, ['eficienciaTotal', 'contratosTotal'], include_summary=True, today=date(2024, 4, 1)
        )
        self.assertEqual(file.filename, 'Dashboard_Productores_2024-04-01.xlsx')
        sheets = _read_sheets(file.content)
        self.assertEqual(list(sheets), ['Resumen Ejecutivo', 'Eficiencia Total', 'Resumen Contratos'])

    def test_summary_lists_top_five(self):
        rows = summary_rows(self.dataset['performanceMetrics'])
        self.assertEqual(rows[0][0], 'Conversión Promedio')
        self.assertEqual(rows[1], ['Contratos Totales', 57])
        self.assertEqual(rows[9], ['Ana Gómez', '20%'])

    def test_csv_export(self):
        text = export_csv([{'a': 1}, {'a': 2, 'b': 3}])
        self.assertEqual(text.splitlines(), ['a,b', '1,', '2,3'])
        self.assertEqual(export_csv([]).splitlines(), ['message', 'no data'])


if __name__ == '__main__':
    unittest.main()
