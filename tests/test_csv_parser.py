import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'backend'))

from app.services.csv_parser import (  # noqa: E402
    month_name,
    parse_contratos_mensuales,
    parse_cotizaciones_mensuales,
    parse_csv,
    sanitize_count,
    to_float,
    to_int,
    validate_eficiencia_mensual,
    validate_eficiencia_total,
)
from fixture_loader import load_csv_texts  # noqa: E402


class CoercionTests(unittest.TestCase):
    def test_leading_prefix_numbers(self):
        self.assertEqual(to_int('12abc'), 12)
        self.assertEqual(to_int(''), 0)
        self.assertEqual(to_int('abc'), 0)
        self.assertEqual(to_float('3.5%'), 3.5)
        self.assertEqual(to_float(None), 0.0)

    def test_sanitize_count_strips_currency(self):
        self.assertEqual(sanitize_count('$100'), 100)
        self.assertEqual(sanitize_count('$140.9'), 140)
        self.assertEqual(sanitize_count('1.234'), 1)
        self.assertEqual(sanitize_count('n/d'), 0)

    def test_month_name(self):
        self.assertEqual(month_name(1), 'Enero')
        self.assertEqual(month_name(12), 'Diciembre')
        self.assertEqual(month_name(13), '')


class ParseCsvTests(unittest.TestCase):
    def test_short_row_fills_missing_fields(self):
        text = 'CodigoProductor,productor,Cotizaciones,Contratos,Fecha_Actualizacion\nP1,Ana,10'
        parsed = parse_csv(text)
        self.assertEqual(parsed.rejected, 0)
        row = parsed.rows[0]
        self.assertEqual(row['Cotizaciones'], 10)
        self.assertEqual(row['Contratos'], 0)
        self.assertEqual(row['Fecha_Actualizacion'], '')

    def test_quotes_and_whitespace_are_stripped(self):
        parsed = parse_csv('productor, Cotizaciones \n" Ana " , "7"')
        self.assertEqual(parsed.rows, [{'productor': 'Ana', 'Cotizaciones': 7}])

    def test_validator_rejections_are_counted(self):
        parsed = parse_csv(load_csv_texts()['eficienciaTotal'], validate_eficiencia_total, 'eficienciaTotal')
        self.assertEqual(len(parsed.rows), 6)
        self.assertEqual(parsed.rejected, 1)
        self.assertTrue(parsed.errors[0].startswith('Row '))

    def test_blank_lines_are_not_rejections(self):
        parsed = parse_csv('a,b\n1,2\n\n3,4\n')
        self.assertEqual(len(parsed.rows), 2)
        self.assertEqual(parsed.rejected, 0)

    def test_empty_document(self):
        parsed = parse_csv('')
        self.assertEqual(parsed.rows, [])
        self.assertEqual(parsed.rejected, 0)

    def test_validate_eficiencia_mensual_ranges(self):
        base = {'codigoProductor': 'P1', 'productor': 'Ana', 'Año': 2024, 'Mes': 6}
        self.assertTrue(validate_eficiencia_mensual(base))
        self.assertFalse(validate_eficiencia_mensual({**base, 'Año': 2019}))
        self.assertFalse(validate_eficiencia_mensual({**base, 'Año': 2031}))
        self.assertFalse(validate_eficiencia_mensual({**base, 'Mes': 0}))
        self.assertFalse(validate_eficiencia_mensual({**base, 'productor': ''}))


class MonthlyParserTests(unittest.TestCase):
    def test_contratos_mensuales(self):
        parsed = parse_contratos_mensuales(load_csv_texts()['contratosMensuales'])
        self.assertEqual(parsed.rejected, 1)
        totals = [r['TotalContratos'] for r in parsed.rows]
        self.assertEqual(totals, [100, 50, 140, 480])
        self.assertEqual(parsed.rows[0]['NombreMes'], 'Enero')
        self.assertEqual(parsed.rows[3]['NombreMes'], 'Diciembre')

    def test_cotizaciones_mensuales(self):
        parsed = parse_cotizaciones_mensuales(load_csv_texts()['cotizacionesMensuales'])
        self.assertEqual(len(parsed.rows), 5)
        self.assertEqual(parsed.rejected, 1)
        self.assertEqual(parsed.rows[2]['NombreMes'], 'Febrero')
        self.assertEqual(parsed.rows[0]['TotalCotizaciones'], 6000)
        self.assertEqual(parsed.rows[0]['PrimeraCotizacion'], '2024-01-02')


if __name__ == '__main__':
    unittest.main()
