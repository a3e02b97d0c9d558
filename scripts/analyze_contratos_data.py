#!/usr/bin/env python3
"""Total de contratos por productor a partir del extracto Contratos_Mensuales_Productor.

Uso: python scripts/analyze_contratos_data.py [ruta_csv]
Sin ruta se descarga la URL configurada en CSV_CONTRATOS_MENSUALES_URL.
"""
import sys
from pathlib import Path

import httpx
import pandas as pd


def _read_text(arg: str | None, settings) -> str:
    if arg:
        return Path(arg).read_text(encoding='utf-8')
    res = httpx.get(settings.csv_contratos_mensuales_url, timeout=settings.csv_fetch_timeout_seconds, follow_redirects=True)
    res.raise_for_status()
    return res.text


def main() -> int:
    repo_root = Path(__file__).resolve().parent.parent
    sys.path.insert(0, str(repo_root / 'backend'))

    from app.core.config import settings  # noqa: E402
    from app.services.csv_parser import parse_contratos_mensuales  # noqa: E402

    try:
        text = _read_text(sys.argv[1] if len(sys.argv) > 1 else None, settings)
    except (OSError, httpx.HTTPError) as exc:
        print(f'No se pudo leer el extracto: {exc}')
        return 1

    parsed = parse_contratos_mensuales(text)
    if not parsed.rows:
        print('Sin filas válidas')
        return 1

    frame = pd.DataFrame(parsed.rows)
    totals = (
        frame.groupby(['codigoProductor', 'productor'], as_index=False)['TotalContratos']
        .sum()
        .sort_values('TotalContratos', ascending=False)
    )
    print(f'Filas válidas: {len(parsed.rows)} | rechazadas: {parsed.rejected}')
    print('Contratos totales por productor:')
    for row in totals.itertuples(index=False):
        print(f'  {row.codigoProductor} {row.productor}: {row.TotalContratos}')
    print(f"Total general: {int(totals['TotalContratos'].sum())}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
