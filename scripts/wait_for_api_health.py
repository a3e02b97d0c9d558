#!/usr/bin/env python3
"""Espera hasta que GET /health responda ok y, con --warm, precarga el dataset.

Uso: python scripts/wait_for_api_health.py [max_wait_seconds] [--warm]
"""
import json
import os
import sys
import time
import urllib.request
from urllib.error import HTTPError, URLError

BASE = os.getenv('PRODUCTORES_API_BASE', 'http://localhost:8000/api/v1').rstrip('/')


def _get_json(url: str, timeout: float) -> dict:
    with urllib.request.urlopen(url, timeout=timeout) as res:
        return json.loads(res.read().decode('utf-8'))


def main() -> int:
    args = [a for a in sys.argv[1:] if not a.startswith('--')]
    warm = '--warm' in sys.argv[1:]
    max_wait = int(args[0]) if args else 60
    deadline = time.monotonic() + max_wait
    while time.monotonic() < deadline:
        try:
            if _get_json(f'{BASE}/health', timeout=5).get('ok'):
                break
        except (HTTPError, URLError, TimeoutError, json.JSONDecodeError):
            pass
        time.sleep(2)
    else:
        print(f'API no disponible en {BASE} tras {max_wait}s')
        return 1

    if warm:
        try:
            meta = _get_json(f'{BASE}/dataset/meta', timeout=max(30, max_wait))
        except HTTPError as exc:
            print(f'Precarga fallida: HTTP {exc.code}')
            return 2
        print(f"Dataset cargado: {meta.get('rows')} (rechazadas {meta.get('rejected')})")
    return 0


if __name__ == '__main__':
    sys.exit(main())
