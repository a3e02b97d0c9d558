"""
Repair of swapped cotizaciones/contratos values in the efficiency extracts.

Some upstream rows carry the quotes count in the contracts column and vice versa.
Rules are evaluated in order and the first match swaps both counts, unless the
swapped counts would match a rule again; conversion is then recomputed. Every row
ends with conversion in [0, 100] and 0 when there are no quotes, so a second pass
finds nothing to correct. Input rows are never mutated.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from app.core.logging_config import structured_log
from app.core.rounding import round_half_up

SwapPredicate = Callable[[float, float, float], bool]

MAX_CONTRACT_QUOTE_RATIO = 1.5


@dataclass(frozen=True)
class SwapRule:
    name: str
    predicate: SwapPredicate  # (quotes, contracts, conversion) -> bool


def _zero_quotes_with_contracts(quotes: float, contracts: float, conversion: float) -> bool:
    return quotes == 0 and contracts > 0


def _conversion_over_100(quotes: float, contracts: float, conversion: float) -> bool:
    return conversion > 100


def _contracts_far_above_quotes(quotes: float, contracts: float, conversion: float) -> bool:
    return contracts > quotes and quotes > 0 and contracts / quotes > MAX_CONTRACT_QUOTE_RATIO


DEFAULT_SWAP_RULES: tuple[SwapRule, ...] = (
    SwapRule('zero_quotes_with_contracts', _zero_quotes_with_contracts),
    SwapRule('conversion_over_100', _conversion_over_100),
    SwapRule('contracts_far_above_quotes', _contracts_far_above_quotes),
)


@dataclass
class CorrectionReport:
    rows: list[dict[str, Any]]
    corrected: int = 0
    by_rule: dict[str, int] = field(default_factory=dict)


def conversion_pct(quotes: float, contracts: float) -> float:
    if quotes <= 0:
        return 0.0
    return round_half_up(contracts / quotes * 100, 1)


def clamp_conversion(quotes: float, conversion: float) -> float:
    if quotes <= 0:
        return 0.0
    return min(100.0, max(0.0, float(conversion)))


def match_rule(quotes: float, contracts: float, conversion: float, rules=DEFAULT_SWAP_RULES) -> SwapRule | None:
    for rule in rules:
        if rule.predicate(quotes, contracts, conversion):
            return rule
    return None


def correct_rows(
    rows: list[dict[str, Any]] | None,
    *,
    quotes_key: str,
    contracts_key: str,
    conversion_key: str,
    code_key: str,
    table: str,
    rules: tuple[SwapRule, ...] = DEFAULT_SWAP_RULES,
) -> CorrectionReport:
    if not rows or not isinstance(rows, list):
        return CorrectionReport(rows=[])

    out: list[dict[str, Any]] = []
    by_rule: dict[str, int] = {}
    for row in rows:
        item = dict(row)
        quotes = item.get(quotes_key) or 0
        contracts = item.get(contracts_key) or 0
        conversion = item.get(conversion_key) or 0

        rule = match_rule(quotes, contracts, conversion, rules)
        if rule is not None:
            # a swap that would itself match a rule is rejected; counts stay, conversion is recomputed
            swapped = match_rule(contracts, quotes, conversion_pct(contracts, quotes), rules) is None
            if swapped:
                quotes, contracts = contracts, quotes
            item[quotes_key], item[contracts_key] = quotes, contracts
            conversion = conversion_pct(quotes, contracts)
            by_rule[rule.name] = by_rule.get(rule.name, 0) + 1
            structured_log(
                'warning',
                'row_corrected',
                table=table,
                rule=rule.name,
                swapped=swapped,
                producer=item.get(code_key),
                quotes=quotes,
                contracts=contracts,
            )

        item[conversion_key] = clamp_conversion(quotes, conversion)
        out.append(item)

    return CorrectionReport(rows=out, corrected=sum(by_rule.values()), by_rule=by_rule)


def correct_eficiencia_total(rows, rules: tuple[SwapRule, ...] = DEFAULT_SWAP_RULES) -> CorrectionReport:
    return correct_rows(
        rows,
        quotes_key='Cotizaciones',
        contracts_key='Contratos',
        conversion_key='Porcentaje_Conversion',
        code_key='CodigoProductor',
        table='eficienciaTotal',
        rules=rules,
    )


def correct_eficiencia_mensual(rows, rules: tuple[SwapRule, ...] = DEFAULT_SWAP_RULES) -> CorrectionReport:
    return correct_rows(
        rows,
        quotes_key='TotalCotizaciones',
        contracts_key='TotalContratos',
        conversion_key='Eficiencia',
        code_key='codigoProductor',
        table='eficienciaMensual',
        rules=rules,
    )
