from __future__ import annotations

import math
from collections import defaultdict
from typing import Any

from app.core.logging_config import structured_log
from app.core.rounding import round_int
from app.models.enums import ActivityPattern, PerformanceTier, RiskLevel, TrendBucket, TrendLabel
from app.services.csv_parser import MONTH_NAMES
from app.services.forecast_service import FORECAST_CONFIDENCE, build_forecast, empty_forecast

TOP_LIMIT = 10
OPPORTUNITY_MIN_QUOTES = 50
DEFAULT_CONSISTENCY = 75.0
FIXED_GROWTH_SCORE = 75.0
VOLUME_TARGET_CONTRACTS = 50
TREND_WINDOW = 6
TREND_MIN_MONTHS = 3
VOLATILITY_LIMIT = 15
SLOPE_LIMIT = 2

# Peso de cada componente en performanceScore
CONVERSION_WEIGHT = 0.4
VOLUME_WEIGHT = 0.3
CONSISTENCY_WEIGHT = 0.2
GROWTH_WEIGHT = 0.1

_GROWTH_BY_TREND = {
    TrendLabel.IMPROVING: 8.5,
    TrendLabel.DECLINING: -3.2,
}


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _pvariance(values: list[float]) -> float:
    if not values:
        return 0.0
    avg = _mean(values)
    return sum((v - avg) ** 2 for v in values) / len(values)


def consistency_score(monthly: list[dict]) -> float:
    if not monthly:
        return DEFAULT_CONSISTENCY
    efficiencies = [float(m.get('Eficiencia') or 0) for m in monthly]
    return max(0.0, 100 - _pvariance(efficiencies) / 10)


def performance_score(producer: dict, monthly: list[dict]) -> float:
    conversion = min(float(producer.get('Porcentaje_Conversion') or 0), 100)
    volume = min(float(producer.get('Contratos') or 0) / VOLUME_TARGET_CONTRACTS * 100, 100)
    return (
        conversion * CONVERSION_WEIGHT
        + volume * VOLUME_WEIGHT
        + consistency_score(monthly) * CONSISTENCY_WEIGHT
        + FIXED_GROWTH_SCORE * GROWTH_WEIGHT
    )


def trend_slope(values: list[float]) -> float:
    """OLS slope of ``values`` against x = 1..n."""
    n = len(values)
    if n < 2:
        return 0.0
    sum_x = n * (n + 1) / 2
    sum_y = sum(values)
    sum_xy = sum((i + 1) * y for i, y in enumerate(values))
    sum_x2 = n * (n + 1) * (2 * n + 1) / 6
    return (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)


def efficiency_trend(monthly: list[dict]) -> TrendLabel:
    if len(monthly) < TREND_MIN_MONTHS:
        return TrendLabel.STABLE
    efficiencies = [float(m.get('Eficiencia') or 0) for m in monthly[-TREND_WINDOW:]]
    slope = trend_slope(efficiencies)
    volatility = math.sqrt(_pvariance(efficiencies))

    if volatility > VOLATILITY_LIMIT:
        return TrendLabel.VOLATILE
    if slope > SLOPE_LIMIT:
        return TrendLabel.IMPROVING
    if slope < -SLOPE_LIMIT:
        return TrendLabel.DECLINING
    return TrendLabel.STABLE


def risk_score(conversion: float, quotes: int, contracts: int, trend: TrendLabel, consistency: float) -> int:
    score = 0
    if conversion < 20:
        score += 3
    elif conversion < 40:
        score += 2
    elif conversion < 60:
        score += 1

    if quotes > 100 and contracts == 0:
        score += 4

    if trend == TrendLabel.DECLINING:
        score += 2
    elif trend == TrendLabel.VOLATILE:
        score += 1

    if consistency < 50:
        score += 2
    return score


def risk_level(score: int) -> RiskLevel:
    if score >= 6:
        return RiskLevel.CRITICAL
    if score >= 4:
        return RiskLevel.HIGH
    if score >= 2:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def churn_probability(contracts: int, conversion: float) -> float:
    if contracts == 0:
        return 0.7
    if conversion < 20:
        return 0.4
    return 0.1


def activity_pattern(quotes: int, contracts: int) -> ActivityPattern:
    return ActivityPattern.FRONT_LOADED if quotes > contracts * 5 else ActivityPattern.CONSISTENT


def classify_trend_bucket(quotes: int, contracts: int, threshold: float) -> TrendBucket:
    if contracts > threshold:
        return TrendBucket.IMPROVING
    if contracts == 0 and quotes > 0:
        return TrendBucket.DECLINING
    # contratos en (0, umbral] o productor sin actividad
    return TrendBucket.STABLE


def performance_tier(percentile: float) -> PerformanceTier:
    if percentile >= 90:
        return PerformanceTier.EXCELLENT
    if percentile >= 70:
        return PerformanceTier.GOOD
    if percentile >= 30:
        return PerformanceTier.AVERAGE
    if percentile >= 10:
        return PerformanceTier.BELOW_AVERAGE
    return PerformanceTier.POOR


def percentile_ranks(producers: list[dict]) -> dict[str, float]:
    """Producer code -> rank/total*100 with producers sorted ascending by contracts."""
    total = len(producers)
    ordered = sorted(producers, key=lambda p: int(p.get('Contratos') or 0))
    ranks: dict[str, float] = {}
    for idx, p in enumerate(ordered):
        code = str(p.get('CodigoProductor') or '')
        if code not in ranks:
            ranks[code] = idx / total * 100
    return ranks


def _monthly_extremes(monthly: list[dict]) -> tuple[str, str, float]:
    """(peak month name, worst month name, seasonality index) from one producer's monthly rows."""
    if not monthly:
        return '', '', 0.0
    peak = max(monthly, key=lambda m: float(m.get('Eficiencia') or 0))
    worst = min(monthly, key=lambda m: float(m.get('Eficiencia') or 0))
    hi = float(peak.get('Eficiencia') or 0)
    lo = float(worst.get('Eficiencia') or 0)
    index = (hi - lo) / hi if hi > 0 else 0.0
    return MONTH_NAMES[int(peak.get('Mes') or 1) - 1], MONTH_NAMES[int(worst.get('Mes') or 1) - 1], index


def producer_analytics(
    producer: dict,
    monthly: list[dict],
    percentile: float,
    overall_conversion: float,
    total_contracts: int,
) -> dict[str, Any]:
    quotes = int(producer.get('Cotizaciones') or 0)
    contracts = int(producer.get('Contratos') or 0)
    conversion = float(producer.get('Porcentaje_Conversion') or 0)

    score = performance_score(producer, monthly)
    trend = efficiency_trend(monthly)
    consistency = consistency_score(monthly)
    peak, worst, seasonality = _monthly_extremes(monthly)

    return {
        'CodigoProductor': producer.get('CodigoProductor'),
        'productor': producer.get('productor'),
        'performanceScore': score,
        'efficiencyTrend': trend,
        'consistencyScore': consistency,
        'velocityScore': min(score * 0.8, 100),
        'monthlyGrowthRate': _GROWTH_BY_TREND.get(trend, 2.1),
        'seasonalityIndex': seasonality,
        'peakPerformanceMonth': peak,
        'worstPerformanceMonth': worst,
        'predictedNextMonthContracts': max(0, round_int(contracts * 0.08)) if contracts > 0 else 0,
        'riskLevel': risk_level(risk_score(conversion, quotes, contracts, trend, consistency)),
        'churnProbability': churn_probability(contracts, conversion),
        'percentileRank': percentile,
        'peerGroupAverage': overall_conversion,
        'marketShareImpact': (contracts / total_contracts * 100) if total_contracts > 0 else 0.0,
        'activityPattern': activity_pattern(quotes, contracts),
        'dealSizeConsistency': consistency,
        'timeToClose': round_int(30 + 60 * (1 - consistency / 100)),
    }


def _empty_distribution() -> dict[str, dict[str, Any]]:
    return {tier.value: {'count': 0, 'producers': []} for tier in PerformanceTier}


def _seasonal_patterns(eficiencia_mensual: list[dict], forecast: dict[str, Any]) -> dict[str, Any]:
    by_month: dict[int, list[float]] = defaultdict(list)
    for m in eficiencia_mensual:
        by_month[int(m.get('Mes') or 0)].append(float(m.get('Eficiencia') or 0))
    monthly = [_mean(by_month.get(i, [])) for i in range(1, 13)]

    best, worst = max(monthly), min(monthly)
    stats = forecast.get('monthlyBreakdown') or []
    trends: list[str] = []
    if stats:
        avg_quotes = round_int(sum(s['cotizaciones'] for s in stats) / len(stats))
        trends = [
            f"Análisis basado en datos reales {stats[0]['month']} - {stats[-1]['month']}",
            f"Conversión promedio estable en {forecast['expectedEfficiency']:.2f}%",
            f'Volumen de cotizaciones consistente (~{avg_quotes:,}/mes)',
        ]
    return {
        'bestMonth': MONTH_NAMES[monthly.index(best)],
        'worstMonth': MONTH_NAMES[monthly.index(worst)],
        'seasonalityStrength': (best - worst) / best if best > 0 else 0,
        'cyclicalTrends': trends,
        'monthlyAverages': {MONTH_NAMES[i]: monthly[i] for i in range(12)},
    }


def _efficiency_insights(conversion_rate_pct: float, opportunity_count: int, critical_count: int) -> dict[str, list[str]]:
    bottlenecks = [
        f'Tasa de conversión actual: {conversion_rate_pct:.2f}% (oportunidad de mejora)',
        'Falta de seguimiento estructurado después de cotizar',
        'Proceso de cierre de ventas requiere optimización',
    ]
    if opportunity_count:
        bottlenecks.append(f'{opportunity_count} productores con más de 50 cotizaciones y sin contratos')
    opportunities = [
        'Implementar sistema CRM para seguimiento automático',
        'Capacitación en técnicas de cierre de ventas',
        'Análisis detallado de causas de no conversión',
    ]
    if critical_count:
        opportunities.append(f'Plan de acompañamiento para {critical_count} productores en riesgo crítico')
    return {
        'topEfficiencyDrivers': [
            'Seguimiento sistemático post-cotización',
            'Personalización de propuestas comerciales',
            'Respuesta rápida a consultas de clientes',
        ],
        'bottlenecks': bottlenecks,
        'optimizationOpportunities': opportunities,
    }


class AnalyticsService:
    @staticmethod
    def create_empty_metrics() -> dict[str, Any]:
        return {
            'topPerformers': [],
            'opportunityProducers': [],
            'averageConversion': 0,
            'contractGrowth': 0,
            'growthRate': 0,
            'trendsAnalysis': {bucket.value: 0 for bucket in TrendBucket},
            'producerAnalytics': [],
            'forecastAccuracy': 0,
            'nextMonthPrediction': empty_forecast(),
            'performanceDistribution': _empty_distribution(),
            'seasonalPatterns': {
                'bestMonth': '',
                'worstMonth': '',
                'seasonalityStrength': 0,
                'cyclicalTrends': [],
                'monthlyAverages': {},
            },
            'efficiencyInsights': {
                'topEfficiencyDrivers': [],
                'bottlenecks': [],
                'optimizationOpportunities': [],
            },
        }

    @staticmethod
    def top_performers(eficiencia_total: list[dict], limit: int = TOP_LIMIT) -> list[dict]:
        rows = [p for p in eficiencia_total if int(p.get('Contratos') or 0) > 0]
        rows.sort(key=lambda p: (-int(p.get('Contratos') or 0), -float(p.get('Porcentaje_Conversion') or 0)))
        return rows[:limit]

    @staticmethod
    def opportunity_producers(eficiencia_total: list[dict], limit: int = TOP_LIMIT) -> list[dict]:
        rows = [
            p for p in eficiencia_total
            if int(p.get('Cotizaciones') or 0) > OPPORTUNITY_MIN_QUOTES and int(p.get('Contratos') or 0) == 0
        ]
        rows.sort(key=lambda p: -int(p.get('Cotizaciones') or 0))
        return rows[:limit]

    @staticmethod
    def trends_analysis(eficiencia_total: list[dict]) -> dict[str, int]:
        total_contracts = sum(int(p.get('Contratos') or 0) for p in eficiencia_total)
        threshold = total_contracts / len(eficiencia_total) if eficiencia_total else 0
        counts = {bucket.value: 0 for bucket in TrendBucket}
        for p in eficiencia_total:
            bucket = classify_trend_bucket(int(p.get('Cotizaciones') or 0), int(p.get('Contratos') or 0), threshold)
            counts[bucket.value] += 1
        return counts

    @staticmethod
    def calculate_advanced_performance_metrics(
        eficiencia_total: list[dict] | None,
        eficiencia_mensual: list[dict] | None,
        cotizaciones_mensuales: list[dict] | None = None,
        contratos_mensuales: list[dict] | None = None,
    ) -> dict[str, Any]:
        if not eficiencia_total or not isinstance(eficiencia_total, list):
            structured_log('warning', 'analytics_without_eficiencia_total')
            return AnalyticsService.create_empty_metrics()
        if not isinstance(eficiencia_mensual, list):
            structured_log('warning', 'analytics_without_eficiencia_mensual')
            eficiencia_mensual = []

        forecast = build_forecast(cotizaciones_mensuales, contratos_mensuales)

        total_contracts = sum(int(p.get('Contratos') or 0) for p in eficiencia_total)
        total_quotes = sum(int(p.get('Cotizaciones') or 0) for p in eficiencia_total)
        overall_conversion = (total_contracts / total_quotes * 100) if total_quotes > 0 else 0.0

        monthly_by_code: dict[str, list[dict]] = defaultdict(list)
        # orden cronológico: la tendencia usa los últimos 6 meses
        for m in sorted(eficiencia_mensual, key=lambda r: (int(r.get('Año') or 0), int(r.get('Mes') or 0))):
            monthly_by_code[str(m.get('codigoProductor') or '')].append(m)

        ranks = percentile_ranks(eficiencia_total)
        analytics = [
            producer_analytics(
                p,
                monthly_by_code.get(str(p.get('CodigoProductor') or ''), []),
                ranks.get(str(p.get('CodigoProductor') or ''), 0.0),
                overall_conversion,
                total_contracts,
            )
            for p in eficiencia_total
        ]

        distribution = _empty_distribution()
        for a in analytics:
            tier = distribution[performance_tier(a['percentileRank']).value]
            tier['producers'].append(a)
            tier['count'] += 1

        opportunities = AnalyticsService.opportunity_producers(eficiencia_total)
        critical = sum(1 for a in analytics if a['riskLevel'] == RiskLevel.CRITICAL)

        return {
            'topPerformers': AnalyticsService.top_performers(eficiencia_total),
            'opportunityProducers': opportunities,
            'averageConversion': overall_conversion,
            'contractGrowth': total_contracts,
            'growthRate': forecast['contractsGrowthRate'],
            'trendsAnalysis': AnalyticsService.trends_analysis(eficiencia_total),
            'producerAnalytics': analytics,
            'forecastAccuracy': FORECAST_CONFIDENCE,
            'nextMonthPrediction': forecast,
            'performanceDistribution': distribution,
            'seasonalPatterns': _seasonal_patterns(eficiencia_mensual, forecast),
            'efficiencyInsights': _efficiency_insights(
                forecast['expectedEfficiency'], len(opportunities), critical
            ),
        }
