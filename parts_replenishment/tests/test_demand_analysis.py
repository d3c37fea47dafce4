"""
Unit tests for demand pattern analysis.
"""
import unittest
from datetime import date
from unittest.mock import MagicMock

from parts_replenishment.core.demand_analysis import (
    NO_HISTORY_CHALLENGE,
    aggregate_monthly_demand,
    analyze_trend,
    analyze_variability,
    analyze_demand_pattern,
    generate_demand_forecast,
    DemandAnalyzer
)
from parts_replenishment.exceptions import DataStoreError
from parts_replenishment.models import (
    TrendDirection, VariabilityClass, AnomalyType, PatternKind, TransactionType
)
from parts_replenishment.tests.factories import make_sales, make_purchases


class TestDemandAnalysis(unittest.TestCase):
    """Test cases for demand pattern analysis."""

    def test_increasing_demand(self):
        """Three rising months give an increasing trend."""
        pattern = analyze_demand_pattern('P-100', make_sales([10, 15, 20]))

        self.assertEqual(pattern.kind, PatternKind.POPULATED)
        self.assertEqual(pattern.trend.direction, TrendDirection.INCREASING)
        self.assertAlmostEqual(pattern.variability.mean_demand, 15.0)
        self.assertAlmostEqual(pattern.trend.confidence, 1.0)
        self.assertEqual(list(pattern.monthly_demand.keys()), ['2024-01', '2024-02', '2024-03'])

    def test_flat_demand_is_stable(self):
        pattern = analyze_demand_pattern('P-100', make_sales([12, 12, 12, 12]))

        self.assertEqual(pattern.trend.direction, TrendDirection.STABLE)
        self.assertEqual(pattern.variability.classification, VariabilityClass.LOW)
        self.assertEqual(pattern.anomalies, [])

    def test_empty_history(self):
        """No history gives the explicit empty pattern."""
        pattern = analyze_demand_pattern('P-100', [])

        self.assertTrue(pattern.is_empty)
        self.assertEqual(pattern.forecastability.score, 0.0)
        self.assertEqual(pattern.forecastability.challenges, [NO_HISTORY_CHALLENGE])
        self.assertEqual(pattern.variability.mean_demand, 0.0)

    def test_purchases_are_not_demand(self):
        pattern = analyze_demand_pattern('P-100', make_purchases(4))

        self.assertEqual(pattern.kind, PatternKind.EMPTY)

    def test_aggregate_monthly_demand(self):
        records = make_sales([5, 7]) + make_sales([3], start=date(2024, 1, 20))
        monthly = aggregate_monthly_demand(records)

        self.assertEqual(monthly, {'2024-01': 8.0, '2024-02': 7.0})

    def test_aggregate_accepts_string_types(self):
        records = make_sales([4])
        records[0].transaction_type = 'sale'

        self.assertEqual(aggregate_monthly_demand(records), {'2024-01': 4.0})

    def test_short_series_trend(self):
        trend = analyze_trend([5, 8], ['2024-01', '2024-02'])

        self.assertEqual(trend.direction, TrendDirection.STABLE)
        self.assertEqual(trend.strength, 0.0)

    def test_high_variability(self):
        variability = analyze_variability([1, 20, 2, 25, 1, 30])

        self.assertEqual(variability.classification, VariabilityClass.HIGH)
        self.assertGreater(variability.coefficient, 0.7)

    def test_seasonal_spike(self):
        """A December spike over a flat year is seasonal and anomalous."""
        quantities = [10] * 11 + [30]
        pattern = analyze_demand_pattern('P-100', make_sales(quantities, start=date(2023, 1, 10)))

        self.assertTrue(pattern.seasonality.detected)
        self.assertEqual(pattern.seasonality.peak_periods[0], '12')
        self.assertGreater(pattern.seasonality.indices['12'], 2.0)

        self.assertEqual(len(pattern.anomalies), 1)
        self.assertEqual(pattern.anomalies[0].type, AnomalyType.SPIKE)
        self.assertEqual(pattern.anomalies[0].date, date(2023, 12, 1))
        self.assertEqual(pattern.anomalies[0].actual_value, 30.0)

    def test_forecastability_bounds(self):
        for quantities in ([10, 15, 20], [1, 50, 2, 40, 3, 60], [5] * 12):
            pattern = analyze_demand_pattern('P-100', make_sales(quantities))
            self.assertGreaterEqual(pattern.forecastability.score, 0.0)
            self.assertLessEqual(pattern.forecastability.score, 1.0)

    def test_forecast(self):
        pattern = analyze_demand_pattern('P-100', make_sales([10, 15, 20]))
        forecasts = generate_demand_forecast(pattern, months=3, start=date(2024, 3, 31))

        self.assertEqual(len(forecasts), 3)
        self.assertEqual(forecasts[0].forecast_date, date(2024, 4, 30))
        for forecast in forecasts:
            self.assertLessEqual(forecast.lower_bound, forecast.predicted_demand)
            self.assertLessEqual(forecast.predicted_demand, forecast.upper_bound)
        self.assertLessEqual(forecasts[0].predicted_demand, forecasts[2].predicted_demand)


class TestDemandAnalyzer(unittest.TestCase):
    """Test cases for the data-source bound analyzer."""

    def setUp(self):
        self.data_source = MagicMock()

    def test_analyze_uses_data_source(self):
        self.data_source.get_historical_demand.return_value = make_sales([10, 15, 20])
        analyzer = DemandAnalyzer(self.data_source, lookback_months=12)

        pattern = analyzer.analyze('P-100')

        self.data_source.get_historical_demand.assert_called_once_with('P-100', 12)
        self.assertEqual(pattern.trend.direction, TrendDirection.INCREASING)

    def test_data_store_failure_degrades(self):
        self.data_source.get_historical_demand.side_effect = DataStoreError('connection lost')
        analyzer = DemandAnalyzer(self.data_source)

        pattern = analyzer.analyze('P-100')

        self.assertTrue(pattern.is_empty)

    def test_prefetched_records(self):
        analyzer = DemandAnalyzer(self.data_source)
        records = make_sales([8, 8, 8])
        records[1].transaction_type = TransactionType.PURCHASE

        pattern = analyzer.analyze('P-100', records=records)

        self.data_source.get_historical_demand.assert_not_called()
        self.assertEqual(len(pattern.monthly_demand), 2)


if __name__ == '__main__':
    unittest.main()
