"""
Unit tests for supplier evaluation and ranking.
"""
import unittest
from datetime import date, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

from parts_replenishment.core.supplier_evaluation import (
    NO_HISTORY_RISK,
    NO_SUPPLIERS_REASONING,
    analyze_delivery_performance,
    analyze_cost_performance,
    calculate_price_competitiveness,
    calculate_cost_score,
    evaluate_supplier,
    rank_suppliers,
    to_supplier_metrics,
    SupplierEvaluator
)
from parts_replenishment.exceptions import DataStoreError
from parts_replenishment.models import (
    SupplierRecommendation, CostTrend, PerformanceTrend, RiskSeverity, RiskType
)
from parts_replenishment.tests.factories import make_purchase, make_purchases, make_sales


class TestSupplierAnalysis(unittest.TestCase):
    """Test cases for single-supplier evaluation."""

    def test_no_history(self):
        """A supplier without purchases scores zero and is avoided."""
        analysis = evaluate_supplier('S9', [])

        self.assertEqual(analysis.overall_score, 0.0)
        self.assertEqual(analysis.recommendation, SupplierRecommendation.AVOID)
        self.assertFalse(analysis.has_history)
        self.assertEqual(len(analysis.risk_factors), 1)
        self.assertEqual(analysis.risk_factors[0].description, NO_HISTORY_RISK)
        self.assertEqual(analysis.risk_factors[0].severity, RiskSeverity.HIGH)

    def test_sales_are_not_purchase_history(self):
        analysis = evaluate_supplier('S1', make_sales([10, 10]))

        self.assertFalse(analysis.has_history)

    def test_reliable_supplier(self):
        analysis = evaluate_supplier('S1', make_purchases(6))

        self.assertTrue(analysis.has_history)
        self.assertEqual(analysis.order_count, 6)
        self.assertEqual(analysis.delivery_performance.on_time_delivery_rate, 100.0)
        self.assertEqual(analysis.delivery_performance.average_lead_time, 10.0)
        self.assertEqual(analysis.overall_score, 84.0)
        self.assertEqual(analysis.recommendation, SupplierRecommendation.PREFERRED)
        # Neutral profile gives a medium financial risk only
        self.assertEqual([risk.type for risk in analysis.risk_factors], [RiskType.FINANCIAL])

    def test_late_supplier(self):
        analysis = evaluate_supplier('S2', make_purchases(6, supplier_id='S2', delay=7, quality=0.6))

        self.assertEqual(analysis.delivery_performance.on_time_delivery_rate, 0.0)
        self.assertIn(RiskSeverity.HIGH, [risk.severity for risk in analysis.risk_factors])
        self.assertEqual(analysis.recommendation, SupplierRecommendation.AVOID)

    def test_profile_inputs(self):
        profile = SimpleNamespace(
            name='Acme Bearings',
            on_time_delivery_rate=95.0,
            payment_terms='Net 45',
            communication_score=90.0,
            responsiveness_hours=4.0,
            flexibility=80.0,
            strategic_alignment=85.0,
            contract_compliance=95.0,
            innovation_support=70.0,
            production_capacity=10000.0,
            current_utilization=95.0,
            scalability_score=80.0,
            financial_stability=90.0
        )
        analysis = evaluate_supplier('S1', make_purchases(4), profile)

        self.assertEqual(analysis.supplier_name, 'Acme Bearings')
        self.assertEqual(analysis.cost_performance.payment_terms, 'Net 45')
        self.assertEqual(analysis.relationship_factors.responsiveness, 4.0)
        self.assertIn('High capacity utilization', [risk.description for risk in analysis.risk_factors])

    def test_untracked_deliveries_use_nominal_rate(self):
        purchases = make_purchases(3)
        for purchase in purchases:
            purchase.delivered_date = None

        delivery = analyze_delivery_performance(purchases, nominal_on_time_rate=72.0)

        self.assertEqual(delivery.on_time_delivery_rate, 72.0)
        self.assertEqual(delivery.average_lead_time, 10.0)

    def test_missing_expected_date_uses_default_lead_time(self):
        purchase = make_purchase(lead_time=10)
        purchase.expected_delivery_date = None
        purchase.delivered_date = purchase.transaction_date + timedelta(days=20)

        delivery = analyze_delivery_performance([purchase], default_lead_time_days=14)

        self.assertEqual(delivery.on_time_delivery_rate, 0.0)
        self.assertEqual(delivery.average_lead_time, 20.0)

    def test_shrinking_lead_time_is_improving(self):
        purchases = [
            make_purchase(ordered=date(2024, 1, 1) + timedelta(days=30 * i), lead_time=lead_time)
            for i, lead_time in enumerate([20, 20, 20, 10, 10, 10])
        ]
        delivery = analyze_delivery_performance(purchases)

        self.assertEqual(delivery.recent_trend, PerformanceTrend.IMPROVING)

    def test_rising_prices(self):
        purchases = [
            make_purchase(ordered=date(2024, 1, 1) + timedelta(days=30 * i), unit_price=price)
            for i, price in enumerate([10, 10, 10, 12, 12, 12])
        ]
        cost = analyze_cost_performance(purchases)

        self.assertEqual(cost.cost_trend, CostTrend.INCREASING)
        self.assertAlmostEqual(cost.average_unit_cost, 11.0)

    def test_volume_discount(self):
        purchases = [
            make_purchase(ordered=date(2024, 1, 1), unit_price=10.0, quantity=20),
            make_purchase(ordered=date(2024, 2, 1), unit_price=8.0, quantity=200)
        ]
        cost = analyze_cost_performance(purchases, market_average_price=10.0)

        self.assertIn('Volume discount available', cost.discount_opportunities)
        self.assertIn('Priced below market average', cost.discount_opportunities)

    def test_price_competitiveness(self):
        self.assertEqual(calculate_price_competitiveness(8.0, 10.0), 125.0)
        self.assertEqual(calculate_price_competitiveness(10.0, None), 100.0)
        self.assertEqual(calculate_price_competitiveness(0.0, 10.0), 100.0)

    def test_cost_score_is_bounded(self):
        self.assertEqual(calculate_cost_score(100.0), 100.0)
        self.assertEqual(calculate_cost_score(550.0), 100.0)
        self.assertEqual(calculate_cost_score(55.0), 55.0)
        self.assertEqual(calculate_cost_score(-20.0), 0.0)


class TestSupplierRanking(unittest.TestCase):
    """Test cases for ranking a supplier cohort."""

    def setUp(self):
        self.analyses = [
            evaluate_supplier('S-LATE', make_purchases(6, supplier_id='S-LATE', delay=7, quality=0.6)),
            evaluate_supplier('S-NEW', []),
            evaluate_supplier('S-GOOD', make_purchases(6, supplier_id='S-GOOD'))
        ]

    def test_rank_suppliers(self):
        ranking = rank_suppliers('P-100', self.analyses)

        self.assertEqual([a.ranking for a in ranking.rankings], [1, 2, 3])
        scores = [a.overall_score for a in ranking.rankings]
        self.assertEqual(scores, sorted(scores, reverse=True))
        for score in scores:
            self.assertGreaterEqual(score, 0.0)
            self.assertLessEqual(score, 100.0)

        self.assertEqual(ranking.top.supplier_id, 'S-GOOD')
        self.assertEqual(ranking.recommended_supplier.supplier_id, 'S-GOOD')
        self.assertEqual(ranking.recommended_supplier.confidence, 0.9)
        self.assertEqual(ranking.recommended_supplier.alternative_suppliers, ['S-LATE', 'S-NEW'])
        self.assertAlmostEqual(ranking.market_analysis.supplier_concentration, 1.0 / 3)

    def test_rank_no_suppliers(self):
        ranking = rank_suppliers('P-100', [])

        self.assertEqual(ranking.rankings, [])
        self.assertIsNone(ranking.top)
        self.assertEqual(ranking.recommended_supplier.supplier_id, '')
        self.assertEqual(ranking.recommended_supplier.reasoning, NO_SUPPLIERS_REASONING)

    def test_fallback_recommendation(self):
        ranking = rank_suppliers('P-100', self.analyses[:2])

        self.assertEqual(ranking.recommended_supplier.supplier_id, ranking.top.supplier_id)
        self.assertEqual(ranking.recommended_supplier.confidence, 0.4)

    def test_to_supplier_metrics(self):
        metrics = to_supplier_metrics(self.analyses[2])

        self.assertEqual(metrics.supplier_id, 'S-GOOD')
        self.assertEqual(metrics.average_lead_time, 10.0)
        self.assertEqual(metrics.total_orders, 6)
        self.assertTrue(metrics.is_preferred)


class TestSupplierEvaluator(unittest.TestCase):
    """Test cases for the data-source bound evaluator."""

    def setUp(self):
        self.data_source = MagicMock()
        self.data_source.get_suppliers_for_part.return_value = ['S1', 'S2']
        self.data_source.get_purchase_history.side_effect = lambda supplier_id, part, months: (
            make_purchases(6, supplier_id=supplier_id, unit_price=10.0 if supplier_id == 'S1' else 14.0)
        )
        self.data_source.get_supplier_profile.return_value = None

    def test_rank_for_part(self):
        evaluator = SupplierEvaluator(self.data_source)
        ranking = evaluator.rank_for_part('P-100')

        self.assertEqual(len(ranking.rankings), 2)
        s1 = ranking.find('S1')
        s2 = ranking.find('S2')
        # Market average is 12; S1 is cheaper than the market, S2 dearer
        self.assertAlmostEqual(s1.cost_performance.price_competitiveness, 120.0)
        self.assertAlmostEqual(s2.cost_performance.price_competitiveness, 100.0 * 12 / 14)

    def test_much_cheaper_supplier_ranks_first(self):
        """A supplier far below the market price outranks an expensive one."""
        self.data_source.get_suppliers_for_part.return_value = ['DEAR', 'CHEAP']
        self.data_source.get_purchase_history.side_effect = lambda supplier_id, part, months: (
            make_purchases(6, supplier_id=supplier_id, unit_price=100.0 if supplier_id == 'DEAR' else 10.0)
        )
        evaluator = SupplierEvaluator(self.data_source)

        ranking = evaluator.rank_for_part('P-100')

        cheap = ranking.find('CHEAP')
        dear = ranking.find('DEAR')
        self.assertEqual(ranking.top.supplier_id, 'CHEAP')
        self.assertEqual(cheap.ranking, 1)
        self.assertGreater(cheap.overall_score, dear.overall_score)
        for analysis in ranking.rankings:
            self.assertGreaterEqual(analysis.overall_score, 0.0)
            self.assertLessEqual(analysis.overall_score, 100.0)

    def test_data_store_failure_degrades(self):
        self.data_source.get_suppliers_for_part.side_effect = DataStoreError('timeout')
        evaluator = SupplierEvaluator(self.data_source)

        ranking = evaluator.rank_for_part('P-100')

        self.assertEqual(ranking.rankings, [])
        self.assertEqual(ranking.market_analysis.market_trends, ['No supplier data available'])


if __name__ == '__main__':
    unittest.main()
