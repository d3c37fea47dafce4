"""
Unit tests for the recommendation synthesizer.
"""
import unittest
from datetime import date, timedelta
from unittest.mock import MagicMock

from parts_replenishment.core.constants import URGENCY_THRESHOLDS
from parts_replenishment.core.supplier_evaluation import evaluate_supplier, rank_suppliers
from parts_replenishment.core.types import (
    RecommendationRequest, NarrativeResult, VariabilityAnalysis, SupplierMetrics
)
from parts_replenishment.exceptions import (
    DataStoreError, ValidationError, RecommendationError, PartNotFoundError, NoSuppliersError,
    NarrativeServiceError
)
from parts_replenishment.models import (
    UrgencyLevel, UrgencyFactorType, BusinessImpact, RecommendationStatus
)
from parts_replenishment.services.narrative_service import NarrativeService
from parts_replenishment.services.recommendation_service import (
    classify_urgency,
    optimize_cost_and_quantity,
    select_supplier,
    calculate_order_date,
    calculate_overall_confidence,
    generate_recommendation_id,
    RecommendationService
)
from parts_replenishment.services.session_memory import SessionContext
from parts_replenishment.tests.factories import (
    make_part, make_pattern, make_sales, make_purchases, make_reorder_point,
    empty_ranking, make_urgency
)


class TestUrgency(unittest.TestCase):
    """Test cases for urgency classification."""

    def setUp(self):
        self.pattern = make_pattern([10, 15, 20])
        self.rop = make_reorder_point(reorder_point=20.0, lead_time_days=14.0)
        self.ranking = empty_ranking()
        self.today = date(2024, 6, 15)

    def test_low_stock_is_urgent(self):
        """Stock at a tenth of the reorder point is at least high urgency."""
        urgency = classify_urgency(2, self.rop, self.pattern, self.ranking, 'high', today=self.today)

        self.assertIn(urgency.level, (UrgencyLevel.HIGH, UrgencyLevel.CRITICAL))
        self.assertFalse(urgency.overridden)
        self.assertEqual(urgency.factors[0].type, UrgencyFactorType.STOCK_LEVEL)
        self.assertEqual(urgency.factors[0].impact, 100)

    def test_ample_stock(self):
        urgency = classify_urgency(100, self.rop, make_pattern([12, 12, 12]), self.ranking, 'low', today=self.today)

        self.assertEqual(urgency.level, UrgencyLevel.LOW)
        self.assertEqual(urgency.business_impact, BusinessImpact.MINIMAL)

    def test_factor_weights(self):
        urgency = classify_urgency(2, self.rop, self.pattern, self.ranking, 'high', today=self.today)

        self.assertEqual(len(urgency.factors), 5)
        self.assertAlmostEqual(sum(factor.weight for factor in urgency.factors), 1.0)
        self.assertAlmostEqual(
            urgency.score,
            sum(factor.impact * factor.weight for factor in urgency.factors)
        )

    def test_override(self):
        urgency = classify_urgency(
            2, self.rop, self.pattern, self.ranking, 'high', override='low', today=self.today
        )

        self.assertEqual(urgency.level, UrgencyLevel.LOW)
        self.assertTrue(urgency.overridden)

        urgency = classify_urgency(
            500, self.rop, self.pattern, self.ranking, 'high', override=UrgencyLevel.CRITICAL, today=self.today
        )
        self.assertEqual(urgency.level, UrgencyLevel.CRITICAL)

    def test_zero_reorder_point(self):
        rop = make_reorder_point(reorder_point=0.0, safety_stock=0.0)

        empty = classify_urgency(0, rop, self.pattern, self.ranking, 'high', today=self.today)
        stocked = classify_urgency(5, rop, self.pattern, self.ranking, 'high', today=self.today)

        self.assertEqual(empty.factors[0].impact, 100)
        self.assertEqual(stocked.factors[0].impact, URGENCY_THRESHOLDS['stock_above_reorder_impact'])

    def test_time_to_stockout(self):
        urgency = classify_urgency(2, self.rop, self.pattern, self.ranking, 'critical', today=self.today)

        # 15 units a month is half a unit a day
        self.assertAlmostEqual(urgency.time_to_stockout, 4.0)
        self.assertEqual(urgency.business_impact, BusinessImpact.SEVERE)

    def test_no_demand_time_to_stockout(self):
        urgency = classify_urgency(2, self.rop, make_pattern([]), self.ranking, 'high', today=self.today)

        self.assertEqual(urgency.time_to_stockout, 999.0)

    def test_supplier_risk_factor(self):
        ranking = rank_suppliers('P-100', [evaluate_supplier('S1', [])])
        urgency = classify_urgency(2, self.rop, self.pattern, ranking, 'high', today=self.today)

        risk = [f for f in urgency.factors if f.type == UrgencyFactorType.SUPPLIER_RISK][0]
        self.assertEqual(risk.impact, 25)


class TestCostAndSupplier(unittest.TestCase):
    """Test cases for quantity optimization, supplier selection and dates."""

    def setUp(self):
        self.pattern = make_pattern([])
        self.pattern.variability = VariabilityAnalysis(mean_demand=12.0)
        self.rop = make_reorder_point(reorder_point=20.0)
        self.part = make_part(unit_cost=5.0)

    def test_eoq_raises_quantity(self):
        cost = optimize_cost_and_quantity(
            10, self.rop, self.pattern, empty_ranking(), self.part,
            ordering_cost=75.0, carrying_cost_per_unit=12.5
        )

        # EOQ of 42 is capped at twice the base quantity of 10
        self.assertEqual(cost.eoq, 42)
        self.assertEqual(cost.recommended_quantity, 20)
        self.assertEqual(cost.unit_cost, 5.0)
        self.assertEqual(cost.total_cost, 100.0)
        self.assertIn('Consider EOQ of 42 units for optimal ordering costs', cost.cost_savings_opportunities)
        self.assertIn('Consider larger quantities for potential volume discounts', cost.cost_savings_opportunities)

    def test_budget_clip(self):
        cost = optimize_cost_and_quantity(
            10, self.rop, self.pattern, empty_ranking(), self.part,
            max_budget=52.0, ordering_cost=75.0, carrying_cost_per_unit=12.5
        )

        self.assertEqual(cost.recommended_quantity, 10)
        self.assertIn('Quantity reduced due to budget constraints', cost.cost_savings_opportunities)

    def test_zero_budget_orders_nothing(self):
        cost = optimize_cost_and_quantity(
            10, self.rop, self.pattern, empty_ranking(), self.part,
            max_budget=0.0, ordering_cost=75.0, carrying_cost_per_unit=12.5
        )

        self.assertEqual(cost.recommended_quantity, 0)
        self.assertEqual(cost.total_cost, 0.0)
        self.assertIn('Quantity reduced due to budget constraints', cost.cost_savings_opportunities)

    def test_stock_above_reorder_point(self):
        pattern = make_pattern([])
        cost = optimize_cost_and_quantity(
            50, self.rop, pattern, empty_ranking(), self.part,
            ordering_cost=75.0, carrying_cost_per_unit=12.5
        )

        self.assertEqual(cost.recommended_quantity, 0)
        self.assertEqual(cost.eoq, 1)

    def test_alternatives_from_ranking(self):
        ranking = rank_suppliers('P-100', [
            evaluate_supplier('S1', make_purchases(6, supplier_id='S1', unit_price=8.0)),
            evaluate_supplier('S2', make_purchases(6, supplier_id='S2', lead_time=15, unit_price=7.0, quality=0.8))
        ])
        cost = optimize_cost_and_quantity(
            10, self.rop, self.pattern, ranking, self.part,
            ordering_cost=75.0, carrying_cost_per_unit=12.5
        )

        self.assertEqual(cost.unit_cost, ranking.top.cost_performance.average_unit_cost)
        self.assertEqual(len(cost.alternatives), 2)
        second = cost.alternatives[1]
        self.assertEqual(second.supplier, ranking.rankings[1].supplier_id)
        self.assertEqual(second.total_cost, second.quantity * second.unit_cost)

    def test_select_supplier(self):
        ranking = rank_suppliers('P-100', [
            evaluate_supplier('S1', make_purchases(6, supplier_id='S1')),
            evaluate_supplier('S2', make_purchases(6, supplier_id='S2', quality=0.7)),
            evaluate_supplier('S3', [])
        ])

        self.assertEqual(select_supplier(ranking).supplier_id, 'S1')
        self.assertEqual(select_supplier(ranking, 'S2').supplier_id, 'S2')
        self.assertEqual(select_supplier(ranking, 'S2').reasoning, 'User-specified preferred supplier')
        # Avoided or unknown preferences fall back to the recommendation
        self.assertEqual(select_supplier(ranking, 'S3').supplier_id, 'S1')
        self.assertEqual(select_supplier(ranking, 'S-UNKNOWN').supplier_id, 'S1')

    def test_select_supplier_without_suppliers(self):
        with self.assertRaises(NoSuppliersError):
            select_supplier(empty_ranking(), 'S1')

    def test_order_date(self):
        today = date(2024, 6, 15)

        self.assertEqual(calculate_order_date(make_urgency(UrgencyLevel.CRITICAL, 100.0), 14, today), today)
        self.assertEqual(
            calculate_order_date(make_urgency(UrgencyLevel.HIGH, 40.0), 14, today),
            today + timedelta(days=21)
        )
        self.assertEqual(calculate_order_date(make_urgency(UrgencyLevel.LOW, 10.0), 14, today), today)

    def test_confidence_cap(self):
        pattern = make_pattern([10, 10, 10])
        pattern.forecastability.score = 1.0
        ranking = empty_ranking()
        ranking.recommended_supplier.confidence = 0.9
        narrative = NarrativeResult(recommendation='Order', confidence=1.0)

        confidence = calculate_overall_confidence(make_reorder_point(confidence=1.0), pattern, ranking, narrative)

        self.assertEqual(confidence, 0.95)

    def test_recommendation_id(self):
        first = generate_recommendation_id()
        second = generate_recommendation_id()

        self.assertTrue(first.startswith('REC-'))
        self.assertEqual(first, first.upper())
        self.assertEqual(len(first.split('-')), 3)
        self.assertNotEqual(first, second)
        self.assertEqual(generate_recommendation_id(1.0).split('-')[1], 'RS')


class FailingNarrativeService(NarrativeService):

    def explain(self, context):
        raise NarrativeServiceError('completion timed out')


class TestRecommendationService(unittest.TestCase):
    """Test cases for generating a full recommendation."""

    def setUp(self):
        self.part = make_part('P-100', category='critical')

        today = date.today()
        self.data_service = MagicMock()
        self.data_service.get_spare_part.return_value = self.part
        self.data_service.get_historical_demand.return_value = make_sales(
            [10, 12, 11, 13, 12, 14], start=today - timedelta(days=200)
        )
        self.data_service.get_suppliers_for_part.return_value = ['S1', 'S2']
        self.data_service.get_purchase_history.side_effect = lambda supplier_id, part, months: (
            make_purchases(6, supplier_id=supplier_id, quality=0.95 if supplier_id == 'S1' else 0.7)
        )
        self.data_service.get_supplier_profile.return_value = None

    def test_generate_recommendation(self):
        service = RecommendationService(self.data_service)
        recommendation = service.generate_recommendation(RecommendationRequest('P-100', current_stock=2))

        self.assertEqual(recommendation.part_number, 'P-100')
        self.assertEqual(recommendation.status, RecommendationStatus.PENDING)
        self.assertEqual(recommendation.preferred_supplier, 'S1')
        self.assertIn(recommendation.urgency_level, (UrgencyLevel.HIGH, UrgencyLevel.CRITICAL))
        self.assertGreater(recommendation.recommended_quantity, 0)
        self.assertGreaterEqual(recommendation.suggested_order_date, date.today())
        self.assertGreater(recommendation.confidence, 0.0)
        self.assertLessEqual(recommendation.confidence, 0.95)
        self.assertTrue(recommendation.recommendation_id.startswith('REC-'))
        self.assertIn('Urgency Level:', recommendation.reasoning)
        self.data_service.save_recommendation.assert_called_once_with(recommendation)

    def test_narrative_failure_falls_back(self):
        service = RecommendationService(self.data_service, narrative_service=FailingNarrativeService())
        recommendation = service.generate_recommendation(RecommendationRequest('P-100', current_stock=2))

        self.assertLessEqual(recommendation.confidence, 0.95)
        self.assertIn('Proceed with replenishment order', recommendation.reasoning)
        self.data_service.save_recommendation.assert_called_once()

    def test_part_not_found(self):
        self.data_service.get_spare_part.return_value = None
        service = RecommendationService(self.data_service)

        with self.assertRaises(PartNotFoundError) as context:
            service.generate_recommendation(RecommendationRequest('P-404', current_stock=2))

        self.assertEqual(context.exception.code, 'PART_NOT_FOUND')
        self.assertIsInstance(context.exception, RecommendationError)
        self.data_service.save_recommendation.assert_not_called()

    def test_no_suppliers(self):
        self.data_service.get_suppliers_for_part.return_value = []
        service = RecommendationService(self.data_service)

        with self.assertRaises(NoSuppliersError):
            service.generate_recommendation(RecommendationRequest('P-100', current_stock=2))

        self.data_service.save_recommendation.assert_not_called()

    def test_invalid_requests(self):
        service = RecommendationService(self.data_service)

        with self.assertRaises(ValidationError):
            service.generate_recommendation(RecommendationRequest('', current_stock=2))
        with self.assertRaises(ValidationError) as context:
            service.generate_recommendation(RecommendationRequest('P-100', current_stock=2, max_budget=-5.0))

        self.assertEqual(context.exception.details['field'], 'max_budget')
        self.data_service.get_spare_part.assert_not_called()
        self.data_service.save_recommendation.assert_not_called()

    def test_profile_metrics_without_purchase_history(self):
        """Suppliers with no purchases fall back to their profile lead time."""
        self.data_service.get_suppliers_for_part.return_value = ['S1']
        self.data_service.get_purchase_history.side_effect = None
        self.data_service.get_purchase_history.return_value = []
        self.data_service.get_supplier_metrics.return_value = SupplierMetrics(
            supplier_id='S1', average_lead_time=21.0, on_time_delivery_rate=90.0, total_orders=12
        )
        session = SessionContext()
        service = RecommendationService(self.data_service)

        recommendation = service.generate_recommendation(RecommendationRequest('P-100', current_stock=2), session)

        self.data_service.get_supplier_metrics.assert_called_once_with('S1')
        self.assertEqual(session.recall('reorder_point').lead_time_days, 21.0)
        self.assertEqual(recommendation.preferred_supplier, 'S1')

    def test_profile_metrics_failure_uses_defaults(self):
        self.data_service.get_purchase_history.side_effect = None
        self.data_service.get_purchase_history.return_value = []
        self.data_service.get_supplier_metrics.side_effect = DataStoreError('timeout')
        service = RecommendationService(self.data_service)

        recommendation = service.generate_recommendation(RecommendationRequest('P-100', current_stock=2))

        self.assertEqual(recommendation.part_number, 'P-100')
        self.data_service.save_recommendation.assert_called_once()

    def test_request_options(self):
        service = RecommendationService(self.data_service)
        required = date.today() + timedelta(days=60)
        request = RecommendationRequest(
            'P-100',
            current_stock=30,
            urgency_override=UrgencyLevel.LOW,
            supplier_preference='S2',
            required_delivery_date=required
        )

        recommendation = service.generate_recommendation(request)

        self.assertEqual(recommendation.urgency_level, UrgencyLevel.LOW)
        self.assertEqual(recommendation.preferred_supplier, 'S2')
        self.assertLessEqual(recommendation.suggested_order_date, required)

    def test_session_context_records_steps(self):
        session = SessionContext()
        service = RecommendationService(self.data_service)

        service.generate_recommendation(RecommendationRequest('P-100', current_stock=2), session)

        for key in ('demand_pattern', 'supplier_ranking', 'reorder_point', 'urgency'):
            self.assertIsNotNone(session.recall(key))
        self.assertEqual(session.recall('reorder_point').part_number, 'P-100')


if __name__ == '__main__':
    unittest.main()
