"""
Unit tests for the narrative reasoning layer.
"""
import os
import unittest
from unittest.mock import MagicMock, patch

from parts_replenishment.exceptions import NarrativeServiceError
from parts_replenishment.models import UrgencyLevel
from parts_replenishment.services.narrative_service import (
    NarrativeContext,
    RuleBasedNarrativeService,
    LLMNarrativeService,
    build_narrative_prompt,
    parse_narrative_response
)
from parts_replenishment.services.session_memory import SessionContext
from parts_replenishment.tests.factories import (
    make_part, make_pattern, make_reorder_point, empty_ranking, make_urgency, make_cost
)


def make_context(session=None, level=UrgencyLevel.HIGH):
    return NarrativeContext(
        part=make_part(),
        current_stock=2,
        reorder_point=make_reorder_point(),
        demand_pattern=make_pattern([10, 15, 20]),
        supplier_ranking=empty_ranking(),
        urgency=make_urgency(level),
        cost=make_cost(),
        session=session
    )


class TestParseNarrativeResponse(unittest.TestCase):
    """Test cases for parsing completion text."""

    def test_json_in_text(self):
        text = (
            'Here is my analysis:\n'
            '{"recommendation": "Order now", "confidence": 0.85, '
            '"reasoning": ["Stock is low"], "riskAssessment": ["Supplier delays"], '
            '"alternatives": [], "keyInsights": ["Demand rising"]}\n'
            'Let me know if you need more.'
        )
        result = parse_narrative_response(text)

        self.assertEqual(result.recommendation, 'Order now')
        self.assertEqual(result.confidence, 0.85)
        self.assertEqual(result.reasoning, ['Stock is low'])
        self.assertEqual(result.risk_assessment, ['Supplier delays'])
        self.assertEqual(result.alternatives, ['Consider alternative suppliers'])
        self.assertEqual(result.key_insights, ['Demand rising'])
        self.assertEqual(result.source, 'llm')

    def test_missing_fields_get_defaults(self):
        result = parse_narrative_response('{"recommendation": "Wait"}')

        self.assertEqual(result.recommendation, 'Wait')
        self.assertEqual(result.confidence, 0.7)
        self.assertEqual(result.reasoning, ['AI analysis completed'])

    def test_confidence_is_clipped(self):
        self.assertEqual(parse_narrative_response('{"confidence": 1.7}').confidence, 1.0)
        self.assertEqual(parse_narrative_response('{"confidence": -0.3}').confidence, 0.0)
        self.assertEqual(parse_narrative_response('{"confidence": "high"}').confidence, 0.7)

    def test_unparseable_text(self):
        result = parse_narrative_response('Order 20 units soon.')

        self.assertEqual(result.reasoning, ['Order 20 units soon.'])
        self.assertEqual(result.confidence, 0.7)
        self.assertEqual(result.source, 'llm')

    def test_broken_json(self):
        result = parse_narrative_response('{"recommendation": "Order", }')

        self.assertEqual(result.reasoning, ['{"recommendation": "Order", }'])


class TestRuleBasedNarrativeService(unittest.TestCase):

    def test_explain(self):
        result = RuleBasedNarrativeService().explain(make_context())

        self.assertEqual(result.source, 'rules')
        self.assertEqual(result.confidence, 0.7)
        self.assertEqual(len(result.reasoning), 3)
        self.assertIn('below reorder point', result.reasoning[0])
        self.assertIn('High risk of stockout if order is delayed', result.risk_assessment)

    def test_explain_without_history(self):
        context = make_context(level=UrgencyLevel.LOW)
        context.demand_pattern = make_pattern([])

        result = RuleBasedNarrativeService().explain(context)

        self.assertNotIn('High risk of stockout if order is delayed', result.risk_assessment)
        self.assertEqual(result.key_insights, ['Forecastability score: 0.0%'])


class TestLLMNarrativeService(unittest.TestCase):
    """Test cases for the completion-backed narrative service."""

    def setUp(self):
        self.client = MagicMock()
        response = MagicMock()
        response.content = [MagicMock(text='{"recommendation": "Order 20 units", "confidence": 0.8}')]
        self.client.messages.create.return_value = response

    def test_explain(self):
        service = LLMNarrativeService(client=self.client, model='test-model', timeout=5)
        result = service.explain(make_context())

        self.assertEqual(result.recommendation, 'Order 20 units')
        self.assertEqual(result.confidence, 0.8)

        kwargs = self.client.messages.create.call_args.kwargs
        self.assertEqual(kwargs['model'], 'test-model')
        self.assertEqual(kwargs['timeout'], 5)
        self.assertIn('PART INFORMATION', kwargs['messages'][-1]['content'])

    def test_session_history(self):
        session = SessionContext()
        service = LLMNarrativeService(client=self.client)

        service.explain(make_context(session))
        service.explain(make_context(session))

        self.assertEqual([entry.role for entry in session.conversation_history],
                         ['user', 'assistant', 'user', 'assistant'])
        # Second call carries the first exchange
        self.assertEqual(len(self.client.messages.create.call_args.kwargs['messages']), 3)

    def test_client_failure(self):
        self.client.messages.create.side_effect = RuntimeError('overloaded')
        service = LLMNarrativeService(client=self.client)

        with self.assertRaises(NarrativeServiceError):
            service.explain(make_context())

    def test_missing_api_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(NarrativeServiceError) as context:
                LLMNarrativeService()

        self.assertEqual(context.exception.code, 'NO_API_KEY')

    def test_prompt(self):
        prompt = build_narrative_prompt(make_context())

        self.assertIn('Part Number: P-100', prompt)
        self.assertIn('Urgency Level: high', prompt)
        self.assertIn('Supplier Score: N/A', prompt)
        self.assertIn('"keyInsights"', prompt)


if __name__ == '__main__':
    unittest.main()
