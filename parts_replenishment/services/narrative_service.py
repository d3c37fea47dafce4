# parts_replenishment/services/narrative_service.py
"""Human-readable justification for a replenishment recommendation.

The synthesizer depends only on the NarrativeService interface. The rule-based
implementation is always available; the LLM-backed one is optional and its
failures are absorbed by the caller.
"""
import abc
import json
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from anthropic import Anthropic

from parts_replenishment.core.constants import NARRATIVE_DEFAULT_CONFIDENCE
from parts_replenishment.core.types import (
    DemandPattern, ReorderPointCalculation, SupplierRanking,
    UrgencyClassification, CostOptimization, NarrativeResult
)
from parts_replenishment.config import config
from parts_replenishment.exceptions import NarrativeServiceError
from parts_replenishment.logging_setup import get_logger
from parts_replenishment.models import UrgencyLevel, VariabilityClass
from parts_replenishment.services.session_memory import SessionContext
from parts_replenishment.utils.math_utils import clip

logger = get_logger(__name__)

JSON_OBJECT_PATTERN = re.compile(r'\{.*\}', re.DOTALL)


@dataclass
class NarrativeContext:
    """Everything computed for one recommendation, handed to the narrative service."""
    part: Any
    current_stock: float
    reorder_point: ReorderPointCalculation
    demand_pattern: DemandPattern
    supplier_ranking: SupplierRanking
    urgency: UrgencyClassification
    cost: CostOptimization
    session: Optional[SessionContext] = None


class NarrativeService(abc.ABC):
    """Produces the narrative reasoning for a recommendation."""

    @abc.abstractmethod
    def explain(self, context: NarrativeContext) -> NarrativeResult:
        """Explain a recommendation.

        Args:
            context: Computed recommendation inputs

        Returns:
            NarrativeResult
        """


class RuleBasedNarrativeService(NarrativeService):
    """Deterministic templated reasoning built from the computed factors."""

    def explain(self, context: NarrativeContext) -> NarrativeResult:
        pattern = context.demand_pattern
        rop = context.reorder_point
        top = context.supplier_ranking.top

        position = 'below' if context.current_stock < rop.reorder_point else 'at or above'
        reasoning = [
            f"Current stock ({context.current_stock:g}) is {position} reorder point ({rop.reorder_point:g})",
            (f"Demand pattern shows {pattern.trend.direction.value} trend with "
             f"{pattern.variability.classification.value} variability"),
            (f"Recommended supplier has {top.overall_score:.0f} performance score" if top
             else 'Recommended supplier has unknown performance score')
        ]

        risk_assessment = []
        if context.urgency.level in (UrgencyLevel.CRITICAL, UrgencyLevel.HIGH):
            risk_assessment.append('High risk of stockout if order is delayed')
        if pattern.variability.classification == VariabilityClass.HIGH:
            risk_assessment.append('High demand variability increases forecast uncertainty')
        if pattern.is_empty:
            risk_assessment.append('No demand history - quantities are based on configured minimums')

        alternatives = []
        if len(context.cost.alternatives) > 1:
            alternatives.append(f"{len(context.cost.alternatives) - 1} alternative suppliers available")

        key_insights = [f"Forecastability score: {pattern.forecastability.score * 100:.1f}%"]
        if pattern.seasonality.detected:
            key_insights.append('Seasonal demand patterns detected - plan accordingly')

        return NarrativeResult(
            recommendation='Proceed with replenishment order',
            confidence=NARRATIVE_DEFAULT_CONFIDENCE,
            reasoning=reasoning,
            risk_assessment=risk_assessment,
            alternatives=alternatives,
            key_insights=key_insights,
            source='rules'
        )


def build_narrative_prompt(context: NarrativeContext) -> str:
    """Build the structured prompt sent to the completion service."""
    part = context.part
    pattern = context.demand_pattern
    rop = context.reorder_point
    ranking = context.supplier_ranking
    top = ranking.top
    urgency = context.urgency
    cost = context.cost

    supplier_score = f"{top.overall_score:.0f}" if top else 'N/A'
    lead_time = f"{top.delivery_performance.average_lead_time:.1f}" if top else 'N/A'
    on_time = f"{top.delivery_performance.on_time_delivery_rate:.1f}" if top else 'N/A'

    return f"""Analyze the following inventory replenishment scenario and provide detailed reasoning:

PART INFORMATION:
- Part Number: {part.part_number}
- Description: {part.description or ''}
- Category: {part.category or ''}
- Current Stock: {context.current_stock:g}
- Reorder Point: {rop.reorder_point:g}
- Safety Stock: {rop.safety_stock:g}

DEMAND ANALYSIS:
- Average Monthly Demand: {pattern.variability.mean_demand:.2f}
- Demand Variability: {pattern.variability.classification.value}
- Trend: {pattern.trend.direction.value}
- Seasonality: {'Yes' if pattern.seasonality.detected else 'No'}
- Forecastability Score: {pattern.forecastability.score * 100:.1f}%

SUPPLIER INFORMATION:
- Recommended Supplier: {ranking.recommended_supplier.supplier_id}
- Supplier Score: {supplier_score}
- Average Lead Time: {lead_time} days
- On-Time Delivery: {on_time}%

URGENCY ASSESSMENT:
- Urgency Level: {urgency.level.value}
- Urgency Score: {urgency.score:.1f}
- Time to Stockout: {urgency.time_to_stockout:.1f} days
- Business Impact: {urgency.business_impact.value}

COST OPTIMIZATION:
- Recommended Quantity: {cost.recommended_quantity:g}
- Unit Cost: ${cost.unit_cost:.2f}
- Total Cost: ${cost.total_cost:.2f}

Please provide:
1. A clear recommendation with confidence level
2. Detailed reasoning for the recommendation
3. Risk assessment and mitigation strategies
4. Alternative approaches if applicable
5. Key insights for inventory management

Format your response as JSON with the following structure:
{{
  "recommendation": "string",
  "confidence": number (0-1),
  "reasoning": ["string array"],
  "riskAssessment": ["string array"],
  "alternatives": ["string array"],
  "keyInsights": ["string array"]
}}
"""


def _string_list(value: Any, default: List[str]) -> List[str]:
    if not value:
        return list(default)
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return list(default)


def _confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return NARRATIVE_DEFAULT_CONFIDENCE
    if confidence == 0:
        return NARRATIVE_DEFAULT_CONFIDENCE
    return clip(confidence, 0.0, 1.0)


def parse_narrative_response(text: str) -> NarrativeResult:
    """Parse a completion into a NarrativeResult.

    The first {...} span is read as JSON, with defaults for missing fields.
    Anything unparseable becomes the sole reasoning line.

    Args:
        text: Raw completion text

    Returns:
        NarrativeResult with source 'llm'
    """
    match = JSON_OBJECT_PATTERN.search(text or '')
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.warning(f"Could not parse narrative JSON: {str(e)}")
            parsed = None

        if isinstance(parsed, dict):
            return NarrativeResult(
                recommendation=parsed.get('recommendation') or 'Proceed with replenishment order',
                confidence=_confidence(parsed.get('confidence')),
                reasoning=_string_list(parsed.get('reasoning'), ['AI analysis completed']),
                risk_assessment=_string_list(
                    parsed.get('riskAssessment', parsed.get('risk_assessment')),
                    ['Standard inventory risks apply']
                ),
                alternatives=_string_list(parsed.get('alternatives'), ['Consider alternative suppliers']),
                key_insights=_string_list(
                    parsed.get('keyInsights', parsed.get('key_insights')),
                    ['Monitor demand patterns closely']
                ),
                source='llm'
            )

    return NarrativeResult(
        recommendation='Proceed with replenishment order based on analysis',
        confidence=NARRATIVE_DEFAULT_CONFIDENCE,
        reasoning=[text or 'Analysis completed with available data'],
        risk_assessment=['Standard inventory management risks'],
        alternatives=['Review supplier alternatives'],
        key_insights=['Continue monitoring demand patterns'],
        source='llm'
    )


class LLMNarrativeService(NarrativeService):
    """Narrative reasoning from an Anthropic messages completion."""

    def __init__(self, client=None, model: str = None, max_tokens: int = None,
                 temperature: float = None, timeout: float = None):
        narrative_config = config.narrative_config

        self.model = model or narrative_config['model']
        self.max_tokens = max_tokens or narrative_config['max_tokens']
        self.temperature = narrative_config['temperature'] if temperature is None else temperature
        self.timeout = timeout or narrative_config['timeout_seconds']

        if client is None:
            api_key = os.getenv(narrative_config['api_key_env'])
            if not api_key:
                raise NarrativeServiceError(
                    f"No API key in environment variable {narrative_config['api_key_env']}",
                    code='NO_API_KEY'
                )
            client = Anthropic(api_key=api_key, timeout=self.timeout)

        self.client = client

    def explain(self, context: NarrativeContext) -> NarrativeResult:
        prompt = build_narrative_prompt(context)

        messages = []
        if context.session is not None:
            for entry in context.session.recent_messages():
                messages.append({'role': entry.role, 'content': entry.content})
        messages.append({'role': 'user', 'content': prompt})

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=messages,
                timeout=self.timeout
            )
            text = response.content[0].text
        except Exception as e:
            raise NarrativeServiceError(
                f"Narrative completion failed: {str(e)}",
                details={'part_number': context.part.part_number}
            )

        if context.session is not None:
            context.session.add_message('user', prompt)
            context.session.add_message('assistant', text)

        logger.info(f"Generated narrative reasoning for {context.part.part_number}")
        return parse_narrative_response(text)


def create_narrative_service() -> NarrativeService:
    """Build the configured narrative service.

    Falls back to the rule-based service when the LLM service is disabled or
    cannot be set up.
    """
    if not config.narrative_config['enabled']:
        return RuleBasedNarrativeService()

    try:
        return LLMNarrativeService()
    except NarrativeServiceError as e:
        logger.warning(f"LLM narrative service unavailable, using rule-based reasoning: {str(e)}")
        return RuleBasedNarrativeService()
