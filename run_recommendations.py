#!/usr/bin/env python
# run_recommendations.py - Script to generate replenishment recommendations

import sys
import logging
import argparse

from parts_replenishment.batch.recommendation_job import run_recommendation_batch
from parts_replenishment.core.types import RecommendationRequest
from parts_replenishment.db import db, session_scope
from parts_replenishment.logging_setup import logger as app_logger, get_logger
from parts_replenishment.services.data_service import DataService


def build_requests(args):
    """Build the recommendation requests from the command line arguments."""
    if args.all_active:
        with session_scope() as session:
            part_numbers = DataService(session).get_active_part_numbers()
    else:
        part_numbers = args.parts or []

    stocks = args.stock or []
    if len(stocks) > 1 and len(stocks) != len(part_numbers):
        raise ValueError('Give one --stock value, or one per part')

    requests = []
    for index, part_number in enumerate(part_numbers):
        if len(stocks) > 1:
            current_stock = stocks[index]
        else:
            current_stock = stocks[0] if stocks else 0.0

        requests.append(RecommendationRequest(
            part_number=part_number,
            current_stock=current_stock,
            max_budget=args.budget
        ))
    return requests


def main():
    """Generate recommendations for the requested parts."""
    parser = argparse.ArgumentParser(description='Generate spare-part replenishment recommendations')
    parser.add_argument('--parts', '-p', nargs='+', help='Part numbers to process')
    parser.add_argument('--stock', '-s', nargs='+', type=float,
                        help='Current stock, one value for all parts or one per part')
    parser.add_argument('--all-active', action='store_true', help='Process every active part')
    parser.add_argument('--budget', '-b', type=float, help='Maximum spend per recommendation')
    parser.add_argument('--db-url', help='Database URL (overrides configuration)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')

    args = parser.parse_args()

    if args.verbose:
        app_logger.set_level(logging.DEBUG)

    logger = get_logger('recommendation_runner')

    if not args.parts and not args.all_active:
        parser.error('Give --parts or --all-active')

    try:
        db.initialize(args.db_url)
        requests = build_requests(args)

        logger.info(f"Generating recommendations for {len(requests)} parts")
        result = run_recommendation_batch(requests)

        for recommendation in result.recommendations:
            print(
                f"{recommendation.part_number}: order {recommendation.recommended_quantity:g} units "
                f"from {recommendation.preferred_supplier} by {recommendation.suggested_order_date} "
                f"(urgency {recommendation.urgency_level.value}, "
                f"cost ${recommendation.estimated_cost:.2f}, confidence {recommendation.confidence:.2f})"
            )

        for error in result.errors:
            print(f"{error.part_number}: FAILED - {error.message}")

        print(f"{result.succeeded} succeeded, {result.failed} failed of {result.total_requests} requests")
        return 0 if result.failed == 0 else 1

    except Exception as e:
        logger.exception(f"Error generating recommendations: {str(e)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
