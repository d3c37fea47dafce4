# parts_replenishment/batch/recommendation_job.py
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

from parts_replenishment.config import config
from parts_replenishment.core.types import (
    RecommendationRequest, ReplenishmentRecommendation, BatchResult, BatchError
)
from parts_replenishment.db import session_scope
from parts_replenishment.logging_setup import logger as app_logger, get_logger, log_exception
from parts_replenishment.services.data_service import DataService
from parts_replenishment.services.narrative_service import NarrativeService, create_narrative_service
from parts_replenishment.services.recommendation_service import RecommendationService

logger = get_logger('recommendation_job')


def make_session_generator(
    narrative_service: Optional[NarrativeService] = None,
    session_factory: Callable = session_scope
) -> Callable[[RecommendationRequest], ReplenishmentRecommendation]:
    """Build a generator that handles each request in its own database session.

    Sessions are not shared between worker threads; every call opens a
    transactional scope, generates the recommendation and commits it.

    Args:
        narrative_service: Narrative service shared by all requests
        session_factory: Context manager yielding a database session

    Returns:
        Callable taking a RecommendationRequest
    """
    if narrative_service is None:
        narrative_service = create_narrative_service()

    def generate(request: RecommendationRequest) -> ReplenishmentRecommendation:
        with session_factory() as session:
            service = RecommendationService(DataService(session), narrative_service=narrative_service)
            return service.generate_recommendation(request)

    return generate


def _process_group(group: List[RecommendationRequest], generate_fn: Callable, result: BatchResult):
    with ThreadPoolExecutor(max_workers=len(group)) as executor:
        futures = [executor.submit(generate_fn, request) for request in group]

        # Results are collected in request order
        for request, future in zip(group, futures):
            try:
                result.recommendations.append(future.result())
            except Exception as e:
                log_exception(
                    'recommendation_job', e,
                    f"Failed to generate recommendation for {request.part_number}"
                )
                result.errors.append(BatchError(request.part_number, str(e)))


def run_recommendation_batch(
    requests: List[RecommendationRequest],
    generate_fn: Optional[Callable] = None,
    batch_size: Optional[int] = None,
    pause_seconds: Optional[float] = None,
    narrative_service: Optional[NarrativeService] = None,
    session_factory: Callable = session_scope,
    sleep: Callable[[float], None] = time.sleep
) -> BatchResult:
    """Generate recommendations for many parts.

    Requests are processed in groups; requests within a group run
    concurrently and groups are separated by a pause. A failing request is
    logged and reported in the errors list without affecting the others.

    Args:
        requests: Recommendation requests
        generate_fn: Callable producing one recommendation (default: one
            database session per request)
        batch_size: Requests per group
        pause_seconds: Pause between groups
        narrative_service: Narrative service for the default generator
        session_factory: Session context manager for the default generator
        sleep: Sleep function

    Returns:
        BatchResult with the successful recommendations and per-request errors
    """
    batch_config = config.batch_config
    if batch_size is None:
        batch_size = batch_config['batch_size']
    if pause_seconds is None:
        pause_seconds = batch_config['batch_pause_seconds']
    batch_size = max(1, int(batch_size))

    if generate_fn is None:
        generate_fn = make_session_generator(narrative_service, session_factory)

    log_info = app_logger.batch_start_log(
        'recommendation_batch',
        {'requests': len(requests), 'batch_size': batch_size}
    )

    result = BatchResult(total_requests=len(requests))

    try:
        for start in range(0, len(requests), batch_size):
            group = requests[start:start + batch_size]
            logger.info(f"Processing requests {start + 1}-{start + len(group)} of {len(requests)}")

            _process_group(group, generate_fn, result)

            if start + batch_size < len(requests) and pause_seconds > 0:
                sleep(pause_seconds)
    except Exception as e:
        app_logger.batch_end_log(log_info, success=False, result_info={'error': str(e)})
        raise

    app_logger.batch_end_log(log_info, success=result.failed == 0, result_info=result.summary())
    logger.info(
        f"Batch complete: {result.succeeded} succeeded, {result.failed} failed "
        f"of {result.total_requests} requests"
    )
    return result
