# parts_replenishment/services/data_service.py
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parts_replenishment.core.types import SupplierMetrics, ReplenishmentRecommendation
from parts_replenishment.exceptions import DataStoreError
from parts_replenishment.logging_setup import get_logger
from parts_replenishment.models import (
    SparePart, TransactionRecord, TransactionType, SupplierProfile,
    ReplenishmentRecommendationRecord, RecommendationStatus
)
from parts_replenishment.utils.date_utils import months_ago

logger = get_logger(__name__)


class DataService:
    """Service for reading part, transaction and supplier data and saving recommendations."""

    def __init__(self, session: Session):
        """Initialize the data service.

        Args:
            session: Database session
        """
        self.session = session

    def get_spare_part(self, part_number: str) -> Optional[SparePart]:
        """Get a spare part by part number.

        Args:
            part_number: Part number

        Returns:
            SparePart object or None if not found
        """
        try:
            return self.session.query(SparePart).filter(
                SparePart.part_number == part_number
            ).first()
        except SQLAlchemyError as e:
            raise DataStoreError(f"Error fetching part {part_number}: {str(e)}")

    def get_active_part_numbers(self) -> List[str]:
        """Get the part numbers of all active parts."""
        try:
            rows = self.session.query(SparePart.part_number).filter(
                SparePart.is_active == True
            ).order_by(SparePart.part_number).all()
            return [row[0] for row in rows]
        except SQLAlchemyError as e:
            raise DataStoreError(f"Error fetching active parts: {str(e)}")

    def get_historical_demand(
        self,
        part_number: str,
        months: int = 24,
        as_of: Optional[date] = None
    ) -> List[TransactionRecord]:
        """Get a part's transactions within the lookback window.

        Args:
            part_number: Part number
            months: Lookback window in months
            as_of: End of the window (default today)

        Returns:
            List of transaction records ordered by date ascending
        """
        start_date = months_ago(months, as_of)

        try:
            query = self.session.query(TransactionRecord).filter(
                and_(
                    TransactionRecord.part_number == part_number,
                    TransactionRecord.transaction_date >= start_date
                )
            )
            if as_of is not None:
                query = query.filter(TransactionRecord.transaction_date <= as_of)

            return query.order_by(TransactionRecord.transaction_date, TransactionRecord.id).all()
        except SQLAlchemyError as e:
            raise DataStoreError(f"Error fetching demand history for {part_number}: {str(e)}")

    def get_purchase_history(
        self,
        supplier_id: str,
        part_number: Optional[str] = None,
        months: int = 24
    ) -> List[TransactionRecord]:
        """Get a supplier's purchase transactions.

        Args:
            supplier_id: Supplier ID
            part_number: Optional part number filter
            months: Lookback window in months

        Returns:
            List of purchase records ordered by date ascending
        """
        start_date = months_ago(months)

        try:
            query = self.session.query(TransactionRecord).filter(
                and_(
                    TransactionRecord.supplier_id == supplier_id,
                    TransactionRecord.transaction_type == TransactionType.PURCHASE,
                    TransactionRecord.transaction_date >= start_date
                )
            )
            if part_number:
                query = query.filter(TransactionRecord.part_number == part_number)

            return query.order_by(TransactionRecord.transaction_date, TransactionRecord.id).all()
        except SQLAlchemyError as e:
            raise DataStoreError(f"Error fetching purchase history for supplier {supplier_id}: {str(e)}")

    def get_suppliers_for_part(self, part_number: str) -> List[str]:
        """Get the IDs of suppliers that have sold the part to us, in first-seen order."""
        try:
            rows = self.session.query(TransactionRecord.supplier_id).filter(
                and_(
                    TransactionRecord.part_number == part_number,
                    TransactionRecord.transaction_type == TransactionType.PURCHASE,
                    TransactionRecord.supplier_id.isnot(None)
                )
            ).order_by(TransactionRecord.transaction_date, TransactionRecord.id).all()
        except SQLAlchemyError as e:
            raise DataStoreError(f"Error fetching suppliers for {part_number}: {str(e)}")

        supplier_ids = []
        for (supplier_id,) in rows:
            if supplier_id and supplier_id not in supplier_ids:
                supplier_ids.append(supplier_id)
        return supplier_ids

    def get_supplier_profile(self, supplier_id: str) -> Optional[SupplierProfile]:
        try:
            return self.session.query(SupplierProfile).filter(
                SupplierProfile.supplier_id == supplier_id
            ).first()
        except SQLAlchemyError as e:
            raise DataStoreError(f"Error fetching profile for supplier {supplier_id}: {str(e)}")

    def get_supplier_metrics(self, supplier_id: str) -> Optional[SupplierMetrics]:
        """Get the nominal lead time metrics maintained in the supplier profile.

        Args:
            supplier_id: Supplier ID

        Returns:
            SupplierMetrics or None if the supplier has no profile
        """
        profile = self.get_supplier_profile(supplier_id)
        if profile is None:
            return None

        return SupplierMetrics(
            supplier_id=profile.supplier_id,
            supplier_name=profile.name or '',
            average_lead_time=float(profile.average_lead_time or 0.0),
            on_time_delivery_rate=float(profile.on_time_delivery_rate or 0.0),
            total_orders=int(profile.total_orders or 0)
        )

    def save_recommendation(self, recommendation: ReplenishmentRecommendation) -> ReplenishmentRecommendationRecord:
        """Persist a recommendation with status pending.

        Args:
            recommendation: Recommendation to save

        Returns:
            The saved record
        """
        record = ReplenishmentRecommendationRecord(
            recommendation_id=recommendation.recommendation_id,
            part_number=recommendation.part_number,
            recommended_quantity=recommendation.recommended_quantity,
            suggested_order_date=recommendation.suggested_order_date,
            preferred_supplier=recommendation.preferred_supplier,
            estimated_cost=recommendation.estimated_cost,
            urgency_level=recommendation.urgency_level,
            reasoning=recommendation.reasoning,
            confidence=recommendation.confidence,
            status=RecommendationStatus.PENDING,
            created_at=recommendation.created_at or datetime.now()
        )

        try:
            self.session.add(record)
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DataStoreError(
                f"Error saving recommendation {recommendation.recommendation_id}: {str(e)}"
            )

        logger.info(
            f"Saved recommendation {recommendation.recommendation_id} for part {recommendation.part_number}"
        )
        return record

    def get_recommendations(self, part_number: str) -> List[ReplenishmentRecommendationRecord]:
        """Get the saved recommendations of a part, newest first."""
        try:
            return self.session.query(ReplenishmentRecommendationRecord).filter(
                ReplenishmentRecommendationRecord.part_number == part_number
            ).order_by(ReplenishmentRecommendationRecord.created_at.desc()).all()
        except SQLAlchemyError as e:
            raise DataStoreError(f"Error fetching recommendations for {part_number}: {str(e)}")
