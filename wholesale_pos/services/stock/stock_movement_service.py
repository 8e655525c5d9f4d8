"""
Stock Movement Service
Presentation service for stock movement history queries.
"""

from typing import Any, Dict, List, Optional, Tuple
from datetime import date, datetime, time

from flask_sqlalchemy.pagination import Pagination

from wholesale_pos.buisness.stock.stock_ledger import (
    OUTFLOW_REASONS,
    REFERENCE_INVENTORY,
    REFERENCE_PURCHASE,
    REFERENCE_SALE,
    REFERENCE_SALE_CANCELLATION,
    REFERENCE_SALE_MODIFICATION,
)
from wholesale_pos.data.stock.stock_movement import StockMovement

MAX_HISTORY = 1000


def _day_start(value):
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _day_end(value):
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.max)


class StockMovementService:
    """
    Service for stock movement presentation data.

    Provides methods for:
    - Building filtered movement queries
    - Paginated listing with filter options
    - Capped movement history
    """

    @staticmethod
    def build_query(
        product_id: Optional[int] = None,
        movement_type: Optional[str] = None,
        reference_type: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ):
        """
        Filtered query, most recent first. Dates are inclusive whole days;
        datetimes are used as given.
        """
        query = StockMovement.query

        if product_id:
            query = query.filter_by(product_id=product_id)

        if movement_type:
            query = query.filter_by(movement_type=movement_type)

        if reference_type:
            query = query.filter_by(reference_type=reference_type)

        if date_from:
            query = query.filter(StockMovement.created_at >= _day_start(date_from))

        if date_to:
            query = query.filter(StockMovement.created_at <= _day_end(date_to))

        return query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())

    @staticmethod
    def get_list_data(
        page: int = 1,
        per_page: int = 50,
        product_id: Optional[int] = None,
        movement_type: Optional[str] = None,
        reference_type: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Tuple[Pagination, Dict[str, Any]]:
        """
        Get paginated stock movements with filters.

        Returns:
            Tuple of (pagination_object, filter_options_dict)
        """
        query = StockMovementService.build_query(product_id, movement_type, reference_type, date_from, date_to)
        pagination = query.paginate(page=page, per_page=per_page, max_per_page=MAX_HISTORY, error_out=False)

        filter_options = {
            'movement_types': list(StockMovement.MOVEMENT_TYPES),
            'reference_types': [REFERENCE_PURCHASE, REFERENCE_SALE, REFERENCE_INVENTORY,
                                REFERENCE_SALE_MODIFICATION, REFERENCE_SALE_CANCELLATION, *OUTFLOW_REASONS],
        }

        return pagination, filter_options

    @staticmethod
    def get_movement_history(
        product_id: Optional[int] = None,
        limit: Optional[int] = MAX_HISTORY,
        **filters,
    ) -> List[StockMovement]:
        """
        Get movement history (read-only), capped at `limit` rows.
        """
        query = StockMovementService.build_query(product_id, **filters)
        if limit:
            query = query.limit(min(limit, MAX_HISTORY))
        return query.all()
