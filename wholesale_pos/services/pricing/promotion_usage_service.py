"""
Promotion Usage Service
Read-only queries over promotion applications.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import func

from wholesale_pos import db
from wholesale_pos.data.pricing.promotion_usage import PromotionUsage


class PromotionUsageService:

    @staticmethod
    def customer_uses_by_promotion(customer_id: Optional[int],
                                   promotion_ids: Optional[Iterable[int]] = None) -> Dict[int, int]:
        """
        Usage counts for one customer keyed by promotion id.

        Args:
            customer_id: Customer; anonymous sales have no usage history
            promotion_ids: Optional restriction of the promotions counted
        """
        if customer_id is None:
            return {}
        query = (db.session.query(PromotionUsage.promotion_id, func.count(PromotionUsage.id))
                 .filter(PromotionUsage.customer_id == customer_id))
        if promotion_ids is not None:
            query = query.filter(PromotionUsage.promotion_id.in_(list(promotion_ids)))
        return {promotion_id: count for promotion_id, count in query.group_by(PromotionUsage.promotion_id).all()}

    @staticmethod
    def usages_for_promotion(promotion_id: int, limit: Optional[int] = None) -> List[PromotionUsage]:
        """Applications of a promotion, most recent first"""
        query = PromotionUsage.query.filter_by(promotion_id=promotion_id).order_by(PromotionUsage.created_at.desc(), PromotionUsage.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()
