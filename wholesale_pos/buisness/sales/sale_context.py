"""
Sale Context
Provides a clean interface for reading, modifying and cancelling a finalized sale.
"""

from datetime import datetime
from typing import List, Union

from flask import current_app
from sqlalchemy import select

from wholesale_pos import db
from wholesale_pos.buisness.core.errors import InvalidSaleState, SaleNotFound
from wholesale_pos.buisness.pricing.promotion_evaluator import PromotionEvaluator
from wholesale_pos.buisness.sales.sale_factory import SaleFactory
from wholesale_pos.buisness.stock.stock_ledger import (
    REFERENCE_SALE,
    REFERENCE_SALE_CANCELLATION,
    REFERENCE_SALE_MODIFICATION,
    StockLedger,
)
from wholesale_pos.data.pricing.promotion import Promotion
from wholesale_pos.data.pricing.promotion_usage import PromotionUsage
from wholesale_pos.data.sales.sale import Sale, SaleItem
from wholesale_pos.data.stock.stock_movement import StockMovement
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.domain.sales.sale_context")

DEFAULT_MODIFICATION_REASON = 'Correction de quantité'


class SaleContext:
    """
    Context for sale operations.

    Neither cancelling nor modifying a sale edits its movements: goods are
    put back and taken out again through compensating adjustments. Promotion
    uses consumed by the sale stay consumed.
    """

    def __init__(self, sale: Union[Sale, int]):
        if isinstance(sale, Sale):
            self._sale = sale
        else:
            self._sale = db.session.get(Sale, sale)
            if self._sale is None:
                raise SaleNotFound(sale)
        self._sale_id = self._sale.id

    @property
    def sale(self) -> Sale:
        return self._sale

    @property
    def sale_id(self) -> int:
        return self._sale_id

    @property
    def items(self) -> List[SaleItem]:
        return list(self._sale.items)

    @property
    def is_cancelled(self) -> bool:
        return self._sale.status == Sale.STATUS_CANCELLED

    @property
    def movements(self) -> List[StockMovement]:
        """Sale movements and their compensations, oldest first"""
        return (StockMovement.query
                .filter(StockMovement.reference_id == self._sale_id)
                .filter(StockMovement.reference_type.in_(
                    (REFERENCE_SALE, REFERENCE_SALE_MODIFICATION, REFERENCE_SALE_CANCELLATION)))
                .order_by(StockMovement.id)
                .all())

    @property
    def promotion_usages(self) -> List[PromotionUsage]:
        return PromotionUsage.query.filter_by(sale_id=self._sale_id).all()

    def _ensure_open(self, action):
        # Fresh read; the identity map may be stale
        status = db.session.execute(select(Sale.status).where(Sale.id == self._sale_id)).scalar_one()
        if status == Sale.STATUS_CANCELLED:
            raise InvalidSaleState(f"Sale {self._sale.sale_number} is cancelled and cannot be {action}",
                                   sale_id=self._sale_id)

    def _return_items(self, items, reference_type, notes, user_id):
        for item in items:
            StockLedger.stage_movement(
                item.product_id, 'adjustment', item.base_quantity,
                unit_id=item.unit_id,
                original_quantity=item.quantity,
                reference_type=reference_type,
                reference_id=self._sale_id,
                notes=notes,
                user_id=user_id,
            )

    def cancel(self, reason: str = None, user_id: int = None) -> Sale:
        """
        Cancel the sale and restore its stock.

        Raises:
            InvalidSaleState: the sale is already cancelled
        """
        sale = self._sale
        items = self.items

        def work():
            self._ensure_open("cancelled")
            self._return_items(
                items, REFERENCE_SALE_CANCELLATION,
                f"Annulation vente {sale.sale_number}" + (f": {reason}" if reason else ""),
                user_id,
            )
            sale.status = Sale.STATUS_CANCELLED
            sale.cancel_reason = reason
            sale.cancelled_at = datetime.utcnow()
            sale.updated_by_id = user_id
            return sale

        StockLedger.run_atomic(work, description=f"cancellation of sale {self._sale_id}")
        logger.info(f"Sale {sale.sale_number} cancelled ({len(items)} items returned to stock)")
        return sale

    def modify(self, lines, reason: str = None, enforce_floor: bool = None, user_id: int = None) -> Sale:
        """
        Replace the lines of the sale.

        The old lines go back to stock and the new ones leave it, all as
        adjustments referenced 'modification_vente', in one transaction.
        Totals are recomputed. The sale keeps the promotion it was granted,
        re-priced on the new lines; no further use of it is consumed.

        Args:
            lines: same shape as for SaleFactory.create_sale
            reason: recorded on the sale and in the movement notes

        Raises:
            InvalidSaleState: the sale is cancelled
            InvalidQuantity, MissingConversion, InsufficientStock
        """
        reason = reason or DEFAULT_MODIFICATION_REASON
        if enforce_floor is None:
            enforce_floor = current_app.config.get('ENFORCE_STOCK_FLOOR', True)
        quotes = SaleFactory.quote_sale(lines)
        sale = self._sale
        old_items = self.items

        def work():
            self._ensure_open("modified")
            self._return_items(old_items, REFERENCE_SALE_MODIFICATION, f"Restauration stock - {reason}", user_id)
            if enforce_floor:
                SaleFactory.check_floor(quotes)

            for item in old_items:
                sale.items.remove(item)
            db.session.flush()

            for quote in quotes:
                sale.items.append(SaleFactory.sale_item(quote, user_id))
                StockLedger.stage_movement(
                    quote.product.id, 'adjustment', -quote.base_quantity,
                    unit_id=quote.unit_id,
                    original_quantity=quote.quantity,
                    reference_type=REFERENCE_SALE_MODIFICATION,
                    reference_id=self._sale_id,
                    notes=f"Nouvelle quantité - {reason}",
                    user_id=user_id,
                )

            promotion_discount = 0.0
            if sale.promotion_id is not None:
                promotion = db.session.get(Promotion, sale.promotion_id)
                promotion_discount = PromotionEvaluator.discount_on_lines(
                    promotion, SaleFactory.promotion_lines(quotes))
                for usage in PromotionUsage.query.filter_by(sale_id=self._sale_id).all():
                    usage.discount_applied = promotion_discount

            sale.total_amount = round(sum(q.total_price for q in quotes), 2)
            sale.promotion_discount = promotion_discount
            sale.final_amount = SaleFactory.final_amount(
                sale.total_amount, sale.discount_amount, promotion_discount, sale.tax_amount)
            sale.modified_at = datetime.utcnow()
            sale.modification_reason = reason
            sale.updated_by_id = user_id
            return sale

        StockLedger.run_atomic(work, description=f"modification of sale {self._sale_id}")
        logger.info(
            f"Sale {sale.sale_number} modified ({reason}): {len(old_items)} -> {len(quotes)} lines, "
            f"final {sale.final_amount}"
        )
        return sale

    def to_dict(self) -> dict:
        data = self._sale.to_dict()
        data['items'] = [item.to_dict(include_audit_fields=False) for item in self.items]
        return data
