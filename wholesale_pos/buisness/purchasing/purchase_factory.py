#!/usr/bin/env python3
"""
Purchase Factory
Receives supplier deliveries: the purchase, its items and one purchase
movement per item are written in a single transaction.
"""

from datetime import datetime

from wholesale_pos import db
from wholesale_pos.buisness.catalog.unit_conversion_table import UnitConversionTable
from wholesale_pos.buisness.core.errors import InvalidQuantity
from wholesale_pos.buisness.core.lookups import as_quantity, load_product
from wholesale_pos.buisness.stock.stock_ledger import REFERENCE_PURCHASE, StockLedger
from wholesale_pos.data.purchasing.purchase import Purchase, PurchaseItem
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.domain.purchasing.purchase_factory")


class PurchaseFactory:

    @classmethod
    def _prepare_items(cls, items):
        if not items:
            raise InvalidQuantity("A purchase needs at least one item")
        prepared = []
        for item in items:
            product = load_product(item.get('product_id'))
            unit_id = item.get('unit_id') or product.base_unit_id
            quantity = as_quantity(item.get('quantity'))
            unit_price = as_quantity(item.get('unit_price') or 0, 'unit_price', allow_zero=True)
            prepared.append({
                'product': product,
                'unit_id': unit_id,
                'quantity': quantity,
                'base_quantity': UnitConversionTable.to_base_quantity(product, unit_id, quantity),
                'unit_price': unit_price,
                'total_price': round(quantity * unit_price, 2),
            })
        return prepared

    @classmethod
    def create_purchase(cls, items, supplier_id=None, notes=None, purchase_date=None, user_id=None):
        """
        Record a received purchase.

        Args:
            items: list of dicts with product_id, unit_id, quantity, unit_price
                (unit_price is per `unit_id` unit)
            supplier_id: external supplier id

        Returns:
            Purchase: committed purchase
        """
        prepared = cls._prepare_items(items)

        def work():
            purchase = Purchase(
                supplier_id=supplier_id,
                total_amount=round(sum(p['total_price'] for p in prepared), 2),
                status='recu',
                purchase_date=purchase_date or datetime.utcnow(),
                notes=notes,
                created_by_id=user_id,
                updated_by_id=user_id,
            )
            db.session.add(purchase)
            db.session.flush()

            for p in prepared:
                db.session.add(PurchaseItem(
                    purchase_id=purchase.id,
                    product_id=p['product'].id,
                    unit_id=p['unit_id'],
                    quantity=p['quantity'],
                    base_quantity=p['base_quantity'],
                    unit_price=p['unit_price'],
                    total_price=p['total_price'],
                    created_by_id=user_id,
                ))
                StockLedger.stage_movement(
                    p['product'].id, 'purchase', p['base_quantity'],
                    unit_id=p['unit_id'],
                    original_quantity=p['quantity'],
                    reference_type=REFERENCE_PURCHASE,
                    reference_id=purchase.id,
                    notes=f"Achat #{purchase.id}",
                    user_id=user_id,
                )
            return purchase

        purchase = StockLedger.run_atomic(work, description="purchase reception")
        logger.info(f"Purchase {purchase.id} received: {len(prepared)} items, total {purchase.total_amount}")
        return purchase
