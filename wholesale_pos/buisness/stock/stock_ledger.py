"""
Stock Ledger

The only writer of `Product.stock_quantity`. Every change is a single
`stock_quantity = stock_quantity + delta` statement committed together with
the StockMovement row that explains it, so the stored quantity always equals
the signed sum of the product's movements.

Writes are serialized inside the process by a class-level lock held for the
whole transaction. A write that keeps failing on a locked database is retried
a bounded number of times and then reported as ConcurrentModification.
"""

from __future__ import annotations

import threading
import time
from collections import namedtuple

from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError

from wholesale_pos import db
from wholesale_pos.buisness.catalog.unit_conversion_table import UnitConversionTable
from wholesale_pos.buisness.core.errors import (
    ConcurrentModification,
    InsufficientStock,
    InvalidMovement,
    InvalidQuantity,
    ProductNotFound,
)
from wholesale_pos.buisness.core.lookups import as_quantity, load_product
from wholesale_pos.data.catalog.product import Product
from wholesale_pos.data.stock.stock_movement import StockMovement
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.domain.stock.ledger")

REFERENCE_PURCHASE = 'achat'
REFERENCE_SALE = 'vente'
REFERENCE_INVENTORY = 'inventaire'
REFERENCE_SALE_CANCELLATION = 'annulation_vente'
REFERENCE_SALE_MODIFICATION = 'modification_vente'

OUTFLOW_REASONS = ('consommation interne', 'casse', 'don', 'echantillon', 'vol', 'autre')
DEFAULT_OUTFLOW_REASON = 'consommation interne'

# Differences smaller than this are float noise, not stock
EPSILON = 1e-9

InventoryAdjustment = namedtuple('InventoryAdjustment', ['difference', 'old_quantity', 'new_quantity', 'movement'])


class StockLedger:
    """
    Atomic stock movements.

    Responsibilities:
    - Apply signed base-unit deltas to Product.stock_quantity with one SQL increment
    - Append the matching StockMovement in the same transaction
    - Provide the purchase / sale / outflow / inventory operations built on that
    """

    _lock = threading.RLock()
    _local = threading.local()

    # ------------------------------------------------------------ transaction

    @classmethod
    def run_atomic(cls, work, description: str = "stock write"):
        """
        Run `work()` as one transaction under the ledger lock.

        Commits on success and rolls back on any error. OperationalError (a
        locked or busy database) is retried up to LEDGER_MAX_RETRIES times.
        Called from inside another run_atomic, `work()` simply joins the
        enclosing transaction.

        Raises:
            ConcurrentModification: retries exhausted
        """
        if getattr(cls._local, 'depth', 0) > 0:
            return work()

        max_retries = current_app.config.get('LEDGER_MAX_RETRIES', 3)
        delay = current_app.config.get('LEDGER_RETRY_DELAY', 0.05)
        attempt = 0

        while True:
            attempt += 1
            with cls._lock:
                cls._local.depth = 1
                try:
                    result = work()
                    db.session.commit()
                    return result
                except OperationalError as e:
                    db.session.rollback()
                    if attempt > max_retries:
                        logger.error(f"{description} failed after {attempt} attempts: {e}")
                        raise ConcurrentModification(
                            f"{description} could not be completed, please retry",
                            attempts=attempt,
                        ) from e
                    logger.warning(f"{description} conflicted (attempt {attempt}/{max_retries + 1}): {e}")
                except Exception:
                    db.session.rollback()
                    raise
                finally:
                    cls._local.depth = 0
            time.sleep(delay * attempt)

    # ------------------------------------------------------------------ reads

    @classmethod
    def current_stock(cls, product_id: int) -> float:
        """Stock in base units, read from the database rather than the session"""
        value = db.session.execute(
            select(Product.stock_quantity).where(Product.id == product_id)
        ).scalar_one_or_none()
        if value is None:
            raise ProductNotFound(product_id)
        return value

    @classmethod
    def ledger_total(cls, product_id: int) -> float:
        return db.session.execute(
            select(func.coalesce(func.sum(StockMovement.quantity), 0.0))
            .where(StockMovement.product_id == product_id)
        ).scalar_one()

    @classmethod
    def verify_consistency(cls, product_id: int) -> dict:
        with cls._lock:
            stock = cls.current_stock(product_id)
            total = cls.ledger_total(product_id)
        consistent = abs(stock - total) < 1e-6
        if not consistent:
            logger.error(f"Product {product_id} stock {stock} differs from ledger total {total}")
        return {'product_id': product_id, 'stock_quantity': stock, 'ledger_total': total, 'consistent': consistent}

    # ----------------------------------------------------------------- writes

    @classmethod
    def stage_movement(
        cls,
        product_id: int,
        movement_type: str,
        quantity: float,
        *,
        unit_id: int | None = None,
        original_quantity: float | None = None,
        reference_type: str | None = None,
        reference_id: int | None = None,
        notes: str | None = None,
        user_id: int | None = None,
    ) -> StockMovement:
        """
        Apply a signed base-unit delta and add its movement to the open
        transaction without committing. Callers own the transaction.
        """
        if movement_type not in StockMovement.MOVEMENT_TYPES:
            raise InvalidMovement(f"Unknown movement type: {movement_type}", movement_type=movement_type)
        if quantity is None or abs(quantity) < EPSILON:
            raise InvalidQuantity("A stock movement needs a non-zero quantity", quantity=quantity)

        result = db.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock_quantity=Product.stock_quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ProductNotFound(product_id)

        movement = StockMovement(
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            unit_id=unit_id,
            original_quantity=original_quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
            created_by_id=user_id,
            updated_by_id=user_id,
        )
        db.session.add(movement)
        db.session.flush()
        return movement

    @classmethod
    def apply_movement(cls, product_id: int, movement_type: str, quantity: float, **kwargs) -> StockMovement:
        """Atomic single movement; see stage_movement for the arguments"""
        movement = cls.run_atomic(
            lambda: cls.stage_movement(product_id, movement_type, quantity, **kwargs),
            description=f"{movement_type} movement on product {product_id}",
        )
        logger.info(
            f"Stock movement {movement.id}: product {product_id} {movement_type} {quantity:+g} "
            f"({kwargs.get('reference_type')})"
        )
        return movement

    @classmethod
    def check_available(cls, product: Product, base_quantity: float) -> float:
        """Raise InsufficientStock unless `base_quantity` can leave the stock; returns the stock"""
        available = cls.current_stock(product.id)
        if available + EPSILON < base_quantity:
            raise InsufficientStock(product.id, product.name, available, base_quantity)
        return available

    @classmethod
    def _floor_enforced(cls, enforce_floor):
        if enforce_floor is None:
            return current_app.config.get('ENFORCE_STOCK_FLOOR', True)
        return enforce_floor

    # ------------------------------------------------------- derived operations

    @classmethod
    def record_purchase(cls, product, unit_id, quantity, reference_id=None, notes=None, user_id=None) -> StockMovement:
        product = load_product(product)
        quantity = as_quantity(quantity)
        unit_id = unit_id if unit_id is not None else product.base_unit_id
        base_quantity = UnitConversionTable.to_base_quantity(product, unit_id, quantity)
        return cls.apply_movement(
            product.id, 'purchase', base_quantity,
            unit_id=unit_id,
            original_quantity=quantity,
            reference_type=REFERENCE_PURCHASE,
            reference_id=reference_id,
            notes=notes,
            user_id=user_id,
        )

    @classmethod
    def record_sale(cls, product, unit_id, quantity, reference_id=None, notes=None,
                    enforce_floor=None, user_id=None) -> StockMovement:
        product = load_product(product)
        quantity = as_quantity(quantity)
        unit_id = unit_id if unit_id is not None else product.base_unit_id
        base_quantity = UnitConversionTable.to_base_quantity(product, unit_id, quantity)
        enforce = cls._floor_enforced(enforce_floor)

        def work():
            if enforce:
                cls.check_available(product, base_quantity)
            return cls.stage_movement(
                product.id, 'sale', -base_quantity,
                unit_id=unit_id,
                original_quantity=quantity,
                reference_type=REFERENCE_SALE,
                reference_id=reference_id,
                notes=notes,
                user_id=user_id,
            )

        movement = cls.run_atomic(work, description=f"sale of product {product.id}")
        logger.info(f"Stock movement {movement.id}: product {product.id} sale {-base_quantity:+g}")
        return movement

    @classmethod
    def record_outflow(cls, product, unit_id, quantity, reason=DEFAULT_OUTFLOW_REASON, notes=None,
                       enforce_floor=None, user_id=None) -> StockMovement:
        """
        Manual withdrawal (breakage, internal use, gift, sample, theft...).
        Recorded as a negative adjustment whose reference type is the reason.
        """
        reason = reason or DEFAULT_OUTFLOW_REASON
        if reason not in OUTFLOW_REASONS:
            raise InvalidMovement(f"Unknown outflow reason: {reason}", reason=reason, allowed=list(OUTFLOW_REASONS))
        product = load_product(product)
        quantity = as_quantity(quantity)
        unit_id = unit_id if unit_id is not None else product.base_unit_id
        base_quantity = UnitConversionTable.to_base_quantity(product, unit_id, quantity)
        enforce = cls._floor_enforced(enforce_floor)

        def work():
            if enforce:
                cls.check_available(product, base_quantity)
            return cls.stage_movement(
                product.id, 'adjustment', -base_quantity,
                unit_id=unit_id,
                original_quantity=quantity,
                reference_type=reason,
                notes=notes or reason,
                user_id=user_id,
            )

        movement = cls.run_atomic(work, description=f"outflow of product {product.id}")
        logger.info(f"Stock movement {movement.id}: product {product.id} outflow {-base_quantity:+g} ({reason})")
        return movement

    @classmethod
    def adjust_inventory(cls, product, unit_id, counted_quantity, notes=None, user_id=None) -> InventoryAdjustment:
        """
        Bring the stock to a physically counted quantity.

        The difference is computed against the stock read inside the ledger
        lock. A zero difference writes nothing; otherwise one adjustment
        movement carries the whole difference.
        """
        product = load_product(product)
        unit_id = unit_id if unit_id is not None else product.base_unit_id
        counted = as_quantity(counted_quantity, 'counted_quantity', allow_zero=True)
        counted_base = counted * UnitConversionTable.equivalent_quantity(product, unit_id)

        def work():
            old_quantity = cls.current_stock(product.id)
            difference = counted_base - old_quantity
            if abs(difference) < EPSILON:
                return InventoryAdjustment(0.0, old_quantity, old_quantity, None)
            movement = cls.stage_movement(
                product.id, 'adjustment', difference,
                unit_id=unit_id,
                original_quantity=counted,
                reference_type=REFERENCE_INVENTORY,
                notes=notes or f"Inventaire - Écart: {difference:+g}",
                user_id=user_id,
            )
            return InventoryAdjustment(difference, old_quantity, counted_base, movement)

        result = cls.run_atomic(work, description=f"inventory of product {product.id}")
        if result.movement is None:
            logger.info(f"Inventory of product {product.id}: no adjustment needed ({result.old_quantity:g})")
        else:
            logger.info(
                f"Inventory of product {product.id}: {result.old_quantity:g} -> {result.new_quantity:g} "
                f"(movement {result.movement.id})"
            )
        return result
