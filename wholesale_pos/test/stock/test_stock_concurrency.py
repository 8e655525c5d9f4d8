"""
Concurrent writers against one product. Every thread runs in its own
application context, and so with its own database session.
"""
import random
import threading

from wholesale_pos.buisness.core.errors import InsufficientStock
from wholesale_pos.buisness.sales.sale_factory import SaleFactory
from wholesale_pos.buisness.stock.stock_ledger import StockLedger
from wholesale_pos.data.pricing.promotion_usage import PromotionUsage
from wholesale_pos.data.stock.stock_movement import StockMovement


def _run_threads(app, count, target):
    outcomes = []
    outcomes_lock = threading.Lock()

    def runner(index):
        with app.app_context():
            try:
                result = target(index)
            except Exception as e:
                result = e
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=runner, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


def test_parallel_sales_lose_no_update(app, beer, stock_up):
    stock_up(beer, 200)
    product_id = beer.id

    def sell_ten(_):
        for _ in range(10):
            StockLedger.record_sale(product_id, None, 1)
        return True

    outcomes = _run_threads(app, 8, sell_ten)

    assert outcomes == [True] * 8
    assert StockLedger.current_stock(product_id) == 120
    assert StockMovement.query.filter_by(product_id=product_id, movement_type='sale').count() == 80
    assert StockLedger.verify_consistency(product_id)['consistent']


def test_race_for_the_last_units(app, beer, stock_up):
    stock_up(beer, 5)
    product_id = beer.id

    outcomes = _run_threads(app, 10, lambda _: StockLedger.record_sale(product_id, None, 1).id)

    successes = [o for o in outcomes if not isinstance(o, Exception)]
    refusals = [o for o in outcomes if isinstance(o, InsufficientStock)]
    assert len(successes) == 5
    assert len(refusals) == 5
    assert StockLedger.current_stock(product_id) == 0


def test_single_use_promotion_is_used_once(app, beer, units, stock_up, make_promotion):
    stock_up(beer, 100)
    promotion = make_promotion(max_total_uses=1)
    promotion_id = promotion.id
    product_id, unit_id = beer.id, units['btl'].id

    def checkout(index):
        sale = SaleFactory.create_sale([{'product_id': product_id, 'unit_id': unit_id, 'quantity': 2}],
                                       customer_id=index + 1)
        return sale.promotion_id

    outcomes = _run_threads(app, 4, checkout)

    assert not [o for o in outcomes if isinstance(o, Exception)]
    assert outcomes.count(promotion_id) == 1
    assert PromotionUsage.query.filter_by(promotion_id=promotion_id).count() == 1
    assert StockLedger.current_stock(product_id) == 92


def test_mixed_writers_keep_stock_equal_to_the_ledger(app, beer, units, stock_up):
    stock_up(beer, 100)
    product_id = beer.id
    unit_ids = [units['btl'].id, units['pk'].id, units['cs'].id]

    def mixed(index):
        rng = random.Random(index)
        done = 0
        for _ in range(15):
            operation = rng.choice(('purchase', 'sale', 'outflow', 'inventory'))
            unit_id = rng.choice(unit_ids)
            try:
                if operation == 'purchase':
                    StockLedger.record_purchase(product_id, unit_id, rng.randint(1, 3))
                elif operation == 'sale':
                    StockLedger.record_sale(product_id, unit_id, rng.randint(1, 2))
                elif operation == 'outflow':
                    StockLedger.record_outflow(product_id, None, rng.randint(1, 4), reason='casse')
                else:
                    StockLedger.adjust_inventory(product_id, None, rng.randint(0, 150))
            except InsufficientStock:
                continue
            done += 1
        return done

    outcomes = _run_threads(app, 8, mixed)

    assert not [o for o in outcomes if isinstance(o, Exception)]
    assert sum(outcomes) > 0
    report = StockLedger.verify_consistency(product_id)
    assert report['consistent']
    assert report['stock_quantity'] >= 0
    assert report['stock_quantity'] == StockLedger.current_stock(product_id)
