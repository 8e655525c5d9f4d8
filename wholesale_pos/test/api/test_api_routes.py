"""
JSON API routes
"""
from datetime import timedelta

from wholesale_pos.buisness.stock.stock_ledger import StockLedger


def test_units_crud(client):
    response = client.post('/api/units', json={'name': 'Bouteille', 'abbreviation': 'btl'})
    assert response.status_code == 201
    unit_id = response.get_json()['id']

    duplicate = client.post('/api/units', json={'name': 'Bouteille 2', 'abbreviation': 'BTL'})
    assert duplicate.status_code == 409
    assert duplicate.get_json()['error'] == 'DuplicateUnit'

    assert client.put(f'/api/units/{unit_id}', json={'name': 'Btl'}).get_json()['name'] == 'Btl'
    assert [u['abbreviation'] for u in client.get('/api/units').get_json()] == ['btl']
    assert client.delete(f'/api/units/{unit_id}').status_code == 200
    assert client.get('/api/units').get_json() == []


def test_referenced_unit_is_locked(client, beer, units):
    response = client.delete(f"/api/units/{units['cs'].id}")
    assert response.status_code == 409
    assert response.get_json()['error'] == 'UnitInUse'


def test_product_and_conversions(client, units):
    response = client.post('/api/products', json={
        'name': 'Castel 65cl', 'base_unit_id': units['btl'].id, 'base_unit_price': 900, 'stock_quantity': 500,
    })
    assert response.status_code == 201
    product = response.get_json()
    assert product['stock_quantity'] == 0

    response = client.post('/api/unit-conversions', json={
        'product_id': product['id'], 'unit_id': units['cs'].id, 'equivalent_quantity': 12, 'override_price': 10000,
    })
    assert response.status_code == 201

    listed = client.get(f"/api/unit-conversions?product_id={product['id']}").get_json()
    assert [(c['unit_abbreviation'], c['equivalent_quantity']) for c in listed] == [('cs', 12)]

    converted = client.get(
        f"/api/unit-conversions/convert?product_id={product['id']}&unit_id={units['cs'].id}&quantity=3"
    ).get_json()
    assert converted['base_quantity'] == 36


def test_missing_conversion_is_a_client_error(client, beer, units):
    response = client.get(f"/api/unit-conversions/convert?product_id={beer.id}&unit_id={units['ctn'].id}&quantity=1")

    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'MissingConversion'
    assert body['details']['unit_id'] == units['ctn'].id


def test_stock_shown_in_a_unit(client, beer, units, stock_up):
    stock_up(beer, 30)

    body = client.get(f"/api/products/{beer.id}/stock?unit_id={units['cs'].id}").get_json()

    assert (body['quantity'], body['remainder_base_quantity']) == (2, 6)
    assert client.get(f"/api/products/{beer.id}/consistency").get_json()['consistent'] is True


def test_price_tiers_and_calculation(client, beer):
    response = client.post('/api/price-tiers', json={'product_id': beer.id, 'tiers': [
        {'tier_name': 'detail', 'min_quantity': 1, 'max_quantity': 11, 'unit_price': 1000},
        {'tier_name': 'gros', 'min_quantity': 12, 'unit_price': 900},
    ]})
    assert response.status_code == 201

    body = client.get(f'/api/price-tiers/{beer.id}/calculate/24').get_json()
    assert (body['unit_price'], body['tier_name'], body['total_price']) == (900, 'gros', 21600)

    bad = client.post('/api/price-tiers', json={'product_id': beer.id, 'tiers': [{'min_quantity': 0, 'unit_price': 1}]})
    assert bad.status_code == 400
    assert bad.get_json()['error'] == 'InvalidPriceTier'
    assert len(client.get(f'/api/price-tiers/{beer.id}').get_json()) == 2


def test_promotion_endpoints(client, beer, today):
    response = client.post('/api/promotions', json={
        'name': '6 + 1', 'type': 'buy_x_get_y', 'buy_quantity': 6, 'get_quantity': 1,
        'start_date': today.isoformat(), 'end_date': today.isoformat(),
    })
    assert response.status_code == 201
    promotion_id = response.get_json()['id']

    active = client.get(f'/api/promotions/active/{beer.id}').get_json()
    assert [p['id'] for p in active] == [promotion_id]

    discount = client.get(f'/api/promotions/{promotion_id}/calculate?total_amount=13000&quantity=13').get_json()
    assert discount['discount'] == 2000

    invalid = client.post('/api/promotions', json={
        'name': 'Rien', 'type': 'percentage', 'discount_percentage': 150,
        'start_date': today.isoformat(), 'end_date': today.isoformat(),
    })
    assert invalid.status_code == 400
    assert invalid.get_json()['error'] == 'InvalidPromotionConfig'

    assert client.delete(f'/api/promotions/{promotion_id}').status_code == 200
    assert client.get(f'/api/promotions/active/{beer.id}').get_json() == []


def test_sale_lifecycle(client, beer, units, stock_up):
    stock_up(beer, 24)
    items = [{'product_id': beer.id, 'unit_id': units['cs'].id, 'quantity': 1}]

    quote = client.post('/api/sales/quote', json={'items': items}).get_json()
    assert quote['total_amount'] == 12000
    assert StockLedger.current_stock(beer.id) == 24

    response = client.post('/api/sales', json={'items': items}, headers={'X-User-Id': '5'})
    assert response.status_code == 201
    sale = response.get_json()
    assert sale['final_amount'] == 12000
    assert sale['items'][0]['base_quantity'] == 12
    assert StockLedger.current_stock(beer.id) == 12

    assert client.get(f"/api/sales/{sale['id']}").get_json()['sale_number'] == sale['sale_number']

    cancelled = client.post(f"/api/sales/{sale['id']}/cancel", json={'reason': 'retour'})
    assert cancelled.get_json()['status'] == 'annule'
    assert StockLedger.current_stock(beer.id) == 24

    again = client.post(f"/api/sales/{sale['id']}/cancel")
    assert again.status_code == 409


def test_sale_beyond_stock_is_refused(client, beer, units, stock_up):
    stock_up(beer, 5)

    response = client.post('/api/sales', json={'items': [{'product_id': beer.id, 'unit_id': units['cs'].id, 'quantity': 1}]})

    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'InsufficientStock'
    assert (body['details']['available'], body['details']['requested']) == (5, 12)


def test_sale_body_must_list_items(client):
    assert client.post('/api/sales', json={'items': 'beer'}).status_code == 400
    assert client.post('/api/sales', json={'items': []}).get_json()['error'] == 'InvalidQuantity'


def test_unknown_sale(client):
    response = client.get('/api/sales/999')
    assert response.status_code == 404
    assert response.get_json()['error'] == 'NotFound'


def test_purchase_endpoint(client, beer, units):
    response = client.post('/api/purchases', json={'supplier_id': 1, 'items': [
        {'product_id': beer.id, 'unit_id': units['cs'].id, 'quantity': 2, 'unit_price': 10000},
    ]})
    assert response.status_code == 201
    purchase = response.get_json()
    assert purchase['total_amount'] == 20000
    assert client.get(f"/api/purchases/{purchase['id']}").get_json()['items'][0]['base_quantity'] == 24
    assert StockLedger.current_stock(beer.id) == 24


def test_outflow_and_inventory(client, beer, stock_up):
    stock_up(beer, 10)

    out = client.post('/api/stock-movements/out', json={'product_id': beer.id, 'quantity': 2, 'reason': 'casse'})
    assert out.status_code == 201
    assert out.get_json()['quantity'] == -2

    unchanged = client.post('/api/stock-movements/inventory', json={'product_id': beer.id, 'counted_quantity': 8})
    assert unchanged.status_code == 200
    assert unchanged.get_json()['message'] == 'Aucun ajustement nécessaire'

    adjusted = client.post('/api/stock-movements/inventory', json={'product_id': beer.id, 'counted_quantity': 9})
    assert adjusted.status_code == 201
    assert adjusted.get_json()['difference'] == 1


def test_movement_filters(client, beer, soda, stock_up, today):
    stock_up(beer, 10)
    stock_up(soda, 10)
    StockLedger.record_sale(beer, None, 3)

    by_product = client.get(f'/api/stock-movements?product_id={beer.id}').get_json()
    assert [m['quantity'] for m in by_product] == [-3, 10]

    sales = client.get('/api/stock-movements?movement_type=sale').get_json()
    assert len(sales) == 1

    window = f'start_date={today - timedelta(days=1)}&end_date={today + timedelta(days=1)}'
    assert len(client.get(f'/api/stock-movements?{window}').get_json()) == 3
    assert client.get('/api/stock-movements?end_date=2000-01-01').get_json() == []

    assert client.get('/api/stock-movements?start_date=yesterday').status_code == 400


def test_unit_update_ignores_body_user_id(client, units):
    response = client.put(f"/api/units/{units['ctn'].id}", json={'name': 'Carton 24', 'user_id': 4},
                          headers={'X-User-Id': '2'})
    assert response.status_code == 200
    assert response.get_json()['name'] == 'Carton 24'


def test_unit_fields_must_be_text(client, units):
    created = client.post('/api/units', json={'name': 12, 'abbreviation': 'dz'})
    assert created.status_code == 400
    assert created.get_json()['error'] == 'InvalidUnit'

    updated = client.put(f"/api/units/{units['ctn'].id}", json={'abbreviation': 7})
    assert updated.status_code == 400
    assert updated.get_json()['details']['field'] == 'abbreviation'


def test_sale_modification_endpoint(client, beer, units, stock_up):
    stock_up(beer, 24)
    sale = client.post('/api/sales', json={'items': [
        {'product_id': beer.id, 'unit_id': units['cs'].id, 'quantity': 1},
    ]}).get_json()

    response = client.put(f"/api/sales/{sale['id']}/modify", json={
        'items': [{'product_id': beer.id, 'unit_id': units['pk'].id, 'quantity': 1}],
        'reason': 'client a rendu un pack',
    })

    assert response.status_code == 200
    body = response.get_json()
    assert [item['base_quantity'] for item in body['items']] == [6]
    assert body['final_amount'] == 6000
    assert StockLedger.current_stock(beer.id) == 18
    assert client.get(f"/api/products/{beer.id}/consistency").get_json()['consistent'] is True

    history = client.get('/api/stock-movements?reference_type=modification_vente').get_json()
    assert sorted(m['quantity'] for m in history) == [-6, 12]

    client.post(f"/api/sales/{sale['id']}/cancel")
    refused = client.put(f"/api/sales/{sale['id']}/modify", json={'items': [
        {'product_id': beer.id, 'unit_id': units['btl'].id, 'quantity': 1},
    ]})
    assert refused.status_code == 409
    assert refused.get_json()['error'] == 'InvalidSaleState'


def test_sale_flags_and_payment_method(client, beer, units, stock_up, make_promotion):
    stock_up(beer, 10)
    make_promotion()
    items = [{'product_id': beer.id, 'unit_id': units['btl'].id, 'quantity': 2}]

    plain = client.post('/api/sales', json={'items': items, 'apply_promotions': 'false'}).get_json()
    assert plain['promotion_id'] is None
    assert plain['final_amount'] == 2000

    unknown = client.post('/api/sales', json={'items': items, 'payment_method': 'troc'})
    assert unknown.status_code == 400
    assert unknown.get_json()['error'] == 'InvalidPaymentMethod'

    bad_flag = client.post('/api/sales', json={'items': items, 'apply_promotions': 'peut-etre'})
    assert bad_flag.get_json()['error'] == 'InvalidArgument'
    assert StockLedger.current_stock(beer.id) == 8


def test_movement_history_names_product_and_unit(client, beer, units, stock_up):
    stock_up(beer, 24)
    StockLedger.record_sale(beer, units['cs'].id, 1)

    latest = client.get(f'/api/stock-movements?product_id={beer.id}').get_json()[0]

    assert latest['product_name'] == beer.name
    assert (latest['unit_name'], latest['unit_abbreviation']) == ('Casier', 'cs')


def test_movement_pages(client, beer, stock_up):
    for _ in range(5):
        stock_up(beer, 1)

    body = client.get(f'/api/stock-movements?product_id={beer.id}&page=2&per_page=2').get_json()

    assert (body['page'], body['per_page'], body['pages'], body['total']) == (2, 2, 3, 5)
    assert len(body['items']) == 2
    assert 'modification_vente' in body['filter_options']['reference_types']


def test_promotion_usages_endpoint(client, beer, units, stock_up, make_promotion):
    stock_up(beer, 10)
    promotion = make_promotion()
    client.post('/api/sales', json={'customer_id': 9, 'items': [
        {'product_id': beer.id, 'unit_id': units['btl'].id, 'quantity': 2},
    ]})

    usages = client.get(f'/api/promotions/{promotion.id}/usages').get_json()

    assert [(u['customer_id'], u['discount_applied']) for u in usages] == [(9, 200)]
    assert client.get('/api/promotions/999/usages').status_code == 404
