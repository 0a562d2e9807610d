from crm_ledger.config import POLICY_EXCLUDE_CANCELLED
from crm_ledger.domain.models import Appointment, Product, Purchase
from crm_ledger.ledger import aggregate, calculate_balances


VOUCHER = {"id": "v10", "name": "Facial 10x", "price": 500000, "type": "voucher", "count": 10}
SINGLE = {"id": "s1", "name": "Massage", "price": 60000, "type": "single"}


def _purchase(product_id, quantity, customer_id="c1"):
    return {"customerId": customer_id, "productId": product_id, "quantity": quantity, "purchaseDate": "2024-01-01"}


def _appointments(product_id, n, customer_id="c1", status="completed"):
    return [
        {"customerId": customer_id, "productId": product_id, "datetime": f"2024-02-{i + 1:02d}T10:00", "status": status}
        for i in range(n)
    ]


def test_two_vouchers_minus_three_visits_leaves_seventeen():
    balances = calculate_balances([_purchase("v10", 2)], _appointments("v10", 3), [VOUCHER], customer_id="c1")
    assert len(balances) == 1
    b = balances[0]
    assert b.total_purchased_units == 2
    assert b.total_credits_purchased == 20
    assert b.total_credits_consumed == 3
    assert b.remaining_credits == 17
    assert b.product_name == "Facial 10x"


def test_fully_used_voucher_is_not_listed():
    assert calculate_balances([_purchase("v10", 2)], _appointments("v10", 20), [VOUCHER]) == []


def test_overdrawn_voucher_is_not_reported_as_debt():
    assert calculate_balances([_purchase("v10", 1)], _appointments("v10", 13), [VOUCHER]) == []


def test_separate_purchases_are_summed():
    purchases = [_purchase("v10", 1), _purchase("v10", 1), _purchase("v10", 3)]
    [b] = calculate_balances(purchases, _appointments("v10", 4), [VOUCHER])
    assert b.total_purchased_units == 5
    assert b.remaining_credits == 46


def test_single_product_counts_one_credit_per_unit():
    [b] = calculate_balances([_purchase("s1", 3)], _appointments("s1", 1), [SINGLE])
    assert b.unit_credits == 1
    assert b.remaining_credits == 2


def test_purchase_of_deleted_product_is_skipped():
    balances = calculate_balances(
        [_purchase("gone", 4), _purchase("v10", 1)],
        _appointments("gone", 1),
        [VOUCHER],
    )
    assert [b.product_id for b in balances] == ["v10"]


def test_every_appointment_consumes_by_default():
    appts = _appointments("v10", 2, status="cancelled") + _appointments("v10", 1, status="no-show")
    [b] = calculate_balances([_purchase("v10", 1)], appts, [VOUCHER])
    assert b.total_credits_consumed == 3


def test_exclude_cancelled_policy_ignores_cancelled_and_no_show():
    appts = (
        _appointments("v10", 2, status="cancelled")
        + _appointments("v10", 1, status="no-show")
        + _appointments("v10", 2, status="scheduled")
    )
    [b] = calculate_balances([_purchase("v10", 1)], appts, [VOUCHER], policy=POLICY_EXCLUDE_CANCELLED)
    assert b.total_credits_consumed == 2
    assert b.remaining_credits == 8


def test_other_customers_are_filtered_out():
    purchases = [_purchase("v10", 1), _purchase("v10", 5, customer_id="c2")]
    appts = _appointments("v10", 9, customer_id="c2")
    [b] = calculate_balances(purchases, appts, [VOUCHER], customer_id="c1")
    assert b.customer_id == "c1"
    assert b.remaining_credits == 10


def test_output_follows_first_purchase_order():
    purchases = [_purchase("s1", 1), _purchase("v10", 1), _purchase("s1", 1)]
    balances = calculate_balances(purchases, [], [VOUCHER, SINGLE])
    assert [b.product_id for b in balances] == ["s1", "v10"]


def test_storage_shaped_rows_and_models_are_accepted():
    rows = [{"customer_id": "c1", "product_id": "v10", "quantity": 1}]
    appts = [Appointment(customer_id="c1", product_id="v10", datetime="2024-03-01T10:00")]
    products = [Product(id="v10", name="Facial 10x", price=500000, type="voucher", count=10)]
    [b] = calculate_balances(rows, appts, products)
    assert b.remaining_credits == 9


def test_aggregate_is_total_over_both_inputs():
    counters = aggregate(
        [Purchase(customer_id="c1", product_id="v10", quantity=2)],
        [Appointment(customer_id="c1", product_id="other", datetime="2024-03-01T10:00")],
    )
    assert counters.purchased_units == {"v10": 2, "other": 0}
    assert counters.consumed_credits == {"v10": 0, "other": 1}
    assert counters.purchased_product_ids == ["v10"]


def test_voucher_without_count_falls_back_to_one_credit():
    broken = {"id": "v0", "name": "Legacy voucher", "price": 1, "type": "voucher", "count": None}
    [b] = calculate_balances([_purchase("v0", 2)], [], [broken])
    assert b.total_credits_purchased == 2
