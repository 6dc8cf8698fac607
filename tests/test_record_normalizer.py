from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.services.inventory_store import MovementRow, OrderItemRow, OrderRow, ProductRow, TransactionRow
from app.services.record_normalizer import normalize_records
from app.services.unified_records import (
    AmountOnlyTransactionRecord,
    DeliveryType,
    InventoryMovementRecord,
    RecordType,
    SourceSystem,
    epoch_millis,
)

AT = datetime(2024, 1, 10, 9, 0, tzinfo=timezone(timedelta(hours=9)))

PRODUCTS = [
    ProductRow(id='prod-1', product_name='Copy Paper', product_code='CP-A4', current_stock=40),
    ProductRow(id='prod-2', product_name='Stapler', product_code='ST-1', current_stock=3),
]
ORDERS = [OrderRow(id='po-1', order_no='PO202401010001', total_amount=Decimal('50000'))]
ITEMS = [
    OrderItemRow(purchase_order_id='po-1', product_id='prod-2', quantity=10, unit_price=Decimal('1000')),
    OrderItemRow(purchase_order_id='po-1', product_id='prod-1', quantity=100, unit_price=Decimal('400')),
]


def _movement(movement_id: str, product_id: str, **kwargs) -> MovementRow:
    values = {'movement_type': 'in', 'quantity': 5, 'created_at': AT}
    values.update(kwargs)
    return MovementRow(id=movement_id, product_id=product_id, **values)


def _tx(tx_id: str, amount: str | None, parent_order_id: str | None = 'po-1', **kwargs) -> TransactionRow:
    values = {'created_at': AT, 'delivery_sequence': 1}
    values.update(kwargs)
    return TransactionRow(
        id=tx_id,
        parent_order_id=parent_order_id,
        total_amount=Decimal(amount) if amount is not None else None,
        **values,
    )


def _normalize(movements=(), transactions=(), orders=ORDERS, items=ITEMS):
    return normalize_records(
        movements=list(movements),
        transactions=list(transactions),
        products=PRODUCTS,
        orders=list(orders),
        order_items=list(items),
    )


def _by_id(records):
    return {record.id: record for record in records}


class RecordNormalizerTests(unittest.TestCase):
    def test_movement_shape(self) -> None:
        record = _normalize(movements=[_movement('m1', 'prod-1', memo='入庫')])[0]
        self.assertIsInstance(record, InventoryMovementRecord)
        self.assertEqual(record.record_type, RecordType.INVENTORY_MOVEMENT)
        self.assertEqual(record.source_system, SourceSystem.INVENTORY)
        self.assertEqual(record.unified_timestamp, epoch_millis(AT))
        self.assertEqual(record.products.product_name, 'Copy Paper')
        self.assertEqual(record.physical_quantity, 5)

    def test_movement_amount_falls_back_to_quantity_times_price(self) -> None:
        record = _normalize(movements=[_movement('m1', 'prod-1', quantity=3, unit_price=Decimal('250'))])[0]
        self.assertEqual(record.total_amount, Decimal('750'))

    def test_movement_without_product_is_dropped(self) -> None:
        records = _normalize(movements=[_movement('m1', 'missing'), _movement('m2', 'prod-1')])
        self.assertEqual([record.id for record in records], ['m2'])

    def test_transaction_takes_primary_product_and_classification(self) -> None:
        record = _normalize(transactions=[_tx('t1', '50000', memo='一括')])[0]
        self.assertIsInstance(record, AmountOnlyTransactionRecord)
        self.assertEqual(record.source_system, SourceSystem.ACCOUNTING)
        self.assertEqual(record.products.id, 'prod-1')
        self.assertEqual(record.unit_price, Decimal('400'))
        self.assertEqual(record.accounting_amount, Decimal('50000'))
        self.assertEqual(record.installment_no, 1)
        self.assertEqual(record.correlation_id, 'po-1')
        self.assertEqual(record.transaction_details.order_no, 'PO202401010001')
        self.assertEqual(record.transaction_details.delivery_type, DeliveryType.FULL)

    def test_transaction_without_order_is_amount_only(self) -> None:
        record = _normalize(transactions=[_tx('t1', '1000')], orders=[], items=[])[0]
        self.assertIsNone(record.products)
        self.assertEqual(record.transaction_details.delivery_type, DeliveryType.AMOUNT_ONLY)

    def test_productless_transactions_need_a_positive_amount(self) -> None:
        records = _normalize(transactions=[_tx('t1', '1000'), _tx('t2', '0'), _tx('t3', None)], items=[])
        self.assertEqual([record.id for record in records], ['t1'])

    def test_zero_amount_transaction_with_product_is_kept(self) -> None:
        records = _normalize(transactions=[_tx('t1', '0')])
        self.assertEqual([record.id for record in records], ['t1'])

    def test_missing_memo_gets_installment_label(self) -> None:
        record = _normalize(transactions=[_tx('t1', '1000', delivery_sequence=3, memo=None)])[0]
        self.assertEqual(record.memo, '分納入力 3回目')

    def test_linked_movement_gets_transaction_details(self) -> None:
        records = _by_id(
            _normalize(
                movements=[_movement('m1', 'prod-1', transaction_id='t1'), _movement('m2', 'prod-1')],
                transactions=[_tx('t1', '30000')],
            )
        )
        self.assertEqual(records['m1'].transaction_details.order_no, 'PO202401010001')
        self.assertEqual(records['m1'].transaction_details.delivery_type, DeliveryType.PARTIAL)
        self.assertIsNone(records['m2'].transaction_details)

    def test_every_resolvable_input_appears_exactly_once(self) -> None:
        movements = [_movement(f'm{idx}', 'prod-1' if idx % 2 else 'missing') for idx in range(10)]
        transactions = [_tx(f't{idx}', str(1000 * (idx + 1)), parent_order_id=None) for idx in range(4)]
        records = _normalize(movements=movements, transactions=transactions)
        ids = [record.id for record in records]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(sorted(ids), sorted([f'm{idx}' for idx in range(1, 10, 2)] + [f't{idx}' for idx in range(4)]))


if __name__ == '__main__':
    unittest.main()
