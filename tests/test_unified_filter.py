from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from app.services.unified_filter import FilterSpec, apply_filters, day_bounds, filter_and_sort, sort_records
from app.services.unified_records import (
    AmountOnlyTransactionRecord,
    DeliveryType,
    InventoryMovementRecord,
    ProductSnapshot,
    TransactionDetails,
    epoch_millis,
)

JST = timezone(timedelta(hours=9))


def _product(name: str, code: str) -> ProductSnapshot:
    return ProductSnapshot(id=f'id-{code}', product_name=name, product_code=code)


def _movement(
    movement_id: str,
    created_at: datetime,
    *,
    product: ProductSnapshot | None = None,
    movement_type: str = 'in',
    memo: str | None = None,
    transaction_id: str | None = None,
    order_no: str | None = None,
) -> InventoryMovementRecord:
    details = None
    if order_no:
        details = TransactionDetails(
            order_no=order_no,
            delivery_type=DeliveryType.PARTIAL,
            delivery_amount=Decimal('1000'),
            order_total_amount=Decimal('5000'),
        )
    return InventoryMovementRecord(
        id=movement_id,
        unified_timestamp=epoch_millis(created_at),
        created_at=created_at,
        product_id=product.id if product else None,
        products=product or _product('Widget', 'W-1'),
        movement_type=movement_type,
        quantity=1,
        total_amount=Decimal('100'),
        memo=memo,
        transaction_id=transaction_id,
        transaction_details=details,
    )


def _installment(
    tx_id: str,
    created_at: datetime,
    *,
    installment_no: int | None = 1,
    memo: str | None = '入金',
    product: ProductSnapshot | None = None,
    order_no: str | None = None,
) -> AmountOnlyTransactionRecord:
    return AmountOnlyTransactionRecord(
        id=tx_id,
        unified_timestamp=epoch_millis(created_at),
        created_at=created_at,
        product_id=product.id if product else None,
        products=product,
        total_amount=Decimal('1000'),
        accounting_amount=Decimal('1000'),
        installment_no=installment_no,
        memo=memo,
        correlation_id='po-1',
        transaction_details=TransactionDetails(
            order_no=order_no,
            delivery_type=DeliveryType.PARTIAL,
            delivery_amount=Decimal('1000'),
            order_total_amount=Decimal('5000'),
        ),
    )


def _ids(records) -> list[str]:
    return [record.id for record in records]


class DateRangeTests(unittest.TestCase):
    def test_end_date_includes_its_last_second_only(self) -> None:
        records = [
            _movement('late', datetime(2024, 1, 31, 23, 59, 59, tzinfo=JST)),
            _movement('next-day', datetime(2024, 2, 1, 0, 0, 0, tzinfo=JST)),
        ]
        result = apply_filters(records, FilterSpec(end_date=date(2024, 1, 31)), tz=JST)
        self.assertEqual(_ids(result), ['late'])

    def test_start_date_includes_midnight(self) -> None:
        records = [
            _movement('before', datetime(2024, 1, 9, 23, 59, 59, tzinfo=JST)),
            _movement('midnight', datetime(2024, 1, 10, 0, 0, 0, tzinfo=JST)),
        ]
        result = apply_filters(records, FilterSpec(start_date=date(2024, 1, 10)), tz=JST)
        self.assertEqual(_ids(result), ['midnight'])

    def test_day_bounds_are_half_open(self) -> None:
        start_at, end_at = day_bounds(date(2024, 1, 1), date(2024, 1, 31), JST)
        self.assertEqual(start_at, datetime(2024, 1, 1, tzinfo=JST))
        self.assertEqual(end_at, datetime(2024, 2, 1, tzinfo=JST))
        self.assertEqual(day_bounds(None, None), (None, None))

    def test_inverted_range_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            apply_filters([], FilterSpec(start_date=date(2024, 2, 1), end_date=date(2024, 1, 1)))


class SearchTests(unittest.TestCase):
    def setUp(self) -> None:
        self.at = datetime(2024, 1, 10, 12, 0, tzinfo=JST)

    def test_po_number_in_memo_matches(self) -> None:
        records = [
            _movement('hit', self.at, memo='分納入力(2回目) - PO202401010001'),
            _movement('miss', self.at, memo='手動調整'),
        ]
        self.assertEqual(_ids(apply_filters(records, FilterSpec(search_term='PO202401010001'))), ['hit'])
        self.assertEqual(_ids(apply_filters(records, FilterSpec(search_term='po2024010100'))), ['hit'])

    def test_product_name_and_code_match_case_insensitively(self) -> None:
        records = [
            _movement('pen', self.at, product=_product('Blue Pen', 'BP-001')),
            _movement('paper', self.at, product=_product('Copy Paper', 'CP-A4')),
        ]
        self.assertEqual(_ids(apply_filters(records, FilterSpec(search_term='blue'))), ['pen'])
        self.assertEqual(_ids(apply_filters(records, FilterSpec(search_term='cp-a4'))), ['paper'])

    def test_installment_keyword_matches_every_accounting_record(self) -> None:
        records = [
            _installment('tx', self.at, memo='入金'),
            _movement('mv', self.at, memo='手動調整'),
        ]
        self.assertEqual(_ids(apply_filters(records, FilterSpec(search_term='分納'))), ['tx'])
        self.assertEqual(_ids(apply_filters(records, FilterSpec(search_term='分納入力'))), ['tx'])

    def test_resolved_order_number_matches(self) -> None:
        records = [_installment('tx', self.at, memo=None, order_no='PO202403030003')]
        self.assertEqual(_ids(apply_filters(records, FilterSpec(search_term='PO202403030003'))), ['tx'])

    def test_blank_search_keeps_everything(self) -> None:
        records = [_movement('a', self.at), _installment('b', self.at)]
        self.assertEqual(len(apply_filters(records, FilterSpec(search_term='   '))), 2)

    def test_surrounding_whitespace_is_part_of_the_term(self) -> None:
        records = [_movement('pen', self.at, product=_product('Blue Pen', 'BP-001'))]
        self.assertEqual(_ids(apply_filters(records, FilterSpec(search_term='BP-001'))), ['pen'])
        self.assertEqual(apply_filters(records, FilterSpec(search_term='BP-001 ')), [])


class FieldFilterTests(unittest.TestCase):
    def setUp(self) -> None:
        at = datetime(2024, 1, 10, 12, 0, tzinfo=JST)
        self.records = [
            _movement('in-linked', at, movement_type='in', transaction_id='tx-9', order_no='PO202401010001'),
            _movement('out-manual', at, movement_type='out', memo='出荷 PO202405050005'),
            _installment('tx-1', at, installment_no=1),
            _installment('tx-2', at, installment_no=2, order_no='PO202401010001'),
        ]

    def test_record_type(self) -> None:
        result = apply_filters(self.records, FilterSpec(record_type='amount_only_transaction'))
        self.assertEqual(_ids(result), ['tx-1', 'tx-2'])
        result = apply_filters(self.records, FilterSpec(record_type='inventory_movement'))
        self.assertEqual(_ids(result), ['in-linked', 'out-manual'])

    def test_movement_type_does_not_apply_to_installments(self) -> None:
        result = apply_filters(self.records, FilterSpec(movement_type='out'))
        self.assertEqual(_ids(result), ['out-manual', 'tx-1', 'tx-2'])

    def test_delivery_filter(self) -> None:
        self.assertEqual(
            _ids(apply_filters(self.records, FilterSpec(delivery_filter='partial_delivery'))),
            ['in-linked', 'tx-1', 'tx-2'],
        )
        self.assertEqual(
            _ids(apply_filters(self.records, FilterSpec(delivery_filter='manual'))),
            ['out-manual', 'tx-1', 'tx-2'],
        )

    def test_installment_number(self) -> None:
        self.assertEqual(_ids(apply_filters(self.records, FilterSpec(installment_no=' 2 '))), ['tx-2'])

    def test_non_numeric_installment_number_is_ignored(self) -> None:
        self.assertEqual(len(apply_filters(self.records, FilterSpec(installment_no='abc'))), 4)

    def test_order_number_matches_resolved_order_or_memo(self) -> None:
        self.assertEqual(
            _ids(apply_filters(self.records, FilterSpec(order_no='po202401010001'))),
            ['in-linked', 'tx-2'],
        )
        self.assertEqual(_ids(apply_filters(self.records, FilterSpec(order_no='PO202405050005'))), ['out-manual'])

    def test_unknown_choices_are_rejected(self) -> None:
        for spec in (
            FilterSpec(record_type='other'),
            FilterSpec(movement_type='sideways'),
            FilterSpec(delivery_filter='express'),
            FilterSpec(sort_by='price'),
            FilterSpec(sort_order='up'),
        ):
            with self.assertRaises(ValueError):
                apply_filters(self.records, spec)


class SortTests(unittest.TestCase):
    def test_created_at_both_directions(self) -> None:
        base = datetime(2024, 1, 10, tzinfo=JST)
        records = [
            _movement('mid', base + timedelta(hours=1)),
            _movement('old', base),
            _installment('new', base + timedelta(hours=2)),
        ]
        self.assertEqual(_ids(sort_records(records, sort_order='asc')), ['old', 'mid', 'new'])
        self.assertEqual(_ids(sort_records(records, sort_order='desc')), ['new', 'mid', 'old'])

    def test_identical_timestamps_sort_deterministically(self) -> None:
        at = datetime(2024, 1, 10, tzinfo=JST)
        records = [_installment('t-b', at), _movement('m-b', at), _movement('m-a', at), _installment('t-a', at)]
        expected = ['m-a', 'm-b', 't-a', 't-b']
        self.assertEqual(_ids(sort_records(records, sort_order='asc')), expected)
        self.assertEqual(_ids(sort_records(list(reversed(records)), sort_order='asc')), expected)
        self.assertEqual(_ids(sort_records(records, sort_order='desc')), list(reversed(expected)))

    def test_product_name_with_missing_product_first(self) -> None:
        at = datetime(2024, 1, 10, tzinfo=JST)
        records = [
            _movement('pencil', at, product=_product('pencil', 'PN')),
            _installment('orphan', at, product=None),
            _movement('Apple', at, product=_product('Apple', 'AP')),
        ]
        self.assertEqual(_ids(sort_records(records, sort_by='product_name', sort_order='asc')), ['orphan', 'Apple', 'pencil'])
        self.assertEqual(_ids(sort_records(records, sort_by='product_name', sort_order='desc')), ['pencil', 'Apple', 'orphan'])

    def test_filter_and_sort_is_repeatable(self) -> None:
        at = datetime(2024, 1, 10, tzinfo=JST)
        records = [_movement(f'm{idx}', at + timedelta(minutes=idx % 3)) for idx in range(9)]
        spec = FilterSpec(sort_order='desc')
        self.assertEqual(filter_and_sort(records, spec), filter_and_sort(records, spec))


if __name__ == '__main__':
    unittest.main()
