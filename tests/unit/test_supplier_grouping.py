"""
Unit tests for supplier grouping.
"""

from decimal import Decimal

import pytest

from marketplace.exceptions import ValidationError
from marketplace.services.supplier_grouping_service import (
    CartItem, PLATFORM_STORE_ID, PLATFORM_STORE_NAME,
    flatten_groups, group_cart_items, is_longer_lead_time, lead_time_days
)


class TestGroupCartItems:
    """Tests for group_cart_items."""

    def test_empty_cart_yields_no_groups(self):
        assert group_cart_items([]) == []

    def test_out_of_stock_supplier_is_flagged(self, make_item):
        """Two items from X and one out-of-stock item from Y."""
        items = [
            make_item('p1', 'sup-x', 3, '10.00'),
            make_item('p2', 'sup-x', 2, '5.00'),
            make_item('p3', 'sup-y', 1, '20.00', in_stock=False),
        ]

        groups = group_cart_items(items)

        assert [g.supplier_id for g in groups] == ['sup-x', 'sup-y']
        x, y = groups
        assert x.subtotal == Decimal('40.00')
        assert x.has_stock_issues is False
        assert y.subtotal == Decimal('20.00')
        assert y.has_stock_issues is True

    def test_items_keep_cart_order_within_group(self, make_item):
        items = [
            make_item('a', 'sup-x', 1, '1.00'),
            make_item('b', 'sup-y', 1, '1.00'),
            make_item('c', 'sup-x', 1, '1.00'),
            make_item('d', 'sup-x', 1, '1.00'),
        ]

        groups = group_cart_items(items)

        assert [i.product_id for i in groups[0].items] == ['a', 'c', 'd']
        assert [i.product_id for i in groups[1].items] == ['b']

    def test_unassigned_items_go_to_platform_store(self, make_item):
        items = [make_item('p1', None, 2, '3.50'), make_item('p2', 'sup-x', 1, '1.00')]

        groups = group_cart_items(items)

        assert groups[0].supplier_id == PLATFORM_STORE_ID
        assert groups[0].supplier_name == PLATFORM_STORE_NAME
        assert groups[0].subtotal == Decimal('7.00')

    def test_supplier_name_falls_back_to_id(self, make_item):
        groups = group_cart_items([
            make_item('p1', 'sup-x', 1, '1.00'),
            make_item('p2', 'sup-y', 1, '1.00', supplier_name='Yiwu Textiles'),
        ])
        assert groups[0].supplier_name == 'sup-x'
        assert groups[1].supplier_name == 'Yiwu Textiles'

    def test_shipping_and_total(self, make_item):
        items = [
            make_item('p1', 'sup-x', 2, '10.00', shipping_cost=Decimal('4.00')),
            make_item('p2', 'sup-x', 1, '5.00', shipping_cost=Decimal('1.50')),
        ]

        group = group_cart_items(items)[0]

        assert group.subtotal == Decimal('25.00')
        assert group.shipping_cost == Decimal('5.50')
        assert group.total == Decimal('30.50')

    def test_below_moq_flags_the_whole_group(self, make_item):
        items = [
            make_item('p1', 'sup-x', 10, '1.00', moq=5),
            make_item('p2', 'sup-x', 2, '1.00', moq=50),
            make_item('p3', 'sup-x', 100, '1.00', moq=50),
        ]

        group = group_cart_items(items)[0]

        assert group.has_stock_issues is True
        assert [i.product_id for i in group.stock_issue_items] == ['p2']

    def test_subtotals_add_up_to_cart_total(self, make_item):
        items = [
            make_item('p1', 'sup-x', 3, '10.00'),
            make_item('p2', None, 7, '0.99'),
            make_item('p3', 'sup-y', 1, '1234.56'),
            make_item('p4', 'sup-x', 4, '2.25'),
        ]

        groups = group_cart_items(items)

        assert sum(g.subtotal for g in groups) == sum(i.total_price for i in items)

    def test_grouping_is_idempotent(self, make_item):
        items = [
            make_item('p1', 'sup-y', 1, '1.00'),
            make_item('p2', 'sup-x', 1, '2.00', lead_time='5 days'),
            make_item('p3', 'sup-y', 2, '3.00', in_stock=False),
            make_item('p4', None, 1, '4.00'),
        ]

        first = group_cart_items(items)
        second = group_cart_items(flatten_groups(first))

        assert first == second

    def test_grouping_does_not_mutate_input(self, make_item):
        items = [make_item('p1', 'sup-x', 1, '1.00'), make_item('p2', 'sup-y', 1, '1.00')]
        snapshot = list(items)
        group_cart_items(items)
        group_cart_items(items)
        assert items == snapshot


class TestEstimatedDelivery:
    """Longest lead time per group."""

    def test_longest_lead_time_wins(self, make_item):
        items = [
            make_item('p1', 'sup-x', 1, '1.00', lead_time='9 days'),
            make_item('p2', 'sup-x', 1, '1.00', lead_time='10 days'),
            make_item('p3', 'sup-x', 1, '1.00', lead_time='1 week'),
        ]
        assert group_cart_items(items)[0].estimated_delivery == '10 days'

    def test_weeks_compare_against_days(self, make_item):
        items = [
            make_item('p1', 'sup-x', 1, '1.00', lead_time='12 days'),
            make_item('p2', 'sup-x', 1, '1.00', lead_time='2 weeks'),
        ]
        assert group_cart_items(items)[0].estimated_delivery == '2 weeks'

    def test_missing_lead_times_are_ignored(self, make_item):
        items = [
            make_item('p1', 'sup-x', 1, '1.00'),
            make_item('p2', 'sup-x', 1, '1.00', lead_time='3 days'),
            make_item('p3', 'sup-x', 1, '1.00'),
        ]
        assert group_cart_items(items)[0].estimated_delivery == '3 days'

    @pytest.mark.parametrize('text, days', [
        ('7 days', 7),
        ('1 day', 1),
        ('7-10 days', 10),
        ('15 to 20 business days', 20),
        ('2 weeks', 14),
        ('1 month', 30),
        ('Ships in 3 Days', 3),
        ('on request', None),
        ('', None),
        (None, None),
    ])
    def test_lead_time_days(self, text, days):
        assert lead_time_days(text) == days

    def test_unparseable_lead_times_compare_as_text(self):
        assert is_longer_lead_time('on request', 'ask supplier') is True
        assert is_longer_lead_time('ask supplier', 'on request') is False


class TestCartItemFromDict:
    """Tests for building cart items from JSON payloads."""

    def test_camel_case_payload(self):
        item = CartItem.from_dict({
            'productId': 'p1',
            'productName': 'Widget',
            'supplierId': 'sup-x',
            'quantity': 3,
            'unitPrice': '10.00',
            'moq': 2,
            'inStock': True,
            'leadTime': '5 days',
            'specifications': {'color': 'red', 'size': 42},
        })

        assert item.product_id == 'p1'
        assert item.total_price == Decimal('30.00')
        assert item.moq == 2
        assert item.specifications == {'color': 'red', 'size': '42'}
        assert item.has_stock_issue is False

    def test_missing_product_id_is_rejected(self):
        with pytest.raises(ValidationError):
            CartItem.from_dict({'quantity': 1, 'unitPrice': 1})

    def test_bad_price_is_rejected(self):
        with pytest.raises(ValidationError):
            CartItem.from_dict({'productId': 'p1', 'quantity': 1, 'unitPrice': 'cheap'})

    @pytest.mark.parametrize('field', ['unitPrice', 'totalPrice', 'shippingCost'])
    @pytest.mark.parametrize('value', ['NaN', 'Infinity', '-Infinity'])
    def test_non_finite_amounts_are_rejected(self, field, value):
        payload = {'productId': 'p1', 'quantity': 1, 'unitPrice': '1.00', field: value}

        with pytest.raises(ValidationError) as exc_info:
            CartItem.from_dict(payload)

        assert exc_info.value.rule == 'amount_format'

    @pytest.mark.parametrize('quantity', [2.9, '2.5', True])
    def test_fractional_quantity_is_rejected(self, quantity):
        with pytest.raises(ValidationError) as exc_info:
            CartItem.from_dict({'productId': 'p1', 'quantity': quantity, 'unitPrice': '10.00'})
        assert exc_info.value.rule == 'quantity'

    def test_integral_quantity_forms(self):
        assert CartItem.from_dict({'productId': 'p1', 'quantity': 3.0, 'unitPrice': '1.00'}).quantity == 3
        assert CartItem.from_dict({'productId': 'p1', 'quantity': '4', 'unitPrice': '1.00'}).total_price == Decimal('4.00')

    @pytest.mark.parametrize('value, expected', [('false', False), ('true', True), (False, False)])
    def test_in_stock_strings(self, value, expected):
        item = CartItem.from_dict({'productId': 'p1', 'quantity': 1, 'unitPrice': '1.00', 'inStock': value})
        assert item.in_stock is expected
        assert item.has_stock_issue is (not expected)

    def test_unknown_in_stock_value_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            CartItem.from_dict({'productId': 'p1', 'quantity': 1, 'unitPrice': '1.00', 'inStock': 'maybe'})
        assert exc_info.value.rule == 'in_stock'
