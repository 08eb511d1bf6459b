import asyncio
import logging
import pytest
from ims.utils.validation import (
    FieldRule,
    PasswordPolicy,
    ValidationResult,
    validate_async,
    validate_customer,
    validate_email,
    validate_field,
    validate_form,
    validate_inventory,
    validate_password,
    validate_phone,
    validate_product,
    validate_sale,
    validate_sku,
)


@pytest.mark.parametrize('value', ['', '   ', None])
def test_required_rejects_empty_values(value):
    result = validate_field(value, FieldRule(required=True), 'X')
    assert result.is_valid is False
    assert result.errors == ['X is required']


def test_required_gate_short_circuits_other_checks():
    rule = FieldRule(required=True, min_length=3, pattern=r'^[a-z]+$')
    assert validate_field('', rule, 'X').errors == ['X is required']


def test_optional_empty_value_passes():
    assert validate_field('  ', FieldRule(min_length=5), 'X').is_valid


def test_violations_accumulate_in_order():
    rule = FieldRule(min_length=3, max_length=5, pattern=r'^[a-z]+$', custom=lambda v: 'X is banned')
    result = validate_field('A1', rule, 'X')
    assert result.errors == [
        'X must be at least 3 characters long',
        'X format is invalid',
        'X is banned',
    ]


def test_rule_may_be_given_as_mapping():
    result = validate_field('abcdef', {'max_length': 5}, 'Code')
    assert result.errors == ['Code must be no more than 5 characters long']


def test_default_field_name():
    assert validate_field(None, FieldRule(required=True)).errors == ['Field is required']


def test_password_rules():
    weak = validate_password('abc')
    assert not weak.is_valid
    assert weak.errors == [
        'Password must be at least 8 characters long',
        'Password must contain at least one uppercase letter',
        'Password must contain at least one number',
    ]
    strong = validate_password('Abcdefg1')
    assert strong.is_valid and strong.errors == []
    assert validate_password('').errors == ['Password is required']


def test_password_symbols_policy():
    policy = PasswordPolicy(require_symbols=True)
    assert validate_password('Abcdefg1', policy).errors == ['Password must contain at least one special character']
    assert validate_password('Abcdefg1!', policy).is_valid


def test_email_phone_and_sku():
    assert validate_email('ops@serranotex.com').is_valid
    assert validate_email('not-an-email').errors == ['Email format is invalid']
    assert validate_email(None).errors == ['Email is required']
    assert validate_phone('+1 (555) 010-2030').is_valid
    assert validate_phone('').is_valid
    assert validate_phone('call me').errors == ['Phone number format is invalid']
    assert validate_sku('COT-001').is_valid
    assert validate_sku('ab').errors == ['SKU must be at least 3 characters long', 'SKU format is invalid']
    assert validate_sku('A' * 21).errors == ['SKU must be no more than 20 characters long']


def _product(**overrides):
    base = {'name': 'Cotton Twill', 'sku': 'COT-001', 'price': 12.5, 'cost': 7, 'category_id': 1}
    base.update(overrides)
    return base


def test_product_valid_and_zero_prices_allowed():
    assert validate_product(_product()).is_valid
    assert validate_product(_product(price=0, cost=0)).is_valid


def test_product_collects_every_error():
    result = validate_product({'name': 'A', 'sku': '', 'price': -1, 'cost': '5'})
    assert result.errors == [
        'Product name must be at least 2 characters long',
        'SKU is required',
        'Price must be a positive number',
        'Cost must be a positive number',
        'Category is required',
    ]


@pytest.mark.parametrize('price', [True, float('nan'), float('inf'), '12.5', None])
def test_product_price_must_be_a_real_number(price):
    assert 'Price must be a positive number' in validate_product(_product(price=price)).errors


def test_product_description_limit():
    assert validate_product(_product(description='x' * 501)).errors == ['Description must be no more than 500 characters long']


def test_product_accepts_attribute_objects():
    class Obj:
        name = 'Linen'
        sku = 'LIN-1'
        price = 3
        cost = 1
        category_id = 2
    assert validate_product(Obj()).is_valid


def test_customer_optional_fields_checked_when_present():
    assert validate_customer({'name': 'Acme'}).is_valid
    result = validate_customer({'name': 'Acme', 'email': 'bad', 'phone': 'abc', 'company': 'c' * 101})
    assert result.errors == [
        'Email format is invalid',
        'Phone number format is invalid',
        'Company must be no more than 100 characters long',
    ]
    assert validate_customer({}).errors == ['Customer name is required']


def test_inventory_max_stock_below_reorder_point():
    result = validate_inventory({'product_id': 'p1', 'location_id': 'l1', 'quantity': 5, 'reorder_point': 10, 'max_stock': 5})
    assert not result.is_valid
    assert result.errors == ['Max stock must be greater than or equal to reorder point']


def test_inventory_required_and_numeric_fields():
    result = validate_inventory({'quantity': -1, 'reorder_point': 'x'})
    assert result.errors == [
        'Product is required',
        'Location is required',
        'Quantity must be a non-negative number',
        'Reorder point must be a non-negative number',
    ]
    # optional numbers may be absent or null
    assert validate_inventory({'product_id': 1, 'location_id': 1, 'quantity': 0, 'max_stock': None}).is_valid


def test_sale_requires_items():
    result = validate_sale({'items': []})
    assert not result.is_valid
    assert result.errors == ['At least one item is required']
    assert validate_sale({}).errors == ['At least one item is required']


def test_sale_item_errors_are_prefixed():
    result = validate_sale({'items': [{'product_id': '', 'quantity': 0, 'price': -1}]})
    assert len(result.errors) == 3
    assert all(e.startswith('Item 1:') for e in result.errors)


def test_sale_item_numbering_and_header_checks():
    sale = {
        'items': [
            {'product_id': 1, 'quantity': 2, 'price': 10},
            {'product_id': 2, 'quantity': -3, 'price': 10},
        ],
        'discount': 120,
        'tax_rate': -1,
    }
    assert validate_sale(sale).errors == [
        'Item 2: Quantity must be a positive number',
        'Discount must be between 0 and 100',
        'Tax rate must be between 0 and 100',
    ]


def test_validate_form_only_reports_failing_fields():
    validators = {
        'email': validate_email,
        'name': lambda v: validate_field(v, FieldRule(required=True), 'Name'),
    }
    result = validate_form({'email': 'bad', 'name': 'Ana'}, validators)
    assert result.is_valid is False
    assert result.errors == {'email': ['Email format is invalid']}
    assert validate_form({'email': 'a@b.co', 'name': 'Ana'}, validators).is_valid


def test_result_helpers():
    merged = ValidationResult.merge([ValidationResult(['a']), ValidationResult.ok(), ValidationResult(['b'])])
    assert merged.errors == ['a', 'b']
    assert merged.to_dict() == {'is_valid': False, 'errors': ['a', 'b']}


def test_validate_async_passes_through_result():
    async def check(value):
        return ValidationResult([] if value == 'free' else ['SKU already taken'])

    assert asyncio.run(validate_async('free', check)).is_valid
    assert asyncio.run(validate_async('used', check)).errors == ['SKU already taken']


def test_validate_async_converts_failures(caplog):
    async def broken(value):
        raise ConnectionError('backend unreachable')

    with caplog.at_level(logging.WARNING, logger='ims.utils.validation'):
        result = asyncio.run(validate_async('x', broken))
    assert result.errors == ['Validation error occurred']
    assert 'backend unreachable' in caplog.text

    detailed = asyncio.run(validate_async('x', broken, include_detail=True))
    assert detailed.errors == ['Validation error occurred: backend unreachable']
