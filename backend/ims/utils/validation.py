from __future__ import annotations
"""Client-facing validation rules for products, customers, inventory lines and sales.

Every validator is pure and total: bad input never raises, it is reported as
data through a ``ValidationResult`` whose messages are ready to show to a user.

Usage:
    from ims.utils.validation import validate_product
    result = validate_product(payload)
    if not result.is_valid:
        ...  # result.errors -> ['SKU is required', ...]

Numbers are checked strictly: only ``int``/``float`` values count (``bool``,
NaN, infinities and numeric strings are rejected). JSON payloads already carry
parsed numbers, so no coercion happens here.
"""
import logging
import math
import re
from dataclasses import dataclass, field
from re import Pattern
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from ims.constants import validation as rules

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @classmethod
    def ok(cls) -> 'ValidationResult':
        return cls([])

    @classmethod
    def merge(cls, results: Iterable['ValidationResult']) -> 'ValidationResult':
        """Concatenate the errors of several results, keeping their order."""
        errors: List[str] = []
        for r in results:
            errors.extend(r.errors)
        return cls(errors)

    def to_dict(self) -> Dict[str, Any]:
        return {'is_valid': self.is_valid, 'errors': list(self.errors)}


@dataclass(frozen=True)
class FieldRule:
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[Union[str, Pattern[str]]] = None
    custom: Optional[Callable[[Any], Optional[str]]] = None


@dataclass(frozen=True)
class PasswordPolicy:
    min_length: int = rules.PASSWORD_MIN_LENGTH
    require_uppercase: bool = rules.PASSWORD_REQUIRE_UPPERCASE
    require_lowercase: bool = rules.PASSWORD_REQUIRE_LOWERCASE
    require_numbers: bool = rules.PASSWORD_REQUIRE_NUMBERS
    require_symbols: bool = rules.PASSWORD_REQUIRE_SYMBOLS


DEFAULT_PASSWORD_POLICY = PasswordPolicy()


@dataclass
class FormValidationResult:
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {'is_valid': self.is_valid, 'errors': {k: list(v) for k, v in self.errors.items()}}


Validator = Callable[[Any], ValidationResult]
AsyncValidator = Callable[[Any], Awaitable[ValidationResult]]


# ---------------------------------------------------------------- helpers -- #

def is_empty(value: Any) -> bool:
    """None, or a string that is blank once whitespace is stripped."""
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ''


def is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _non_negative(value: Any) -> bool:
    return is_number(value) and value >= 0


def _positive(value: Any) -> bool:
    return is_number(value) and value > 0


def _percentage(value: Any) -> bool:
    return is_number(value) and rules.PERCENT_MIN <= value <= rules.PERCENT_MAX


def _get(record: Any, key: str) -> Any:
    """Read a field from a mapping or an attribute object; missing means None."""
    if record is None:
        return None
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def _matches(pattern: Union[str, Pattern[str]], value: str) -> bool:
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    return pattern.search(value) is not None


def _coerce_rule(rule: Union[FieldRule, Mapping[str, Any], None]) -> FieldRule:
    if rule is None:
        return FieldRule()
    if isinstance(rule, FieldRule):
        return rule
    return FieldRule(**rule)


# ------------------------------------------------------------ field engine -- #

def validate_field(value: Any, rule: Union[FieldRule, Mapping[str, Any], None], field_name: str = 'Field') -> ValidationResult:
    """Apply a FieldRule to one value.

    The required/empty gate runs first and ends evaluation. After that the
    length, pattern and custom checks all run and their errors accumulate in
    that order.
    """
    rule = _coerce_rule(rule)
    empty = is_empty(value)
    if rule.required and empty:
        return ValidationResult([f'{field_name} is required'])
    if empty:
        return ValidationResult.ok()

    errors: List[str] = []
    if isinstance(value, str):
        if rule.min_length is not None and len(value) < rule.min_length:
            errors.append(f'{field_name} must be at least {rule.min_length} characters long')
        if rule.max_length is not None and len(value) > rule.max_length:
            errors.append(f'{field_name} must be no more than {rule.max_length} characters long')
        if rule.pattern is not None and not _matches(rule.pattern, value):
            errors.append(f'{field_name} format is invalid')
    if rule.custom is not None:
        message = rule.custom(value)
        if message:
            errors.append(message)
    return ValidationResult(errors)


# ------------------------------------------------------------- primitives -- #

EMAIL_RULE = FieldRule(required=True, pattern=rules.EMAIL_PATTERN)
PHONE_RULE = FieldRule(pattern=rules.PHONE_PATTERN)
SKU_RULE = FieldRule(
    required=True,
    min_length=rules.SKU_MIN_LENGTH,
    max_length=rules.SKU_MAX_LENGTH,
    pattern=rules.SKU_PATTERN,
)
NAME_RULE = FieldRule(required=True, min_length=rules.NAME_MIN_LENGTH, max_length=rules.NAME_MAX_LENGTH)


def validate_email(email: Any) -> ValidationResult:
    return validate_field(email, EMAIL_RULE, 'Email')


def validate_password(password: Any, policy: PasswordPolicy = DEFAULT_PASSWORD_POLICY) -> ValidationResult:
    """Each missing character class is reported separately."""
    if not isinstance(password, str) or not password:
        return ValidationResult(['Password is required'])
    errors: List[str] = []
    if len(password) < policy.min_length:
        errors.append(f'Password must be at least {policy.min_length} characters long')
    if policy.require_uppercase and not rules.UPPERCASE_PATTERN.search(password):
        errors.append('Password must contain at least one uppercase letter')
    if policy.require_lowercase and not rules.LOWERCASE_PATTERN.search(password):
        errors.append('Password must contain at least one lowercase letter')
    if policy.require_numbers and not rules.DIGIT_PATTERN.search(password):
        errors.append('Password must contain at least one number')
    if policy.require_symbols and not rules.SYMBOL_PATTERN.search(password):
        errors.append('Password must contain at least one special character')
    return ValidationResult(errors)


def validate_phone(phone: Any) -> ValidationResult:
    return validate_field(phone, PHONE_RULE, 'Phone number')


def validate_sku(sku: Any) -> ValidationResult:
    return validate_field(sku, SKU_RULE, 'SKU')


# --------------------------------------------------------------- entities -- #

def validate_product(product: Any) -> ValidationResult:
    errors: List[str] = []
    errors.extend(validate_field(_get(product, 'name'), NAME_RULE, 'Product name').errors)
    errors.extend(validate_sku(_get(product, 'sku')).errors)
    if not _non_negative(_get(product, 'price')):
        errors.append('Price must be a positive number')
    if not _non_negative(_get(product, 'cost')):
        errors.append('Cost must be a positive number')
    if is_empty(_get(product, 'category_id')):
        errors.append('Category is required')
    description = _get(product, 'description')
    if not is_empty(description):
        errors.extend(validate_field(description, FieldRule(max_length=rules.DESCRIPTION_MAX_LENGTH), 'Description').errors)
    return ValidationResult(errors)


def validate_customer(customer: Any) -> ValidationResult:
    errors: List[str] = []
    errors.extend(validate_field(_get(customer, 'name'), NAME_RULE, 'Customer name').errors)
    email = _get(customer, 'email')
    if not is_empty(email):
        errors.extend(validate_email(email).errors)
    phone = _get(customer, 'phone')
    if not is_empty(phone):
        errors.extend(validate_phone(phone).errors)
    company = _get(customer, 'company')
    if not is_empty(company):
        errors.extend(validate_field(company, FieldRule(max_length=rules.COMPANY_MAX_LENGTH), 'Company').errors)
    return ValidationResult(errors)


def validate_inventory(line: Any) -> ValidationResult:
    errors: List[str] = []
    if is_empty(_get(line, 'product_id')):
        errors.append('Product is required')
    if is_empty(_get(line, 'location_id')):
        errors.append('Location is required')
    if not _non_negative(_get(line, 'quantity')):
        errors.append('Quantity must be a non-negative number')

    reorder_point = _get(line, 'reorder_point')
    if reorder_point is not None and not _non_negative(reorder_point):
        errors.append('Reorder point must be a non-negative number')

    max_stock = _get(line, 'max_stock')
    if max_stock is not None:
        if not _non_negative(max_stock):
            errors.append('Max stock must be a non-negative number')
        # cross-field check only compares two well-formed numbers
        if is_number(max_stock) and is_number(reorder_point) and max_stock < reorder_point:
            errors.append('Max stock must be greater than or equal to reorder point')
    return ValidationResult(errors)


def validate_sale(sale: Any) -> ValidationResult:
    errors: List[str] = []
    items = _get(sale, 'items')
    if not isinstance(items, (list, tuple)) or not items:
        errors.append('At least one item is required')
    else:
        for index, item in enumerate(items, start=1):
            if is_empty(_get(item, 'product_id')):
                errors.append(f'Item {index}: Product is required')
            if not _positive(_get(item, 'quantity')):
                errors.append(f'Item {index}: Quantity must be a positive number')
            if not _non_negative(_get(item, 'price')):
                errors.append(f'Item {index}: Price must be a non-negative number')

    discount = _get(sale, 'discount')
    if discount is not None and not _percentage(discount):
        errors.append('Discount must be between 0 and 100')
    tax_rate = _get(sale, 'tax_rate')
    if tax_rate is not None and not _percentage(tax_rate):
        errors.append('Tax rate must be between 0 and 100')

    notes = _get(sale, 'notes')
    if not is_empty(notes):
        errors.extend(validate_field(notes, FieldRule(max_length=rules.NOTES_MAX_LENGTH), 'Notes').errors)
    return ValidationResult(errors)


# -------------------------------------------------------------- aggregates -- #

def validate_form(data: Any, validators: Mapping[str, Validator]) -> FormValidationResult:
    """Run one validator per field; only failing fields appear in ``errors``."""
    field_errors: Dict[str, List[str]] = {}
    for name, validator in validators.items():
        result = validator(_get(data, name))
        if not result.is_valid:
            field_errors[name] = list(result.errors)
    return FormValidationResult(field_errors)


async def validate_async(value: Any, validator: AsyncValidator, *, include_detail: bool = False) -> ValidationResult:
    """Await an external check; a failing check becomes a single generic error.

    ``include_detail`` appends the underlying exception text to the message.
    """
    try:
        return await validator(value)
    except Exception as exc:
        logger.warning('async validator %r failed: %s', getattr(validator, '__name__', validator), exc)
        message = rules.GENERIC_ASYNC_ERROR
        if include_detail:
            message = f'{message}: {exc}'
        return ValidationResult([message])


__all__ = [
    'ValidationResult',
    'FieldRule',
    'PasswordPolicy',
    'DEFAULT_PASSWORD_POLICY',
    'FormValidationResult',
    'is_empty',
    'is_number',
    'validate_field',
    'validate_email',
    'validate_password',
    'validate_phone',
    'validate_sku',
    'validate_product',
    'validate_customer',
    'validate_inventory',
    'validate_sale',
    'validate_form',
    'validate_async',
]
