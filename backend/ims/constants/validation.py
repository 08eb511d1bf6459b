"""Validation limits and patterns shared by the validators and the routes."""
from __future__ import annotations
import re

PASSWORD_MIN_LENGTH = 8
PASSWORD_REQUIRE_UPPERCASE = True
PASSWORD_REQUIRE_LOWERCASE = True
PASSWORD_REQUIRE_NUMBERS = True
PASSWORD_REQUIRE_SYMBOLS = False

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_PATTERN = re.compile(r'^\+?[\d\s\-()]+$')

SKU_PATTERN = re.compile(r'^[A-Z0-9\-]+$')
SKU_MIN_LENGTH = 3
SKU_MAX_LENGTH = 20

UPPERCASE_PATTERN = re.compile(r'[A-Z]')
LOWERCASE_PATTERN = re.compile(r'[a-z]')
DIGIT_PATTERN = re.compile(r'\d')
SYMBOL_PATTERN = re.compile(r'[!@#$%^&*(),.?":{}|<>]')

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
COMPANY_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
NOTES_MAX_LENGTH = 500

PERCENT_MIN = 0
PERCENT_MAX = 100

GENERIC_ASYNC_ERROR = 'Validation error occurred'
