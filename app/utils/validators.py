# app/utils/validators.py
"""
Input validation and sanitization utilities
Applied at the data-entry boundaries (API payloads and the CSV loader)
"""
import re
import bleach
import logging

logger = logging.getLogger(__name__)

ORDER_STATUSES = ('pending', 'processing', 'shipped', 'delivered', 'cancelled', 'completed')

# Alternate spellings accepted on input
STATUS_ALIASES = {
    'canceled': 'cancelled',
}

class InputValidator:
    """Comprehensive input validation"""

    # Same shape the customer collection has always accepted
    EMAIL_PATTERN = re.compile(r'^\w+([\.-]?\w+)*@\w+([\.-]?\w+)*(\.\w{2,3})+$')
    SAFE_ID = re.compile(r'^[A-Za-z0-9\-_]+$')

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format"""
        if not email or len(email) > 320:
            return False
        return bool(InputValidator.EMAIL_PATTERN.match(email))

    @staticmethod
    def sanitize_string(text: str, max_length: int = 1000) -> str:
        """
        Sanitize string input - remove HTML, scripts, etc.
        Prevents XSS attacks
        """
        if not text:
            return ""

        # Truncate to max length
        text = text[:max_length]

        # Remove HTML tags and scripts
        clean_text = bleach.clean(
            text,
            tags=[],  # No tags allowed
            attributes={},
            strip=True
        )

        return clean_text.strip()

    @staticmethod
    def validate_id(value: str) -> bool:
        """Validate an entity identifier (uuid or other slug-like id)"""
        if not value or len(value) > 128:
            return False
        return bool(InputValidator.SAFE_ID.match(value))

    @staticmethod
    def validate_quantity(quantity: int) -> bool:
        """Validate ordered quantity"""
        return isinstance(quantity, int) and quantity >= 1

def normalize_order_status(status: str) -> str:
    """Map an incoming status to the closed status set ('canceled' -> 'cancelled')"""
    if not status:
        raise ValueError('Order status is required')

    value = status.strip().lower()
    value = STATUS_ALIASES.get(value, value)

    if value not in ORDER_STATUSES:
        raise ValueError(f'Order status must be one of {list(ORDER_STATUSES)}')
    return value

# Pydantic validators for schemas
def email_validator(v: str) -> str:
    """Pydantic validator for emails"""
    if not v:
        raise ValueError('Email is required')

    v = v.lower().strip()

    if not InputValidator.validate_email(v):
        raise ValueError('Invalid email format')

    return v

def sanitize_text_validator(v: str) -> str:
    """Pydantic validator for text fields"""
    if not v:
        return ""

    return InputValidator.sanitize_string(v)

def id_validator(v: str) -> str:
    """Pydantic validator for entity ids"""
    v = (v or "").strip()
    if not InputValidator.validate_id(v):
        raise ValueError('Invalid identifier')
    return v

def quantity_validator(v: int) -> int:
    """Pydantic validator for quantity"""
    if not InputValidator.validate_quantity(v):
        raise ValueError('Quantity must be at least 1')
    return v
