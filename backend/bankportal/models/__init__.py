from .auth import User, SessionToken, ROLE_CUSTOMER, ROLE_STAFF, VALID_ROLES
from .payments import BankPayment
from .security import SecurityEvent, RateLimitWindow

__all__ = [
    'User', 'SessionToken', 'ROLE_CUSTOMER', 'ROLE_STAFF', 'VALID_ROLES',
    'BankPayment',
    'SecurityEvent', 'RateLimitWindow',
]
