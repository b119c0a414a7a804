"""
Domain enumerations.

Expense lifecycle statuses, membership roles and ledger entry types.
"""

import enum


class ExpenseStatus(str, enum.Enum):
    """
    Expense status enumeration.
    
    Engine-driven transitions:
        PENDING -> APPROVED -> SCHEDULED_FOR_PAYMENT
        APPROVED -> PENDING (unapprove)
        PENDING/UNVERIFIED -> REJECTED -> APPROVED
        PAID -> APPROVED (mark as unpaid)
    DRAFT and UNVERIFIED are start states; PROCESSING, ERROR and PAID are
    reached through payment execution.
    """
    DRAFT = "DRAFT"
    UNVERIFIED = "UNVERIFIED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PROCESSING = "PROCESSING"
    ERROR = "ERROR"
    SCHEDULED_FOR_PAYMENT = "SCHEDULED_FOR_PAYMENT"
    PAID = "PAID"


class MemberRole(str, enum.Enum):
    """
    Role a user holds on a collective.
    
    Roles:
        ADMIN: Manages the collective (and, for a host, the collectives it hosts)
        ACCOUNTANT: Read access to sensitive financial data
        MEMBER: Regular contributor
    """
    ADMIN = "ADMIN"
    ACCOUNTANT = "ACCOUNTANT"
    MEMBER = "MEMBER"


class LedgerEntryType(str, enum.Enum):
    """Ledger entry type enumeration."""
    DEBIT = "DEBIT"  # Money leaving the collective
    CREDIT = "CREDIT"  # Money entering the collective
