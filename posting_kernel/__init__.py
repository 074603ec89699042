"""
Posting Kernel - ledger posting and validation core

Turns business documents (invoices, bills, payments, manual journals) into
balanced double-entry journals:
- Decimal money with explicit, currency-derived rounding
- Single-rate FX conversion into the company's base currency
- Payment allocation with advance/prepayment routing of overpayments
- Role-based posting authorization and period-lock checks
- Discriminated accepted/rejected results, never partial journals
"""

__version__ = "0.1.0"
