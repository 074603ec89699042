"""
Chart-of-accounts checks.

Pure checks over accounts already fetched from the account directory.
Each check returns ``ValidationError | None``; normal-balance deviations are
not errors and come back as CoaWarning values instead.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum

from posting_kernel.domain.codes import ErrorCode
from posting_kernel.domain.dtos import Account, AccountType, CoaWarning, JournalLine, ValidationError, reject


class AccountRole(str, Enum):
    """The part an account plays in a generated journal."""

    RECEIVABLE = "receivable"
    PAYABLE = "payable"
    REVENUE = "revenue"
    EXPENSE = "expense"
    OUTPUT_TAX = "output_tax"
    INPUT_TAX = "input_tax"
    BANK = "bank"
    BANK_CHARGE = "bank_charge"
    WITHHOLDING_TAX = "withholding_tax"
    CUSTOMER_ADVANCE = "customer_advance"
    SUPPLIER_PREPAYMENT = "supplier_prepayment"


ROLE_ACCOUNT_TYPES: Mapping[AccountRole, frozenset[AccountType]] = {
    AccountRole.RECEIVABLE: frozenset({AccountType.ASSET}),
    AccountRole.PAYABLE: frozenset({AccountType.LIABILITY}),
    AccountRole.REVENUE: frozenset({AccountType.REVENUE}),
    AccountRole.EXPENSE: frozenset({AccountType.EXPENSE, AccountType.ASSET}),
    AccountRole.OUTPUT_TAX: frozenset({AccountType.LIABILITY}),
    AccountRole.INPUT_TAX: frozenset({AccountType.ASSET, AccountType.LIABILITY}),
    AccountRole.BANK: frozenset({AccountType.ASSET}),
    AccountRole.BANK_CHARGE: frozenset({AccountType.EXPENSE}),
    AccountRole.WITHHOLDING_TAX: frozenset({AccountType.ASSET, AccountType.LIABILITY}),
    AccountRole.CUSTOMER_ADVANCE: frozenset({AccountType.LIABILITY}),
    AccountRole.SUPPLIER_PREPAYMENT: frozenset({AccountType.ASSET}),
}


def _unique(ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(ids))


def check_accounts_exist(account_ids: Iterable[str], accounts: Mapping[str, Account]) -> ValidationError | None:
    missing = [account_id for account_id in _unique(account_ids) if account_id not in accounts]
    if missing:
        return reject(
            ErrorCode.ACCOUNT_NOT_FOUND,
            f"Account(s) not found: {', '.join(missing)}",
            missing_account_ids=missing,
        )
    return None


def check_accounts_active(account_ids: Iterable[str], accounts: Mapping[str, Account]) -> ValidationError | None:
    inactive = [accounts[a] for a in _unique(account_ids) if a in accounts and not accounts[a].is_active]
    if inactive:
        return reject(
            ErrorCode.ACCOUNT_INACTIVE,
            "Inactive account(s) cannot be used: " + ", ".join(a.code for a in inactive),
            inactive_accounts=[{"id": a.id, "code": a.code, "name": a.name} for a in inactive],
        )
    return None


def check_account_roles(
    role_refs: Iterable[tuple[str, AccountRole]],
    accounts: Mapping[str, Account],
) -> ValidationError | None:
    """Each referenced account must have a type its role allows."""
    for account_id, role in role_refs:
        account = accounts.get(account_id)
        if account is None:
            continue
        allowed = ROLE_ACCOUNT_TYPES[role]
        if account.account_type not in allowed:
            return reject(
                ErrorCode.ACCOUNT_TYPE_MISMATCH,
                f"Account {account.code} is {account.account_type.value}; "
                f"a {role.value.replace('_', ' ')} account must be "
                + " or ".join(sorted(t.value for t in allowed)),
                field=account_id,
                account_id=account_id,
                role=role.value,
                account_type=account.account_type.value,
            )
    return None


def check_control_accounts(
    account_ids: Iterable[str],
    accounts: Mapping[str, Account],
    chart: Iterable[Account],
) -> ValidationError | None:
    """Top-level (level 0) accounts and parents of other accounts take no direct postings."""
    parent_ids = {a.parent_id for a in chart if a.parent_id}
    violations: list[dict[str, str]] = []
    for account_id in _unique(account_ids):
        account = accounts.get(account_id)
        if account is None:
            continue
        if account.level == 0:
            reason = "Top-level control account (level 0) cannot be posted to directly"
        elif account.id in parent_ids:
            reason = "Parent account with sub-accounts cannot be posted to directly"
        else:
            continue
        violations.append({"id": account.id, "code": account.code, "reason": reason})
    if violations:
        return reject(
            ErrorCode.CONTROL_ACCOUNT_VIOLATION,
            "; ".join(f"{v['code']}: {v['reason']}" for v in violations),
            violations=violations,
        )
    return None


def check_currency_consistency(
    lines: Iterable[JournalLine],
    accounts: Mapping[str, Account],
    allowed_currencies: Iterable[str],
) -> ValidationError | None:
    """
    Accounts with a fixed currency must match the posting currency or the
    source currency the amounts were converted from.
    """
    allowed = {c.upper() for c in allowed_currencies if c}
    mismatches: list[dict[str, str]] = []
    for account_id in _unique(line.account_id for line in lines):
        account = accounts.get(account_id)
        if account is None or account.currency is None:
            continue
        if account.currency.upper() not in allowed:
            mismatches.append({"id": account.id, "code": account.code, "currency": account.currency})
    if mismatches:
        return reject(
            ErrorCode.CURRENCY_MISMATCH,
            "Account currency does not match posting currency: "
            + ", ".join(f"{m['code']} ({m['currency']})" for m in mismatches),
            mismatches=mismatches,
            allowed_currencies=sorted(allowed),
        )
    return None


def normal_balance_warnings(
    lines: Iterable[JournalLine],
    accounts: Mapping[str, Account],
) -> tuple[CoaWarning, ...]:
    warnings: list[CoaWarning] = []
    for line in lines:
        account = accounts.get(line.account_id)
        side = line.side
        if account is None or side is None or side is account.normal_balance:
            continue
        warnings.append(
            CoaWarning(
                account_id=account.id,
                account_code=account.code,
                message=(
                    f"Account {account.code} ({account.name}) normally has "
                    f"{account.normal_balance.value} balance"
                ),
            )
        )
    return tuple(warnings)
