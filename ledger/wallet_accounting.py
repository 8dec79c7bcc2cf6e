from decimal import Decimal, InvalidOperation
import logging
from typing import Optional

from models import Wallet, Transaction, TransactionType, WalletType, ZERO
from ledger.exceptions import InsufficientFunds, InvalidAmount, WalletMissing


logger = logging.getLogger(__name__)

_SUB_BALANCE_COLUMN = {
    WalletType.BALANCE: "balance",
    WalletType.REFERRAL: "referral_balance",
}


def to_decimal(value, field_name: str = "amount") -> Decimal:
    """Exact conversion; floats go through str() so 0.1 stays 0.1. NaN and Infinity are rejected."""
    if value is None:
        raise InvalidAmount(f"{field_name} cannot be None")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidAmount(f"Invalid {field_name}: {value!r}")
    if not result.is_finite():
        raise InvalidAmount(f"Invalid {field_name}: {value!r}")
    return result


def to_cents(value, field_name: str = "amount") -> Decimal:
    """Like to_decimal, but refuses more than two decimal places instead of rounding them away."""
    result = to_decimal(value, field_name)
    if result.as_tuple().exponent < -2:
        raise InvalidAmount(f"{field_name} must have at most 2 decimal places, got {value!r}")
    return result


def _as_enum(enum_cls, value):
    return value if isinstance(value, enum_cls) else enum_cls(value)


def resolve_wallet_type(txn_type, wallet_type=None) -> WalletType:
    """Commission money lives in referral_balance; everything else in balance."""
    if wallet_type is not None:
        return _as_enum(WalletType, wallet_type)
    if _as_enum(TransactionType, txn_type) == TransactionType.REFERRAL_BONUS:
        return WalletType.REFERRAL
    return WalletType.BALANCE


class WalletAccounting:
    """
    Primitive wallet mutations. Each call locks the wallet row, moves one
    sub-balance and appends exactly one Transaction. Nothing is committed
    here: the caller owns the transaction scope.
    """

    def __init__(self, session):
        self.session = session

    def lock_wallet(self, wallet_id: int) -> Wallet:
        wallet = (
            self.session.query(Wallet)
            .filter(Wallet.id == wallet_id)
            .with_for_update()
            .first()
        )
        if not wallet:
            raise WalletMissing(f"Wallet {wallet_id} not found")
        return wallet

    def lock_wallet_for_user(self, user_id: int) -> Wallet:
        wallet = (
            self.session.query(Wallet)
            .filter(Wallet.user_id == user_id)
            .with_for_update()
            .first()
        )
        if not wallet:
            raise WalletMissing(f"User {user_id} has no wallet")
        return wallet

    def credit(self, wallet_id: int, amount, txn_type, description: str,
               wallet_type=None) -> Transaction:
        return self._apply(wallet_id, amount, txn_type, description, wallet_type, sign=1)

    def debit(self, wallet_id: int, amount, txn_type, description: str,
              wallet_type=None) -> Transaction:
        return self._apply(wallet_id, amount, txn_type, description, wallet_type, sign=-1)

    def _apply(self, wallet_id, amount, txn_type, description, wallet_type, sign) -> Transaction:
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise InvalidAmount(f"Amount must be positive, got {amount}")

        txn_type = _as_enum(TransactionType, txn_type)
        target = resolve_wallet_type(txn_type, wallet_type)
        column = _SUB_BALANCE_COLUMN[target]

        wallet = self.lock_wallet(wallet_id)
        current = Decimal(getattr(wallet, column) or ZERO)

        if sign < 0 and amount > current:
            raise InsufficientFunds(amount, current, target.value)

        setattr(wallet, column, current + sign * amount)

        transaction = Transaction(
            wallet_id=wallet.id,
            amount=sign * amount,
            type=txn_type.value,
            wallet_type=target.value,
            description=description,
        )
        self.session.add(transaction)
        self.session.flush()

        logger.info(
            f"Wallet {wallet.id} {'credit' if sign > 0 else 'debit'} {amount} "
            f"({txn_type.value}/{target.value}), new {column}: {getattr(wallet, column)}"
        )
        return transaction

    def available(self, wallet_id: int, wallet_type: Optional[WalletType] = None) -> Decimal:
        wallet = self.session.get(Wallet, wallet_id)
        if not wallet:
            raise WalletMissing(f"Wallet {wallet_id} not found")
        if wallet_type is None:
            return wallet.total
        return Decimal(getattr(wallet, _SUB_BALANCE_COLUMN[_as_enum(WalletType, wallet_type)]) or ZERO)
