# ==========================================================
#                  LEDGER EXCEPTIONS
# ==========================================================

class LedgerError(Exception):
    """Base ledger exception"""
    status_code = 400


class InsufficientFunds(LedgerError):
    def __init__(self, required, available, wallet_type=None):
        self.required = required
        self.available = available
        self.wallet_type = wallet_type
        target = f" in {wallet_type}" if wallet_type else ""
        super().__init__(f"Insufficient funds{target}. Required: {required}, Available: {available}")


class InvalidAmount(LedgerError):
    pass


class PlanNotFound(LedgerError):
    status_code = 404


class WalletMissing(LedgerError):
    status_code = 409


class UserNotFound(LedgerError):
    status_code = 404


class WithdrawalNotFound(LedgerError):
    status_code = 404


class WithdrawalAlreadyProcessed(LedgerError):
    status_code = 409


class DepositError(LedgerError):
    pass
