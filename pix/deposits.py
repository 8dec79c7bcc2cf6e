import uuid
from decimal import Decimal, InvalidOperation
from typing import List, Dict, Optional, Tuple

from models import DepositStatus, PixDeposit, TransactionType, User, WalletType, utcnow
from ledger.exceptions import DepositError, InvalidAmount, UserNotFound
from ledger.wallet_accounting import WalletAccounting, to_cents
from logger import payments_logger as logger


def generate_txid() -> str:
    """32 alphanumeric characters, inside the 26-35 range the provider accepts."""
    return uuid.uuid4().hex


def parse_webhook_payload(data) -> List[Dict[str, Optional[str]]]:
    """
    Normalise a Pix notification into a list of {txid, amount, end_to_end_id}.

    Accepts the provider shape {"pix": [{"txid", "valor", "endToEndId"}, ...]}
    and a flat {"txid", "amount"} body. Entries without a txid are dropped.
    """
    if not isinstance(data, dict):
        return []

    entries = data.get("pix")
    if not isinstance(entries, list):
        entries = [data]

    notifications = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("txid"):
            continue
        notifications.append({
            "txid": str(entry["txid"]),
            "amount": entry.get("valor", entry.get("amount")),
            "end_to_end_id": entry.get("endToEndId") or entry.get("end_to_end_id"),
        })
    return notifications


class DepositService:

    def __init__(self, session, pix_client, accounting: WalletAccounting = None,
                 min_amount=Decimal("10.00")):
        self.session = session
        self.pix_client = pix_client
        self.accounting = accounting or WalletAccounting(session)
        self.min_amount = Decimal(str(min_amount))

    def create_deposit(self, user_id: int, amount) -> PixDeposit:
        amount = to_cents(amount)
        if amount < self.min_amount:
            raise InvalidAmount(f"Valor mínimo para depósito é R$ {self.min_amount}")

        user = self.session.get(User, user_id)
        if not user:
            raise UserNotFound(f"User {user_id} not found")
        if not user.cpf:
            raise DepositError("CPF é obrigatório para depósitos via Pix")

        txid = generate_txid()
        charge = self.pix_client.create_immediate_charge(txid, amount, user.cpf, user.name)
        location_id = (charge.get("loc") or {}).get("id")
        if location_id is None:
            raise DepositError("Resposta do provedor sem location id")
        qr = self.pix_client.generate_qr_code(location_id)

        deposit = PixDeposit(
            user_id=user.id,
            amount=amount,
            txid=txid,
            status=DepositStatus.PENDING.value,
            location_id=str(location_id),
            qr_code=qr.get("qrcode"),
            qr_code_image=qr.get("imagemQrcode"),
        )
        try:
            self.session.add(deposit)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Pix deposit {txid} created for user {user.id}: {amount}")
        return deposit

    def confirm(self, txid: str, amount=None, end_to_end_id: str = None) -> Tuple[bool, str]:
        """
        Credit a paid deposit exactly once. Unknown or already completed txids
        are a no-op, so replayed notifications are harmless.
        """
        try:
            deposit = (
                self.session.query(PixDeposit)
                .filter(PixDeposit.txid == txid)
                .with_for_update()
                .first()
            )
            if not deposit:
                self.session.rollback()
                logger.warning(f"Pix notification for unknown txid {txid}")
                return False, "unknown txid"

            if deposit.status != DepositStatus.PENDING.value:
                self.session.rollback()
                logger.info(f"Pix deposit {txid} already {deposit.status}, ignoring duplicate")
                return False, "already processed"

            stored = Decimal(deposit.amount)
            if amount is not None:
                try:
                    notified = Decimal(str(amount))
                except (InvalidOperation, ValueError):
                    notified = None
                if notified != stored:
                    logger.warning(f"Pix deposit {txid}: notified amount {amount} differs from stored {stored}")

            wallet = self.accounting.lock_wallet_for_user(deposit.user_id)
            self.accounting.credit(
                wallet.id,
                stored,
                TransactionType.DEPOSIT,
                f"Depósito Pix {txid}",
                wallet_type=WalletType.BALANCE,
            )
            deposit.status = DepositStatus.COMPLETED.value
            deposit.end_to_end_id = end_to_end_id
            deposit.completed_at = utcnow()
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Pix deposit {txid} confirmed: {stored} credited to user {deposit.user_id}")
        return True, "credited"

    def get_for_user(self, user_id: int, txid: str) -> Optional[PixDeposit]:
        return self.session.query(PixDeposit).filter_by(user_id=user_id, txid=txid).first()
