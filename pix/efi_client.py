#======================================================================================================
#
#   EFÍ (GERENCIANET) PIX API CLIENT
#
#======================================================================================================
import base64
import re
import time
from decimal import Decimal, ROUND_HALF_UP

import requests

from logger import payments_logger as logger


SANDBOX_BASE_URL = "https://api-pix-h.gerencianet.com.br"
PRODUCTION_BASE_URL = "https://api-pix.gerencianet.com.br"

# refresh this many seconds before the provider's expiry
TOKEN_SAFETY_MARGIN_SECONDS = 60

PKCS12_SUFFIXES = (".p12", ".pfx")


class PixProviderError(Exception):
    """Raised when the Pix provider cannot be reached or answers with an error."""
    status_code = 502


def format_amount(amount) -> str:
    return str(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def only_digits(value) -> str:
    return re.sub(r"\D", "", value or "")


class EfiPixClient:

    def __init__(self, client_id, client_secret, certificate_path=None, pix_key=None,
                 sandbox=True, timeout=60, charge_expiration=3600):
        self.client_id = client_id
        self.client_secret = client_secret
        self.certificate_path = certificate_path
        self.pix_key = pix_key
        self.base_url = SANDBOX_BASE_URL if sandbox else PRODUCTION_BASE_URL
        self.timeout = timeout
        self.charge_expiration = charge_expiration

        self._access_token = None
        self._token_expires_at = 0.0

    @classmethod
    def from_config(cls, config):
        return cls(
            client_id=config.get("EFI_CLIENT_ID"),
            client_secret=config.get("EFI_CLIENT_SECRET"),
            certificate_path=config.get("EFI_CERTIFICATE_PATH"),
            pix_key=config.get("PIX_KEY"),
            sandbox=config.get("EFI_SANDBOX", True),
            timeout=config.get("REQUEST_TIMEOUT_SECONDS", 60),
            charge_expiration=config.get("PIX_CHARGE_EXPIRATION_SECONDS", 3600),
        )

    # =========================
    # AUTH
    # =========================
    def get_access_token(self) -> str:
        if self._access_token and time.time() < self._token_expires_at:
            return self._access_token

        if not self.client_id or not self.client_secret:
            raise PixProviderError("Efí credentials are not configured")
        if self.certificate_path and self.certificate_path.lower().endswith(PKCS12_SUFFIXES):
            raise PixProviderError(
                "EFI_CERTIFICATE_PATH must point to a PEM file; "
                "convert the .p12 with `openssl pkcs12 -in cert.p12 -out cert.pem -nodes`"
            )

        credentials = base64.b64encode(f"{self.client_id}:{self.client_secret}".encode()).decode()
        headers = {
            "Authorization": f"Basic {credentials}",
            "Content-Type": "application/json",
        }

        try:
            resp = requests.post(
                f"{self.base_url}/oauth/token",
                json={"grant_type": "client_credentials"},
                headers=headers,
                cert=self.certificate_path,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            logger.error(f"Efí token request failed: {e}")
            raise PixProviderError("Falha ao autenticar com o provedor de pagamento") from e

        self._access_token = data["access_token"]
        self._token_expires_at = time.time() + int(data.get("expires_in", 3600)) - TOKEN_SAFETY_MARGIN_SECONDS
        return self._access_token

    def _headers(self):
        return {
            "Authorization": f"Bearer {self.get_access_token()}",
            "Content-Type": "application/json",
        }

    # =========================
    # CHARGES
    # =========================
    def create_immediate_charge(self, txid: str, amount, cpf: str, name: str) -> dict:
        """PUT /v2/cob/{txid}; returns the provider's charge, including `loc.id`."""
        if not self.pix_key:
            raise PixProviderError("Pix key is not configured")

        body = {
            "calendario": {"expiracao": self.charge_expiration},
            "devedor": {"cpf": only_digits(cpf), "nome": name},
            "valor": {"original": format_amount(amount)},
            "chave": self.pix_key,
            "solicitacaoPagador": "Depósito em plataforma",
        }

        try:
            resp = requests.put(
                f"{self.base_url}/v2/cob/{txid}",
                json=body,
                headers=self._headers(),
                cert=self.certificate_path,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            charge = resp.json()
        except requests.HTTPError as e:
            logger.error(f"Efí charge {txid} rejected: {e.response.text if e.response is not None else e}")
            raise PixProviderError("Não foi possível criar a cobrança Pix") from e
        except requests.RequestException as e:
            logger.error(f"Efí charge {txid} request failed: {e}")
            raise PixProviderError("Não foi possível criar a cobrança Pix") from e

        logger.info(f"Pix charge {txid} created for {format_amount(amount)}")
        return charge

    def generate_qr_code(self, location_id) -> dict:
        """GET /v2/loc/{id}/qrcode; returns `qrcode` (copy-and-paste) and `imagemQrcode`."""
        try:
            resp = requests.get(
                f"{self.base_url}/v2/loc/{location_id}/qrcode",
                headers=self._headers(),
                cert=self.certificate_path,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            logger.error(f"Efí QR code for location {location_id} failed: {e}")
            raise PixProviderError("Não foi possível gerar o QR Code Pix") from e
