import io
import base64
import logging
from dataclasses import dataclass

import pyotp
import qrcode

logger = logging.getLogger(__name__)


@dataclass
class Enrollment:
    secret: str
    otpauth_uri: str


class MFAManager:
    def __init__(self, issuer_name: str = "Freelancer-App", valid_window: int = 1):
        self.issuer_name = issuer_name
        # number of adjacent 30s steps accepted on either side of now
        self.valid_window = valid_window

    @staticmethod
    def generate_secret_base32() -> str:
        """Generate a new TOTP secret"""
        return pyotp.random_base32()

    def generate_secret(self, label: str) -> Enrollment:
        """New base32 secret plus the otpauth:// URI authenticator apps scan"""
        secret = self.generate_secret_base32()
        uri = pyotp.totp.TOTP(secret).provisioning_uri(
            name=label,
            issuer_name=self.issuer_name
        )
        return Enrollment(secret=secret, otpauth_uri=uri)

    def generate_qr_code(self, otpauth_uri: str) -> str:
        """Generate a QR code for the enrollment URI as a PNG data URL"""
        qr = qrcode.QRCode(version=1, box_size=10, border=5)
        qr.add_data(otpauth_uri)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        # Convert to base64 string
        buffer = io.BytesIO()
        img.save(buffer, format='PNG')
        buffer.seek(0)

        return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()

    def verify_totp(self, secret: str, token: str, for_time=None) -> bool:
        """Verify a 6-digit TOTP code against a base32 secret"""
        if not secret or not token:
            return False

        token = token.strip().replace(" ", "")
        if len(token) != 6 or not token.isdigit():
            return False

        try:
            totp = pyotp.TOTP(secret)
            return totp.verify(token, for_time=for_time, valid_window=self.valid_window)
        except (TypeError, ValueError) as e:
            # malformed stored secret (bad base32 padding/alphabet)
            logger.error("TOTP verification failed on malformed secret: %s", e)
            return False
