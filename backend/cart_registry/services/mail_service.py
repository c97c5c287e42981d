# Overview: Confirmation mail for completed registrations; failures are logged, never raised.

from __future__ import annotations

import html
import logging
import mimetypes
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from pathlib import Path

from ..config import RegistrySettings
from ..models import Registration
from .catalogue import image_file_for
from cart_registry.time_utils import to_iso_date, utctoday


logger = logging.getLogger(__name__)

SUBJECT = "Conferma registrazione garanzia Stewart Golf"


class MailDispatcher:
    """
    Sends the warranty confirmation after a registration commits.

    Never part of a transaction: routes call it once the store has
    committed, and a mail failure cannot undo or fail the registration.
    """

    def __init__(self, settings: RegistrySettings, *, smtp_factory=smtplib.SMTP_SSL):
        self.settings = settings
        self._smtp_factory = smtp_factory

    @property
    def enabled(self) -> bool:
        return bool(self.settings.email_host and self.settings.email_user)

    def _local_image(self, image_file: str) -> Path | None:
        path = Path(self.settings.email_assets_dir) / image_file
        return path if path.is_file() else None

    def build_message(self, registration: Registration) -> EmailMessage | None:
        image_file = image_file_for(registration.model)
        if image_file is None:
            logger.error("Unknown cart model %r; confirmation not sent", registration.model)
            return None

        local_image = self._local_image(image_file)
        image_cid = make_msgid(domain="cart-registry")
        if local_image is not None:
            img_src = f"cid:{image_cid[1:-1]}"
        else:
            base = self.settings.base_image_url.rstrip("/")
            img_src = f"{base}/{image_file}"

        e = html.escape
        purchase = to_iso_date(registration.purchase_date or registration.coverage_start)
        body = f"""
    <div style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: auto;">
      <h2 style="color: #007c4f;">Garanzia registrata con successo</h2>
      <p>Gentile <strong>{e(registration.customer_name)}</strong>,</p>
      <p>Grazie per aver registrato il tuo carrello <strong>{e(registration.model)}</strong>. Ecco i dettagli:</p>
      <ul style="line-height:1.6;">
        <li><strong>Modello:</strong> {e(registration.model)}</li>
        <li><strong>Serial Number:</strong> {e(registration.serial)}</li>
        <li><strong>Luogo di acquisto:</strong> {e(registration.location)}</li>
        <li><strong>Data di acquisto:</strong> {e(purchase or "")}</li>
        <li><strong>Email registrata:</strong> {e(registration.customer_email)}</li>
        <li><strong>Data registrazione:</strong> {utctoday().isoformat()}</li>
        <li><strong>Garanzia valida fino al:</strong> {to_iso_date(registration.coverage_end)}</li>
      </ul>
      <p>Per qualsiasi informazione puoi scriverci a <a href="mailto:{e(self.settings.email_user)}">{e(self.settings.email_user)}</a>.</p>
      <img src="{e(img_src)}" alt="Carrello Stewart" style="max-width:100%;border-radius:8px;margin-top:20px;">
    </div>
"""

        msg = EmailMessage()
        msg["Subject"] = SUBJECT
        msg["From"] = formataddr((self.settings.email_sender_name, self.settings.email_user))
        msg["To"] = registration.customer_email
        msg.set_content("Garanzia registrata con successo.")
        msg.add_alternative(body, subtype="html")

        if local_image is not None:
            ctype, _ = mimetypes.guess_type(local_image.name)
            maintype, subtype = (ctype or "image/jpeg").split("/", 1)
            msg.get_payload()[1].add_related(
                local_image.read_bytes(),
                maintype=maintype,
                subtype=subtype,
                cid=image_cid,
                filename=local_image.name,
            )
        return msg

    def send_confirmation(self, registration: Registration) -> bool:
        """Render and send; True when handed to the SMTP server."""
        if not self.enabled:
            return False

        try:
            msg = self.build_message(registration)
            if msg is None:
                return False
            context = ssl.create_default_context()
            with self._smtp_factory(self.settings.email_host, self.settings.email_port, context=context) as smtp:
                smtp.login(self.settings.email_user, self.settings.email_pass)
                smtp.send_message(msg)
        except Exception:
            logger.exception("Failed to send confirmation for registration %s", registration.id)
            return False

        logger.info("Confirmation sent for registration %s", registration.id)
        return True
