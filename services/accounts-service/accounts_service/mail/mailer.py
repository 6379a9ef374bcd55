"""SMTP mailer rendering Jinja2 templates shipped with the service.

Each template name resolves to three files in ``templates/``:
``<name>_subject.txt``, ``<name>_body.txt`` and ``<name>_body.html``.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from ..config import Settings

log = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"


class MailDeliveryError(Exception):
    """Rendering or SMTP delivery of a message failed."""


class Mailer:
    """Sends templated email through a single SMTP relay."""

    def __init__(self, settings: Settings, templates_path: str | Path | None = None) -> None:
        self._settings = settings
        self._env = Environment(
            loader=FileSystemLoader(str(templates_path or TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
            keep_trailing_newline=False,
        )

    def render(self, template: str, data: dict[str, Any]) -> tuple[str, str, str]:
        """Return ``(subject, plain_body, html_body)`` for ``template``."""
        subject = self._env.get_template(f"{template}_subject.txt").render(**data).strip()
        plain = self._env.get_template(f"{template}_body.txt").render(**data)
        html = self._env.get_template(f"{template}_body.html").render(**data)
        return subject, plain, html

    def send(self, recipient: str, template: str, data: dict[str, Any]) -> None:
        """Render ``template`` with ``data`` and deliver it to ``recipient``.

        Raises
        ------
        MailDeliveryError
            If the template cannot be rendered or the SMTP exchange fails.
        """
        try:
            subject, plain, html = self.render(template, data)
        except TemplateError as exc:
            raise MailDeliveryError(f"failed to render template '{template}'") from exc

        msg = MIMEMultipart("alternative")
        msg["From"] = self._settings.smtp_sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.attach(MIMEText(plain, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))

        smtp = self._settings
        try:
            with smtplib.SMTP(smtp.smtp_host, smtp.smtp_port, timeout=smtp.smtp_timeout_seconds) as server:
                server.ehlo()
                if smtp.smtp_use_tls:
                    server.starttls()
                    server.ehlo()
                if smtp.smtp_username:
                    server.login(smtp.smtp_username, smtp.smtp_password)
                server.sendmail(smtp.smtp_sender, [recipient], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise MailDeliveryError(f"failed to deliver '{template}' to {recipient}") from exc

        log.info("sent '%s' email to %s", template, recipient)
