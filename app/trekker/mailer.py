from __future__ import annotations

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape


class MailError(RuntimeError):
    pass


class MailNotConfigured(MailError):
    pass


@dataclass(frozen=True)
class SmtpMailer:
    host: str
    port: int
    user: str
    password: str
    sender: str
    timeout_seconds: int = 30

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    def send(self, *, to: str, subject: str, text: str, html: str | None = None) -> None:
        if not self.configured:
            raise MailNotConfigured("SMTP not configured. Set SMTP_HOST, SMTP_USER, SMTP_PASS.")
        msg = EmailMessage()
        msg["From"] = self.sender or self.user
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")
        try:
            if self.port == 465:
                with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout_seconds) as smtp:
                    smtp.login(self.user, self.password)
                    smtp.send_message(msg)
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as smtp:
                    smtp.starttls()
                    smtp.login(self.user, self.password)
                    smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailError(f"Failed to send email: {e}") from e


def mailer_from_config(config: dict) -> SmtpMailer:
    return SmtpMailer(
        host=(config.get("SMTP_HOST") or "").strip(),
        port=int(config.get("SMTP_PORT") or 587),
        user=(config.get("SMTP_USER") or "").strip(),
        password=config.get("SMTP_PASS") or "",
        sender=(config.get("SMTP_FROM") or "").strip(),
    )


def render_pdf_link_email(*, full_name: str, pdf_url: str, package_name: str | None, site_name: str) -> tuple[str, str, str]:
    """(subject, text, html) for the package document email."""
    label = f" for {package_name}" if package_name else ""
    subject = f"Your Package Document{label} - {site_name}"
    text = f"Hi {full_name},\n\nHere is your package document link: {pdf_url}\n\n- {site_name}"
    url = escape(pdf_url, quote=True)
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #0d5a6f;">Your Package Document{escape(label)}</h2>'
        f"<p>Hi {escape(full_name)},</p>"
        "<p>Thank you for your interest! As requested, here is the link to download the package PDF document:</p>"
        f'<p style="margin: 24px 0;"><a href="{url}" style="display: inline-block; padding: 12px 24px; '
        'background: #0d5a6f; color: #fff; text-decoration: none; border-radius: 8px; font-weight: 600;">'
        "Download PDF Document</a></p>"
        f'<p style="color: #6b7280; font-size: 14px;">Or copy this link: {url}</p>'
        '<hr style="border: none; border-top: 1px solid #e5e7eb; margin: 24px 0;" />'
        f'<p style="color: #9ca3af; font-size: 12px;">{escape(site_name)} - Your adventure awaits!</p>'
        "</div>"
    )
    return subject, text, html
