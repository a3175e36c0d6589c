"""
services/notifications/email_provider.py
----------------------------------------
Email delivery over SMTP.

Credentials:
    smtp_server, smtp_port (default 587), username, password,
    optional ``to`` (defaults to the username).

Port 465 uses implicit TLS; any other port upgrades with STARTTLS.
"""

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from config import PROVIDER_TIMEOUT_SECONDS
from exceptions import ValidationError
from models.notification import Message


def build_message(credentials: dict, message: Message) -> MIMEMultipart:
    sender = credentials.get("username")
    msg = MIMEMultipart("alternative")
    msg["From"] = sender
    msg["To"] = credentials.get("to") or sender
    msg["Subject"] = message.subject
    msg.attach(MIMEText(message.body, "plain"))
    return msg


def send(credentials: dict, message: Message, timeout: float = PROVIDER_TIMEOUT_SECONDS) -> None:
    smtp_server = credentials.get("smtp_server")
    username = credentials.get("username")
    if not smtp_server or not username:
        raise ValidationError("Email configuration incomplete: smtp_server and username are required")
    smtp_port = int(credentials.get("smtp_port") or 587)

    if smtp_port == 465:
        server = smtplib.SMTP_SSL(smtp_server, smtp_port, timeout=timeout)
    else:
        server = smtplib.SMTP(smtp_server, smtp_port, timeout=timeout)
    with server:
        if smtp_port != 465:
            server.starttls()
        if credentials.get("password"):
            server.login(username, credentials["password"])
        server.send_message(build_message(credentials, message))
