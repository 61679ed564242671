"""
Notification gateway for transactional email.

Callers enqueue messages on a `NotificationDispatcher`; a single background
worker delivers them through the configured `MailGateway`, retrying with
exponential backoff. Delivery outcome never reaches the request that caused
the message, so a mail outage cannot undo a ledger write.
"""

import asyncio
import html
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from email.message import EmailMessage

import httpx

from app.config import Settings
from app.utils.logger import setup_logger

logger = setup_logger("notification_service")

TASK_INSTRUCTIONS = ("No use of AI", "300 words strictly", "APA7 format")


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html: str


class MailGateway(ABC):
    """Sends one email. Raises on failure."""

    @abstractmethod
    async def send(self, message: OutgoingEmail) -> None:
        pass

    async def close(self) -> None:
        pass


class LogMailGateway(MailGateway):
    """Writes messages to the log instead of sending them."""

    async def send(self, message: OutgoingEmail) -> None:
        logger.info(f"[mail] to={message.to} subject={message.subject!r}")
        logger.debug(f"[mail] body={message.html}")


class SmtpMailGateway(MailGateway):
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.timeout = timeout

    def _send_sync(self, message: OutgoingEmail) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(message.html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

    async def send(self, message: OutgoingEmail) -> None:
        await asyncio.to_thread(self._send_sync, message)


class HttpMailGateway(MailGateway):
    """Posts messages as JSON to a transactional mail API."""

    def __init__(
        self,
        api_url: str,
        sender: str,
        api_key: str | None = None,
        request_timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_url = api_url
        self.sender = sender
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = http_client or httpx.AsyncClient(
            timeout=request_timeout, headers=headers
        )

    async def send(self, message: OutgoingEmail) -> None:
        response = await self._client.post(
            self.api_url,
            json={
                "from": self.sender,
                "to": [message.to],
                "subject": message.subject,
                "html": message.html,
            },
        )
        response.raise_for_status()

    async def close(self) -> None:
        await self._client.aclose()


def create_mail_gateway(settings: Settings) -> MailGateway:
    if settings.notification_backend == "smtp":
        return SmtpMailGateway(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.email_from,
            username=settings.smtp_user,
            password=settings.smtp_password,
            timeout=settings.smtp_timeout,
        )
    if settings.notification_backend == "http":
        if not settings.mail_api_url:
            raise ValueError("MAIL_API_URL is required for the http mail backend")
        return HttpMailGateway(
            api_url=settings.mail_api_url,
            sender=settings.email_from,
            api_key=settings.mail_api_key,
        )
    return LogMailGateway()


class NotificationDispatcher:
    """
    In-process queue of outgoing email with one delivery worker.

    Each message is attempted up to ``max_attempts`` times. A message that
    still fails is logged and dropped.
    """

    def __init__(
        self,
        gateway: MailGateway,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        max_queue_size: int = 1000,
    ):
        self.gateway = gateway
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self._queue: asyncio.Queue[OutgoingEmail] = asyncio.Queue(max_queue_size)
        self._worker: asyncio.Task | None = None

    def enqueue(self, message: OutgoingEmail) -> bool:
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.error(
                f"Notification queue full, dropping '{message.subject}' for {message.to}"
            )
            return False
        logger.debug(f"Queued '{message.subject}' for {message.to}")
        return True

    async def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="notification-worker")
            logger.info("Notification dispatcher started.")

    async def drain(self) -> None:
        """Wait until every queued message has been handled."""
        await self._queue.join()

    async def stop(self, timeout: float = 10.0) -> None:
        if self._worker is not None:
            try:
                await asyncio.wait_for(self.drain(), timeout=timeout)
            except TimeoutError:
                logger.warning(
                    f"Notification queue not drained after {timeout}s; {self._queue.qsize()} messages dropped"
                )
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        await self.gateway.close()
        logger.info("Notification dispatcher stopped.")

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self._deliver(message)
            finally:
                self._queue.task_done()

    async def _deliver(self, message: OutgoingEmail) -> bool:
        delay = self.retry_delay
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self.gateway.send(message)
                logger.info(f"Sent '{message.subject}' to {message.to}")
                return True
            except Exception as e:
                if attempt == self.max_attempts:
                    logger.error(
                        f"Giving up on '{message.subject}' for {message.to} after {attempt} attempts: {e}",
                        exc_info=True,
                    )
                    return False
                logger.warning(
                    f"Sending '{message.subject}' to {message.to} failed (attempt {attempt}/{self.max_attempts}): {e}. Retrying in {delay}s"
                )
                await asyncio.sleep(delay)
                delay *= 2
        return False


def login_link_email(name: str, email: str, verify_url: str, ttl_minutes: int) -> OutgoingEmail:
    url = html.escape(verify_url, quote=True)
    return OutgoingEmail(
        to=email,
        subject="WritersInn Login Verification",
        html=(
            f"<p>Hello {html.escape(name)},</p>"
            "<p>Click the link to login:</p>"
            f'<a href="{url}">{url}</a>'
            f"<p>Expires in {ttl_minutes} minutes.</p>"
        ),
    )


def task_assigned_email(name: str, email: str, title: str, description: str) -> OutgoingEmail:
    instructions = "".join(f"<li>{item}</li>" for item in TASK_INSTRUCTIONS)
    return OutgoingEmail(
        to=email,
        subject=f"New Task Assigned: {title}",
        html=(
            f"<p>Hello {html.escape(name)},</p>"
            "<p>Your task has been assigned successfully.</p>"
            f"<strong>{html.escape(title)}</strong><br/>"
            f"{html.escape(description)}<br/>"
            "<p><strong>Instructions:</strong></p>"
            f"<ul>{instructions}</ul>"
        ),
    )


def submission_received_email(
    name: str, email: str, title: str, price: Decimal, balance: Decimal
) -> OutgoingEmail:
    return OutgoingEmail(
        to=email,
        subject="Task Submission Received",
        html=(
            f"<p>Hello {html.escape(name)},</p>"
            f"<p>Your submission for <strong>{html.escape(title)}</strong> has been received.</p>"
            f"<p>Amount ${price:.2f} added to balance. New balance: ${balance:.2f}.</p>"
        ),
    )
