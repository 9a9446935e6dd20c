"""Tests for the SMTP email service."""
import smtplib

from storefront.config.settings import Settings
from storefront.models.models import Order, OrderItem
from storefront.services import email_service
from storefront.services.email_service import EmailService, format_address, format_money
from storefront.utils.retry import RetryConfig


class FakeSMTP:
    """Records what the service does with an SMTP connection."""

    instances = []
    failures = []

    def __init__(self, host, port, timeout=None):
        if FakeSMTP.failures:
            raise FakeSMTP.failures.pop(0)
        self.host = host
        self.port = port
        self.calls = []
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def send_message(self, message):
        self.sent.append(message)


def sample_order(status="pending", discount=0.0, tracking_number=None):
    order = Order(
        id="order-1",
        order_number="ORD-1700000000000-ABCDEFGHI",
        subtotal=1000.0,
        tax_amount=180.0,
        shipping_amount=100.0,
        discount_amount=discount,
        total_amount=1280.0 - discount,
        status=status,
        tracking_number=tracking_number,
        shipping_address={"full_name": "Asha Rao", "city": "Bengaluru", "state": "Karnataka", "postal_code": "560001"},
    )
    order.items = [
        OrderItem(quantity=2, unit_price=500.0, total_price=1000.0, product_snapshot={"name": "Royal Oud"}),
    ]
    return order


class TestFormatting:
    def test_format_money(self):
        """Test INR amounts get the rupee sign and grouping."""
        assert format_money(1234.5) == "₹1,234.50"
        assert format_money(None) == "₹0.00"
        assert format_money(10, "USD") == "USD 10.00"

    def test_format_address(self):
        """Test empty parts are dropped."""
        lines = format_address({"full_name": "Asha", "city": "Pune", "postal_code": "411001", "country": "IN"})
        assert lines == ["Asha", "Pune, 411001", "IN"]
        assert format_address(None) == []


class TestEmailService:
    def setup_method(self):
        FakeSMTP.instances = []
        FakeSMTP.failures = []
        self.config = Settings(smtp_host="smtp.test", smtp_port=2525, smtp_user="mailer", smtp_password="pw")
        self.service = EmailService(self.config, smtp_factory=FakeSMTP)

    def test_disabled_without_host(self):
        """Test nothing is sent when SMTP is not configured."""
        service = EmailService(Settings(smtp_host=""), smtp_factory=FakeSMTP)
        assert service.send_email("a@example.com", "Hi", "Body") is False
        assert FakeSMTP.instances == []

    def test_missing_recipient(self):
        """Test empty recipients are skipped."""
        assert self.service.send_email("", "Hi", "Body") is False

    def test_send_email(self):
        """Test TLS, login and message headers."""
        assert self.service.send_email("a@example.com", "Hello", "Body text") is True

        smtp = FakeSMTP.instances[0]
        assert (smtp.host, smtp.port) == ("smtp.test", 2525)
        assert smtp.calls == ["starttls", ("login", "mailer", "pw")]
        message = smtp.sent[0]
        assert message["To"] == "a@example.com"
        assert message["Subject"] == "Hello"
        assert "orders@storefront.local" in message["From"]

    def test_transient_failure_retried(self, monkeypatch):
        """Test a dropped connection is retried."""
        monkeypatch.setattr(
            email_service,
            "SMTP_RETRY",
            RetryConfig(max_attempts=2, initial_delay=0, retry_on=(smtplib.SMTPServerDisconnected,)),
        )
        FakeSMTP.failures = [smtplib.SMTPServerDisconnected("gone")]

        assert self.service.send_email("a@example.com", "Hello", "Body") is True
        assert len(FakeSMTP.instances) == 1

    def test_failure_returns_false(self, monkeypatch):
        """Test persistent failures are reported as False, not raised."""
        monkeypatch.setattr(
            email_service,
            "SMTP_RETRY",
            RetryConfig(max_attempts=1, initial_delay=0, retry_on=(smtplib.SMTPServerDisconnected,)),
        )
        FakeSMTP.failures = [smtplib.SMTPServerDisconnected("gone")]
        assert self.service.send_email("a@example.com", "Hello", "Body") is False

    def test_order_confirmation(self):
        """Test the confirmation subject and summary."""
        assert self.service.send_order_confirmation(sample_order(discount=80), "a@example.com", "Asha") is True

        message = FakeSMTP.instances[0].sent[0]
        body = message.get_content()
        assert message["Subject"] == "Order Confirmation - ORD-1700000000000-ABCDEFGHI"
        assert "Hi Asha," in body
        assert "Royal Oud x 2" in body
        assert "Discount: -₹80.00" in body
        assert "Total: ₹1,200.00" in body
        assert "Bengaluru, Karnataka, 560001" in body

    def test_shipped_subject(self):
        """Test shipped orders get their own subject and tracking line."""
        self.service.send_status_update(sample_order("shipped", tracking_number="AWB9"), "a@example.com")

        message = FakeSMTP.instances[0].sent[0]
        assert message["Subject"] == "Your Order ORD-1700000000000-ABCDEFGHI Has Shipped!"
        assert "Tracking number: AWB9" in message.get_content()
        assert "Hi there," in message.get_content()

    def test_status_subject(self):
        """Test other statuses use the generic subject and message."""
        self.service.send_status_update(sample_order("delivered"), "a@example.com")

        message = FakeSMTP.instances[0].sent[0]
        assert message["Subject"] == "Order ORD-1700000000000-ABCDEFGHI - Delivered"
        assert "Your order has been delivered." in message.get_content()
