"""Message transports for reminder delivery."""
from reminder_sync.notify.transport import DryRunTransport, SendGridTransport, SmtpTransport, build_transport

__all__ = ["DryRunTransport", "SendGridTransport", "SmtpTransport", "build_transport"]
