from abc import ABC, abstractmethod
from email.message import EmailMessage


class AbstractMailTransport(ABC):
	"""Interface for transports that hand a finished message to a mail server."""

	@abstractmethod
	def send(self, message: EmailMessage) -> None:
		"""Deliver ``message`` to its recipients.

		The call either queues the whole message or fails; there is no partial
		success.

		Raises:
			DeliveryError: If connecting, TLS, login or the SMTP dialogue fails.
		"""
		...
