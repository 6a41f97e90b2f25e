"""Payment gateways holding the raffle pool."""

from .base import PaymentGateway
from .ledger import InMemoryLedger
from .wallet import WalletGateway

__all__ = ["PaymentGateway", "InMemoryLedger", "WalletGateway"]
