"""
Native Funds Port

The factory collects creation fees in the chain's native coin and sends
coins out for refunds and withdrawals. Outbound movement goes through a
``FundsTransfer`` port supplied by the execution environment.

A transfer fails when ``send`` returns ``False`` or raises; the factory
then rolls the whole enclosing call back.
"""

from typing import Dict, Optional, Protocol, Set

from .addresses import normalize_address
from .logger import get_logger

logger = get_logger(__name__)


class FundsTransfer(Protocol):
    """Outbound native-coin transfer."""

    async def send(self, recipient: str, amount: int) -> bool: ...


class InMemoryFundsTransfer:
    """
    Records credited native balances per recipient.

    Recipients listed in ``rejecting`` behave like accounts whose receive
    hook reverts: ``send`` returns ``False`` and nothing is credited.
    """

    def __init__(self, rejecting: Optional[Set[str]] = None):
        self._credited: Dict[str, int] = {}
        self._rejecting: Set[str] = {normalize_address(a) for a in (rejecting or set())}

    def reject(self, recipient: str):
        self._rejecting.add(normalize_address(recipient))

    def accept(self, recipient: str):
        self._rejecting.discard(normalize_address(recipient))

    def credited(self, recipient: str) -> int:
        return self._credited.get(normalize_address(recipient), 0)

    async def send(self, recipient: str, amount: int) -> bool:
        recipient = normalize_address(recipient)
        if recipient in self._rejecting:
            logger.debug(f"Native transfer to {recipient} rejected by recipient")
            return False
        self._credited[recipient] = self._credited.get(recipient, 0) + amount
        return True
