"""
Access Capabilities

Small, independently testable guards that ledgers and the factory invoke
explicitly:
  - Ownable         : single-owner administrative gate
  - PauseGate       : pause switch for an entry point family
  - ReentrancyGuard : call-in-progress flag for fund-moving entry points
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from .addresses import is_zero_address, normalize_address
from .exceptions import (
    AuthorizationError,
    Reason,
    ReentrantCallError,
    StateError,
    ValidationError,
)
from .logger import get_logger

logger = get_logger(__name__)


class Ownable:
    """
    Single-owner gate.

    ``owner`` is ``None`` once ownership is renounced, after which every
    owner-gated call is rejected.
    """

    def __init__(self, owner: str):
        owner = normalize_address(owner)
        if is_zero_address(owner):
            raise ValidationError(Reason.INVALID_OWNER, "Owner cannot be the null address")
        self._owner: Optional[str] = owner

    @property
    def owner(self) -> Optional[str]:
        return self._owner

    def is_owner(self, address: str) -> bool:
        return self._owner is not None and normalize_address(address) == self._owner

    def require_owner(self, caller: str) -> str:
        """Return the normalised *caller* or raise ``Unauthorized``."""
        caller = normalize_address(caller)
        if self._owner is None or caller != self._owner:
            raise AuthorizationError(
                Reason.UNAUTHORIZED, f"{caller} is not the owner"
            )
        return caller

    def transfer(self, caller: str, new_owner: str) -> str:
        """Hand ownership to *new_owner*; returns the previous owner."""
        previous = self.require_owner(caller)
        new_owner = normalize_address(new_owner)
        if is_zero_address(new_owner):
            raise ValidationError(Reason.INVALID_OWNER, "New owner cannot be the null address")
        self._owner = new_owner
        return previous

    def renounce(self, caller: str) -> str:
        previous = self.require_owner(caller)
        self._owner = None
        return previous


class PauseGate:
    """Pause switch. Starts unpaused."""

    def __init__(self, paused: bool = False):
        self._paused = paused

    @property
    def paused(self) -> bool:
        return self._paused

    def require_not_paused(self):
        if self._paused:
            raise StateError(Reason.PAUSED_STATE, "Paused")

    def pause(self):
        self.require_not_paused()
        self._paused = True

    def unpause(self):
        if not self._paused:
            raise StateError(Reason.NOT_PAUSED, "Not paused")
        self._paused = False


class ReentrancyGuard:
    """
    Call-in-progress flag shared by every entry point that moves funds.

    Usage::

        with self._guard.enter("withdraw"):
            ...  # outbound transfer happens in here
    """

    def __init__(self):
        self._entered: Optional[str] = None

    @property
    def entered(self) -> bool:
        return self._entered is not None

    @contextmanager
    def enter(self, entry_point: str) -> Iterator[None]:
        if self._entered is not None:
            logger.warning(
                f"Re-entry into {entry_point} while {self._entered} is in progress [ReentrantCall]"
            )
            raise ReentrantCallError(
                f"{entry_point} re-entered during {self._entered}"
            )
        self._entered = entry_point
        try:
            yield
        finally:
            self._entered = None
