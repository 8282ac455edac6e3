"""Session key holder for the master passphrase.

The passphrase lives only in process memory, from an explicit unlock until
lock, sign-out, or idle timeout. Being signed in does not unlock the vault.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from .config import get_vault_config
from .exceptions import SessionExpiredError, SessionLockedError, ValidationError


class SessionKeyHolder:
    """
    In-memory holder for the master passphrase.

    Only the unlock and sign-out flows should call set() and clear(); every
    other component reads the passphrase through get() or require().
    """

    def __init__(
        self,
        timeout_minutes: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            timeout_minutes: Idle timeout, 0 disables (None = use config default)
            clock: Time source, injectable for tests
        """
        if timeout_minutes is None:
            timeout_minutes = get_vault_config().session_timeout_minutes
        self.timeout_minutes = timeout_minutes
        self._clock = clock
        self._secret: Optional[bytearray] = None
        self._expired = False
        self.unlocked_at: Optional[datetime] = None
        self.last_access: Optional[datetime] = None

    def set(self, passphrase: str) -> None:
        """Hold a new passphrase, replacing (and wiping) any previous one."""
        if not passphrase:
            raise ValidationError("Please enter your master password", field="passphrase")

        self.clear()
        self._secret = bytearray(passphrase.encode("utf-8"))
        self.unlocked_at = self._clock()
        self.last_access = self.unlocked_at

    def get(self) -> Optional[str]:
        """
        Get the passphrase if the session is unlocked.

        Returns:
            Passphrase, or None if locked or timed out
        """
        if self._secret is None:
            return None

        if self.is_expired():
            self.clear()
            self._expired = True
            return None

        self.last_access = self._clock()
        return self._secret.decode("utf-8")

    def require(self) -> str:
        """
        Get the passphrase or raise.

        Raises:
            SessionExpiredError: If the session timed out since the last access
            SessionLockedError: If the vault was never unlocked or was locked
        """
        passphrase = self.get()
        if passphrase is None:
            if self._expired:
                raise SessionExpiredError()
            raise SessionLockedError()
        return passphrase

    def clear(self) -> None:
        """Forget the passphrase, zeroing the buffer that held it."""
        if self._secret is not None:
            for i in range(len(self._secret)):
                self._secret[i] = 0
        self._secret = None
        self._expired = False
        self.unlocked_at = None
        self.last_access = None

    def is_expired(self) -> bool:
        """Check if the session has timed out due to inactivity."""
        if self._secret is None or self.timeout_minutes == 0:
            return False
        elapsed = self._clock() - self.last_access
        return elapsed > timedelta(minutes=self.timeout_minutes)

    @property
    def is_unlocked(self) -> bool:
        """Read-only check; does not count as activity."""
        return self._secret is not None and not self.is_expired()

    def time_remaining(self) -> Optional[timedelta]:
        """Get time remaining before the session expires (None = no timeout)."""
        if self._secret is None:
            return timedelta(0)
        if self.timeout_minutes == 0:
            return None
        elapsed = self._clock() - self.last_access
        remaining = timedelta(minutes=self.timeout_minutes) - elapsed
        return max(remaining, timedelta(0))
