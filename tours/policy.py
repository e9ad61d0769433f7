from typing import Iterable, Optional, Protocol


class AccessPolicy(Protocol):
    def operations_enabled(self) -> bool: ...

    def is_administrator(self, identity: str) -> bool: ...

    # Switch behind pause_operations / resume_operations
    def set_enabled(self, enabled: bool) -> None: ...


class StaticAccessPolicy:
    """Fixed administrator set with a process-local pause switch."""

    def __init__(self, administrators: Optional[Iterable[str]] = None, enabled: bool = True):
        self.administrators: set[str] = set(administrators or ())
        self._enabled = enabled

    def operations_enabled(self) -> bool:
        return self._enabled

    def is_administrator(self, identity: str) -> bool:
        return identity in self.administrators

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
