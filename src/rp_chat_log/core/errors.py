from __future__ import annotations


class RPChatLogError(Exception):
    pass


class PersistenceError(RPChatLogError):
    """A durable write (preferences or upload ledger) did not complete."""


class MalformedStateError(RPChatLogError):
    """Persisted state exists but could not be read back."""


class ConfigError(RPChatLogError):
    pass
