"""XDR-encoded method-call messages sent over UDP mailboxes as numbered fragments."""

__version__ = "0.1.0"