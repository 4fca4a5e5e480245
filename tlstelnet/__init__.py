"""Telnet client components: ring buffers, STARTTLS sessions and ENCRYPT option negotiation."""

__version__ = "0.3.3"