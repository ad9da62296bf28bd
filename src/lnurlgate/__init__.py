"""LNURL withdraw, pay, channel and auth server backed by LND and bitcoind."""

__version__ = "1.0.0"
