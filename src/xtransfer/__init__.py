"""Cross-chain transfer construction and fee-asset resolution."""

__version__ = "0.1.0"
