"""feecheck — fee-distribution health checks for Bags tokens."""

__version__ = "0.1.0"
