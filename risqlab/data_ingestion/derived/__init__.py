"""Derived data computations for risqlab.

This package derives secondary daily series from the ``ohlc`` daily
close series:

- Log returns in ``crypto_log_returns``.
- Growing-then-capped simple moving averages in
  ``crypto_moving_averages``.

Both are append-only: a stored key is never recomputed.
"""
