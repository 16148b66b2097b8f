"""risqlab – pipeline orchestration package.

This package sequences the daily batch stages (ingestion, derived
returns, index, risk metrics, portfolio volatility).
"""
