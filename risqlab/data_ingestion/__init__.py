"""risqlab – external market data ingestion package.

This package contains the provider clients (CoinGecko for prices and
metadata, CoinMarketCap for the Fear & Greed index), the raw table
storage helpers, and the ingestion stages that populate
``cryptocurrencies``, ``market_data``, ``ohlc`` and
``cryptocurrency_metadata``: the market snapshot, the gap-aware
historical backfill and metadata enrichment.
"""
