"""
cboe-options-audit
==================
Validation and aggregation of purchased end-of-interval SPX option data.

Modules:
    black_scholes      - Pricing, greeks, implied vol inversion
    record_parser      - One CSV line -> validated, priced Quote
    dedup              - SPX / SPXW / SPXQ root resolution per expiration
    daily_file         - One daily zip archive -> the day's quotes
    aggregator         - Sharded, thread-safe global quote index
    orchestrator       - File discovery and bounded worker pool
    rates              - Risk-free rate and dividend yield providers
    error_log          - Shared append-only error log
    models             - Quote, keys and rejection types
    config             - Defaults and the AuditConfig value object
"""

__version__ = "0.3.0"
__author__ = "Leo"
