"""
Core log shipping components.

This package contains the buffering and delivery pipeline:
- Severity table and message truncation
- In-memory record buffer
- Harvest scheduler (timer, manual flush, shutdown flush)
- Log API delivery client
- ApiLogger façade
- Metrics collection
"""
