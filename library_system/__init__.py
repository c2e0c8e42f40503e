"""Library Loans - Core Application Package

This package contains the core modules:
- Domain value types (author.py, user.py, book.py, loan_record.py)
- Storage contract and backends (storage/)
- Catalog, user, loan and notification services (services/)
- Settings (config.py) and the composition root (bootstrap.py)
"""
