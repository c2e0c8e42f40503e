"""Library Loans - Services Package

This package contains the service layer:
- Catalog and user registry services
- Loan lifecycle service and loan id generators
- Notification delivery
"""
