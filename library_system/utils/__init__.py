"""Library Loans - Utilities Package

- date_time.py: clock and date formatting helpers
- validators.py: id/name/year validation
- logging_setup.py: process-wide logging configuration
"""
