"""
Utility modules for Service Area Mapper.

This package contains utility functions and helpers used throughout the application.

Modules:
    logger: Logging configuration and setup
    popup_formatters: Popup value formatting utilities
    xlsx_generator: Zone coverage Excel report
"""

__version__ = '1.0.0'
