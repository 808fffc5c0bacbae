"""
HTML templates for Service Area Mapper.

This package contains Jinja2 templates for generating interactive map UI elements.

Templates:
    legend.html: Floating legend panel with title, swatches, and notes
"""

__version__ = '1.0.0'
