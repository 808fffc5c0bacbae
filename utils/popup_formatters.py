"""
Popup formatting utilities for Service Area Mapper.

This module formats feature attributes for display in map popups and tooltips.

Functions:
    format_popup_value: Format a single value for display in popup HTML
    build_popup_html: Build the popup body for one feature
"""

from html import escape
from typing import Any, Mapping, Optional


def format_popup_value(col: str, value: Any) -> str:
    """
    Format a popup value for display.

    Missing values become 'N/A', floats are rounded (percent columns get a
    '%' suffix), URLs become links, and everything else is HTML-escaped.

    Examples:
        >>> format_popup_value('Name', 'Chicago Treatment Center')
        'Chicago Treatment Center'

        >>> format_popup_value('pct_covered', 42.1234)
        '42.1%'

        >>> format_popup_value('zip', None)
        'N/A'
    """
    if value is None or (isinstance(value, float) and value != value):  # NaN check
        return 'N/A'

    if isinstance(value, bool):
        return 'Yes' if value else 'No'

    if isinstance(value, float):
        if col.lower().startswith('pct') or col.lower().endswith('_pct'):
            return f"{value:.1f}%"
        return f"{value:,.2f}"

    value_str = str(value)

    if value_str.startswith(('http://', 'https://')):
        display_text = value_str if len(value_str) <= 60 else f"{value_str[:57]}..."
        return f'<a href="{escape(value_str)}" target="_blank">{escape(display_text)}</a>'

    return escape(value_str)


def build_popup_html(properties: Mapping[str, Any],
                     layer_name: str,
                     title_field: Optional[str] = None) -> str:
    """
    Build popup HTML for one feature: layer name, optional title, then all attributes.

    Args:
        properties: Attribute mapping (a GeoDataFrame row works)
        layer_name: Shown in small italics at the top
        title_field: Attribute shown in bold as the popup title
    """
    popup_html = f"<div style='font-size: 10px;'><i>{escape(layer_name)}</i></div>"

    if title_field and properties.get(title_field) is not None:
        popup_html += (f"<div style='font-size: 14px; font-weight: bold; margin: 5px 0;'>"
                       f"{format_popup_value(title_field, properties[title_field])}</div>")
    popup_html += "<hr style='margin: 5px 0;'>"

    for col, value in properties.items():
        if col == 'geometry':
            continue
        popup_html += f"<b>{escape(str(col))}:</b> {format_popup_value(str(col), value)}<br>"

    return popup_html
