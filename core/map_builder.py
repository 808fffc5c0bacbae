"""
Map building module for Service Area Mapper.

This module renders service-area layers and choropleth maps. The rendering
mode is always an explicit argument:

    'view' - interactive Leaflet map built with Folium (returns folium.Map)
    'plot' - static map drawn with Matplotlib (returns matplotlib Figure)

Functions:
    create_service_area_map: Points, buffers, service area, zones, and boundary
    create_choropleth_map: Classified thematic map of one numeric column
"""

from pathlib import Path
from typing import Dict, List, Optional
import folium
import geopandas as gpd
from folium import Element
from jinja2 import Environment, FileSystemLoader
from matplotlib.figure import Figure
from matplotlib.patches import Patch
from config.config_loader import load_choropleth_settings
from core.classification import assign_classes, class_colors, legend_labels
from geometry_input.reprojection import reproject, WGS84
from utils.popup_formatters import build_popup_html
from utils.logger import get_logger

logger = get_logger(__name__)

# Template directory path
TEMPLATES_DIR = Path(__file__).parent.parent / 'templates'

RENDER_MODES = ('view', 'plot')

# Drawing order, bottom to top
LAYER_ORDER = ['zones', 'zone_coverage', 'boundary', 'buffers', 'service_area', 'points']

DEFAULT_LAYER_STYLE = {'color': '#3388ff', 'fill_opacity': 0.2}
NO_DATA_COLOR = '#dddddd'


def _check_mode(mode: str) -> None:
    if mode not in RENDER_MODES:
        raise ValueError(f"Unknown render mode '{mode}'. Expected one of: {', '.join(RENDER_MODES)}")


def _render_legend(title: str, items: List[Dict], notes: Optional[str] = None) -> str:
    env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=True)
    return env.get_template('legend.html').render(title=title, items=items, notes=notes)


def _total_bounds(frames: List[gpd.GeoDataFrame]) -> List[float]:
    """[minx, miny, maxx, maxy] across several collections."""
    all_bounds = [gdf.total_bounds for gdf in frames]
    return [
        min(b[0] for b in all_bounds),
        min(b[1] for b in all_bounds),
        max(b[2] for b in all_bounds),
        max(b[3] for b in all_bounds)
    ]


def _base_map(bounds: List[float], zoom_start: int) -> folium.Map:
    center_lat = (bounds[1] + bounds[3]) / 2
    center_lon = (bounds[0] + bounds[2]) / 2

    m = folium.Map(location=[center_lat, center_lon], zoom_start=zoom_start, tiles=None)
    folium.TileLayer('CartoDB positron', name='Light Theme').add_to(m)
    folium.TileLayer('OpenStreetMap', name='Street Map').add_to(m)
    return m


def _fit(m: folium.Map, bounds: List[float]) -> None:
    m.fit_bounds([[bounds[1], bounds[0]], [bounds[3], bounds[2]]])


def create_service_area_map(layers: Dict[str, gpd.GeoDataFrame],
                            config: Dict,
                            mode: str = 'view',
                            title: Optional[str] = None):
    """
    Render the service-area workflow layers.

    Parameters:
    -----------
    layers : Dict[str, gpd.GeoDataFrame]
        Output of process_service_areas(); recognised keys are 'points',
        'buffers', 'service_area', 'zones', 'zone_coverage', 'boundary'
    config : Dict
        Configuration dictionary ('layers' styles, 'settings' zoom)
    mode : str
        'view' for an interactive folium.Map, 'plot' for a static Figure
    title : Optional[str]
        Map title (page title in 'view', axes title in 'plot')

    Returns:
    --------
    folium.Map or matplotlib.figure.Figure

    Example:
        >>> m = create_service_area_map(layers, config, mode='view')
        >>> m.save('service_area.html')
    """
    _check_mode(mode)
    title = title or 'Service Area Map'
    styles = config.get('layers', {})
    ordered = [key for key in LAYER_ORDER if key in layers and not layers[key].empty]

    if not ordered:
        raise ValueError("No non-empty layers to render")

    logger.info("=" * 80)
    logger.info(f"Creating Service Area Map ({mode})")
    logger.info("=" * 80)

    if mode == 'plot':
        return _plot_service_area(layers, ordered, styles, title)

    # Leaflet needs lon/lat
    layers_wgs84 = {key: reproject(layers[key], WGS84) for key in ordered}

    bounds = _total_bounds(list(layers_wgs84.values()))
    m = _base_map(bounds, config.get('settings', {}).get('default_zoom', 10))
    legend_items = []

    for key in ordered:
        gdf = layers_wgs84[key]
        style = {**DEFAULT_LAYER_STYLE, **styles.get(key, {})}
        layer_name = style.get('name', key.replace('_', ' ').title())
        logger.info(f"  - Adding {layer_name} ({len(gdf)} features)...")

        if key == 'points':
            group = folium.FeatureGroup(name=layer_name)
            for _, row in gdf.iterrows():
                folium.Marker(
                    location=[row.geometry.y, row.geometry.x],
                    popup=folium.Popup(
                        build_popup_html(row.drop(labels=gdf.geometry.name), layer_name, style.get('name_field')),
                        max_width=400
                    ),
                    icon=folium.Icon(color=style.get('icon_color', 'red'),
                                     icon=style.get('icon', 'plus'),
                                     prefix='fa')
                ).add_to(group)
            group.add_to(m)
            legend_items.append({'label': layer_name, 'color': style.get('icon_color', 'red'), 'shape': 'point'})
            continue

        # Use default parameters to capture values (closure bug with several layers)
        def style_function(feature, s=style):
            return {
                'color': s['color'],
                'weight': 2,
                'opacity': 0.8,
                'fillColor': s['color'],
                'fillOpacity': s['fill_opacity']
            }

        tooltip_fields = [c for c in gdf.columns if c != gdf.geometry.name][:4]
        folium.GeoJson(
            gdf,
            name=layer_name,
            style_function=style_function,
            tooltip=folium.GeoJsonTooltip(fields=tooltip_fields) if tooltip_fields else None
        ).add_to(m)
        legend_items.append({
            'label': layer_name,
            'color': style['color'],
            'fill_opacity': max(style['fill_opacity'], 0.1),
            'shape': 'polygon'
        })

    folium.LayerControl(collapsed=False).add_to(m)
    m.get_root().html.add_child(Element(_render_legend(title, legend_items)))
    _fit(m, bounds)
    m.get_root().title = title

    logger.info("  ✓ Map created successfully\n")
    return m


def _plot_service_area(layers, ordered, styles, title) -> Figure:
    fig = Figure(figsize=(10, 10))
    ax = fig.add_subplot()
    handles = []

    for key in ordered:
        gdf = layers[key]
        style = {**DEFAULT_LAYER_STYLE, **styles.get(key, {})}
        layer_name = style.get('name', key.replace('_', ' ').title())

        if key == 'points':
            gdf.plot(ax=ax, color=style.get('icon_color', 'red'), markersize=25, zorder=5)
            handles.append(Patch(facecolor=style.get('icon_color', 'red'), label=layer_name))
        else:
            gdf.plot(ax=ax, facecolor=style['color'], alpha=max(style['fill_opacity'], 0.05),
                     edgecolor=style['color'], linewidth=0.8)
            gdf.boundary.plot(ax=ax, color=style['color'], linewidth=0.8)
            handles.append(Patch(facecolor=style['color'], alpha=0.5, label=layer_name))

    ax.set_title(title, fontsize=14)
    ax.set_axis_off()
    ax.legend(handles=handles, loc='lower left')

    logger.info("  ✓ Static map drawn\n")
    return fig


def create_choropleth_map(gdf: gpd.GeoDataFrame,
                          column: str,
                          settings: Optional[Dict] = None,
                          mode: str = 'view',
                          title: Optional[str] = None):
    """
    Render a classified choropleth of one numeric column.

    The same classifier drives both modes, so 'view' and 'plot' show identical
    class breaks.

    Parameters:
    -----------
    gdf : gpd.GeoDataFrame
        Polygons (e.g. counties) carrying the value column
    column : str
        Numeric column to classify (e.g. 'pct_hispanic')
    settings : Optional[Dict]
        Choropleth settings: scheme, k, cmap, name_field, fill_opacity.
        Defaults from config/analysis_config.json
    mode : str
        'view' for an interactive folium.Map, 'plot' for a static Figure
    title : Optional[str]
        Map and legend title (defaults to the column name)

    Returns:
    --------
    folium.Map or matplotlib.figure.Figure
    """
    _check_mode(mode)
    if settings is None:
        settings = load_choropleth_settings()

    title = title or column
    scheme = settings['scheme']
    classified, classifier = assign_classes(gdf, column, scheme=scheme, k=settings['k'])
    class_column = f'{column}_class'
    colors = class_colors(len(classifier.bins), settings['cmap'])
    labels = legend_labels(classifier)
    class_values = classified[class_column].astype('float64')

    logger.info(f"Creating choropleth of '{column}' ({scheme}, {len(colors)} classes, {mode})")

    if mode == 'plot':
        fig = Figure(figsize=(10, 8))
        ax = fig.add_subplot()
        for index, color in enumerate(colors):
            subset = classified[class_values == index]
            if not subset.empty:
                subset.plot(ax=ax, color=color, edgecolor='#444444', linewidth=0.3)
        missing = classified[class_values.isna()]
        if not missing.empty:
            missing.plot(ax=ax, color=NO_DATA_COLOR, edgecolor='#444444', linewidth=0.3, hatch='///')
        ax.legend(handles=[Patch(facecolor=c, label=l) for c, l in zip(colors, labels)],
                  title=f"{title} ({scheme})", loc='lower left')
        ax.set_axis_off()
        return fig

    classified_wgs84 = reproject(classified, WGS84)
    # Float NaN serializes to null in GeoJSON, Int64 NA does not reliably
    classified_wgs84[class_column] = classified_wgs84[class_column].astype('float64')
    bounds = _total_bounds([classified_wgs84])
    m = _base_map(bounds, 6)

    def style_function(feature):
        cls = feature['properties'].get(class_column)
        fill = colors[int(cls)] if cls is not None and cls == cls else NO_DATA_COLOR
        return {
            'fillColor': fill,
            'color': '#444444',
            'weight': 0.5,
            'fillOpacity': settings['fill_opacity']
        }

    name_field = settings.get('name_field')
    tooltip_fields = [f for f in (name_field, column) if f and f in classified_wgs84.columns]
    folium.GeoJson(
        classified_wgs84,
        name=title,
        style_function=style_function,
        tooltip=folium.GeoJsonTooltip(fields=tooltip_fields) if tooltip_fields else None
    ).add_to(m)

    legend_items = [
        {'label': label, 'color': color, 'fill_opacity': settings['fill_opacity'], 'shape': 'polygon'}
        for label, color in zip(labels, colors)
    ]
    m.get_root().html.add_child(Element(_render_legend(title, legend_items, notes=f"Classification: {scheme}")))
    _fit(m, bounds)
    m.get_root().title = title

    logger.info("  ✓ Choropleth created successfully\n")
    return m
