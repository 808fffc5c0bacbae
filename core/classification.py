"""
Thematic classification module for Service Area Mapper.

This module prepares demographic data for choropleth maps: it derives
percentage columns and bins them with mapclassify classification schemes.

Functions:
    compute_percentage: Add a percentage column from a numerator/denominator pair
    classify_values: Run a mapclassify scheme over a value series
    assign_classes: Attach class indexes to a GeoDataFrame
    class_colors: Sample hex colors from a matplotlib colormap
    legend_labels: Human-readable class ranges for a legend
"""

from typing import Dict, List, Tuple
import mapclassify
import numpy as np
import pandas as pd
from matplotlib import colormaps
from matplotlib.colors import to_hex
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMES = {
    'quantiles': mapclassify.Quantiles,
    'natural_breaks': mapclassify.NaturalBreaks,
    'fisher_jenks': mapclassify.FisherJenks,
    'equal_interval': mapclassify.EqualInterval,
    'std_mean': mapclassify.StdMean,
}

# Standard deviation classes: below -2sd, -2..-1, -1..+1, +1..+2, above +2sd
STD_MEAN_MULTIPLES = [-2, -1, 1, 2]


def compute_percentage(df: pd.DataFrame,
                       numerator: str,
                       denominator: str,
                       name: str = 'pct') -> pd.DataFrame:
    """
    Add a percentage column computed as 100 * numerator / denominator.

    Parameters:
    -----------
    df : pd.DataFrame
        Source table (GeoDataFrames work too); not modified
    numerator : str
        Column with the subgroup count (e.g. 'hispanic_pop')
    denominator : str
        Column with the total count (e.g. 'total_pop')
    name : str
        Name of the new column

    Returns:
    --------
    pd.DataFrame
        Copy of df with the new column; NaN where the denominator is 0 or missing

    Raises:
    -------
    KeyError
        If either column is missing
    """
    for column in (numerator, denominator):
        if column not in df.columns:
            raise KeyError(f"Column '{column}' not found")

    result = df.copy()
    totals = pd.to_numeric(result[denominator], errors='coerce')
    totals = totals.where(totals != 0)
    result[name] = pd.to_numeric(result[numerator], errors='coerce') / totals * 100

    missing = int(result[name].isna().sum())
    if missing:
        logger.warning(f"  - {missing} row(s) have no valid denominator; '{name}' left empty")

    return result


def classify_values(values, scheme: str = 'quantiles', k: int = 5):
    """
    Bin values with a mapclassify classification scheme.

    Parameters:
    -----------
    values : array-like
        Numeric values without missing entries
    scheme : str
        One of 'quantiles', 'natural_breaks', 'fisher_jenks',
        'equal_interval', 'std_mean'
    k : int
        Number of classes (ignored by 'std_mean', which uses fixed multiples)

    Returns:
    --------
    mapclassify classifier with .bins (upper bounds) and .yb (class per value)

    Raises:
    -------
    ValueError
        If the scheme is unknown or there are no values to classify
    """
    if scheme not in SCHEMES:
        raise ValueError(f"Unknown classification scheme '{scheme}'. Expected one of: {', '.join(SCHEMES)}")

    y = np.asarray(values, dtype=float)
    if y.size == 0:
        raise ValueError("No values to classify")

    if scheme == 'std_mean':
        classifier = SCHEMES[scheme](y, multiples=STD_MEAN_MULTIPLES)
    else:
        classifier = SCHEMES[scheme](y, k=k)

    logger.debug(f"  - {scheme}: {classifier.k} classes, bins={np.round(classifier.bins, 3).tolist()}")
    return classifier


def assign_classes(gdf: pd.DataFrame,
                   column: str,
                   scheme: str = 'quantiles',
                   k: int = 5) -> Tuple[pd.DataFrame, object]:
    """
    Attach a class index column ('<column>_class') to a copy of gdf.

    Rows with a missing value get a missing class (pandas Int64 NA).

    Returns:
    --------
    Tuple of (classified copy, classifier)
    """
    if column not in gdf.columns:
        raise KeyError(f"Column '{column}' not found")

    values = pd.to_numeric(gdf[column], errors='coerce')
    valid = values.notna()

    logger.info(f"Classifying '{column}' with {scheme} ({int(valid.sum())} values)...")
    classifier = classify_values(values[valid], scheme=scheme, k=k)

    result = gdf.copy()
    classes = pd.Series(pd.NA, index=result.index, dtype='Int64')
    classes[valid] = classifier.yb
    result[f'{column}_class'] = classes

    return result, classifier


def class_colors(n: int, cmap: str = 'YlOrRd') -> List[str]:
    """Sample n evenly spaced hex colors from a matplotlib colormap."""
    if n < 1:
        return []
    colormap = colormaps[cmap].resampled(n)
    return [to_hex(colormap(i)) for i in range(n)]


def legend_labels(classifier, fmt: str = '{:.1f}') -> List[str]:
    """
    Build 'lower - upper' labels for each class of a fitted classifier.

    The first populated class starts at the minimum observed value and the
    last one ends at the maximum. Classes whose upper bound lies below every
    observed value (common for 'std_mean') are labelled '< upper'.
    """
    y_min = float(np.min(classifier.y))
    y_max = float(np.max(classifier.y))
    last = len(classifier.bins) - 1

    lower = y_min
    labels = []
    for i, upper in enumerate(float(b) for b in classifier.bins):
        if upper < lower:
            labels.append(f"< {fmt.format(upper)}")
            continue
        if i == last and lower <= y_max:
            upper = min(upper, y_max)
        labels.append(f"{fmt.format(lower)} - {fmt.format(upper)}")
        lower = upper
    return labels


def legend_entries(classifier, cmap: str = 'YlOrRd') -> List[Dict[str, str]]:
    """Pair each legend label with its fill color."""
    colors = class_colors(len(classifier.bins), cmap)
    return [
        {'label': label, 'color': color}
        for label, color in zip(legend_labels(classifier), colors)
    ]
