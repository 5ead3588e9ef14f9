#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Feature engineering
'''

import logging
from typing import List, Tuple

import numpy as np
import pandas as pd
from scipy.spatial import cKDTree

from .config import (
    AREA_FIELDS, DATE_COL, REGIONS, RENOVATION_GROUPS, Settings, StaticTables
)
from .errors import RegionOverlapError

# --------------------------
# Distance Functions
# --------------------------

def prepare_property_coordinates(df: pd.DataFrame) -> np.ndarray:
    """Extract (lat, long) pairs as numpy array."""
    return df[['lat', 'long']].to_numpy(dtype=float)


def nearest_reference_distance(
    points: np.ndarray,
    references: np.ndarray
) -> np.ndarray:
    """Distance from every (lat, long) point to its nearest reference point."""
    tree = cKDTree(references)
    distances, _ = tree.query(points, k=1)
    return np.asarray(distances, dtype=float).reshape(-1)


def distance_to_downtown(
    df: pd.DataFrame,
    reference: Tuple[float, float]
) -> pd.Series:
    """Euclidean distance, in coordinate degrees, from every sale to downtown.

    Parameters
    ----------
    df : pd.DataFrame
        Records with `lat` and `long` columns.
    reference : tuple
        Downtown (lat, long).

    Returns
    -------
    pd.Series
        Non-negative distances aligned with `df`.
    """
    distances = nearest_reference_distance(
        prepare_property_coordinates(df),
        np.array([reference], dtype=float)
    )
    return pd.Series(distances, index=df.index, name='distance_to_downtown')

# --------------------------
# Categorical Buckets
# --------------------------

def assign_region(
    zipcodes: pd.Series,
    city: frozenset,
    suburb: frozenset
) -> pd.Series:
    """Buckets zipcodes into City, Suburb or Rural.

    City is checked first, then Suburb; every other zipcode is Rural. A
    zipcode listed in both sets raises RegionOverlapError.
    """
    overlap = set(city) & set(suburb)
    if overlap:
        raise RegionOverlapError(list(overlap))

    region = np.where(
        zipcodes.isin(list(city)), 'City',
        np.where(zipcodes.isin(list(suburb)), 'Suburb', 'Rural')
    )
    return pd.Series(
        pd.Categorical(region, categories=REGIONS),
        index=zipcodes.index,
        name='region'
    )


def renovation_group(yr_renovated: pd.Series, cutoff: int) -> pd.Series:
    """Recently Renovated (>= cutoff), Never Renovated (0) or Renovated Long Ago."""
    group = np.select(
        [yr_renovated >= cutoff, yr_renovated == 0],
        ['Recently Renovated', 'Never Renovated'],
        default='Renovated Long Ago'
    )
    return pd.Series(
        pd.Categorical(group, categories=RENOVATION_GROUPS),
        index=yr_renovated.index,
        name='renovation_group'
    )


def parse_sale_date(df: pd.DataFrame) -> pd.DataFrame:
    """Adds `year_sold` and `month_sold` from the `YYYYMMDD...` date string."""
    df = df.copy()
    sold = pd.to_datetime(df[DATE_COL].astype(str).str[:8], format='%Y%m%d')
    df['year_sold'] = sold.dt.year
    df['month_sold'] = sold.dt.month
    return df


def label_good_quality(df: pd.DataFrame) -> pd.DataFrame:
    """Adds the binary label: condition above 3 and grade above 7."""
    df = df.copy()
    df['good_quality'] = (df['condition'] > 3) & (df['grade'] > 7)
    return df

# --------------------------
# Multicollinearity
# --------------------------

def area_correlations(df: pd.DataFrame, fields=AREA_FIELDS) -> pd.DataFrame:
    """Pearson correlation matrix among the area fields."""
    return df[list(fields)].corr()


def redundant_area_fields(
    corr: pd.DataFrame,
    anchor: str = 'sqft_living',
    n_drop: int = 2
) -> List[str]:
    """Area fields to drop because their information is already in the others.

    Every field but the anchor is scored by its largest absolute correlation
    with any other area field; the `n_drop` highest scores are returned.

    Parameters
    ----------
    corr : pd.DataFrame
        Output of `area_correlations`.
    anchor : str
        Field that is always kept.
    n_drop : int
        How many fields to drop.

    Returns
    -------
    List[str]
        Field names, most redundant first.
    """
    if anchor not in corr.columns:
        raise KeyError(f"Column '{anchor}' not found")
    values = corr.abs().to_numpy(copy=True)
    np.fill_diagonal(values, np.nan)
    abs_corr = pd.DataFrame(values, index=corr.index, columns=corr.columns)
    scores = abs_corr.max(axis=1).drop(index=anchor)
    return scores.sort_values(ascending=False).index[:n_drop].tolist()


def derive_features(
    df: pd.DataFrame,
    settings: Settings,
    tables: StaticTables
) -> Tuple[pd.DataFrame, pd.DataFrame, List[str]]:
    """Adds the derived columns and drops the redundant area fields.

    Derived columns: `year_sold`, `month_sold`, `region`, `renovation_group`
    and `distance_to_downtown`. The `good_quality` label is added to each
    split afterwards with `label_good_quality`.

    Returns
    -------
    tuple
        (records, area correlation matrix, dropped area fields)
    """
    out = parse_sale_date(df)
    out['region'] = assign_region(
        out['zipcode'], tables.city_zipcodes, tables.suburb_zipcodes
    )
    out['renovation_group'] = renovation_group(
        out['yr_renovated'], settings.renovation_cutoff
    )
    out['distance_to_downtown'] = distance_to_downtown(out, settings.downtown)

    corr = area_correlations(out)
    dropped = redundant_area_fields(corr, settings.area_anchor, settings.n_area_drop)
    logging.info(f'Dropping collinear area fields: {dropped}')
    out = out.drop(columns=dropped)

    return out, corr, dropped
