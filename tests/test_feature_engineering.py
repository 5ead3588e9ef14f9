#
# SPDX-License-Identifier: GPL-3.0-or-later
#

import math

import numpy as np
import pandas as pd
import pytest

from housing_report.config import REGIONS, StaticTables, load_tables
from housing_report.errors import RegionOverlapError
from housing_report.feature_engineering import (
    area_correlations, assign_region, derive_features, distance_to_downtown,
    label_good_quality, parse_sale_date, redundant_area_fields,
    renovation_group
)

from conftest import CITY, DOWNTOWN, SUBURB


def test_region_is_total_over_zipcodes():
    zips = pd.Series([98101, 98004, 98010, 12345, 98102])
    region = assign_region(zips, frozenset(CITY), frozenset(SUBURB))
    assert region.tolist() == ['City', 'Suburb', 'Rural', 'Rural', 'City']
    assert list(region.cat.categories) == list(REGIONS)


def test_region_overlap_is_rejected():
    with pytest.raises(RegionOverlapError) as exc:
        assign_region(pd.Series([98101]), frozenset({98101, 98004}), frozenset({98004}))
    assert exc.value.zipcodes == [98004]

    with pytest.raises(RegionOverlapError):
        StaticTables(city_zipcodes=frozenset({1, 2}), suburb_zipcodes=frozenset({2}))


def test_shipped_region_tables_are_disjoint():
    tables = load_tables()
    assert tables.city_zipcodes
    assert not tables.city_zipcodes & tables.suburb_zipcodes


def test_renovation_groups():
    years = pd.Series([0, 1985, 1999, 2000, 2014])
    groups = renovation_group(years, cutoff=2000)
    assert groups.tolist() == [
        'Never Renovated', 'Renovated Long Ago', 'Renovated Long Ago',
        'Recently Renovated', 'Recently Renovated',
    ]


def test_distance_to_downtown():
    df = pd.DataFrame({'lat': [47.6062, 47.7062, 47.5], 'long': [-122.3321, -122.3321, -122.0]})
    dist = distance_to_downtown(df, DOWNTOWN)

    assert dist[0] == 0
    assert dist[1] == pytest.approx(0.1)
    assert dist[2] == pytest.approx(math.hypot(47.5 - 47.6062, -122.0 + 122.3321))
    assert (dist >= 0).all()


def test_sale_date_parsing():
    df = pd.DataFrame({'date': ['20141013T000000', '20150225T000000']})
    out = parse_sale_date(df)
    assert out['year_sold'].tolist() == [2014, 2015]
    assert out['month_sold'].tolist() == [10, 2]


def test_good_quality_label():
    df = pd.DataFrame({'condition': [4, 3, 5, 4], 'grade': [8, 9, 7, 12]})
    assert label_good_quality(df)['good_quality'].tolist() == [True, False, False, True]


def test_redundant_area_fields_are_the_living_area_parts(sales):
    corr = area_correlations(sales)
    assert corr.shape == (4, 4)
    dropped = redundant_area_fields(corr, anchor='sqft_living', n_drop=2)
    assert set(dropped) == {'sqft_above', 'sqft_basement'}


def test_redundant_area_fields_need_the_anchor(sales):
    corr = area_correlations(sales)
    with pytest.raises(KeyError):
        redundant_area_fields(corr, anchor='sqft_total')


def test_derive_features(sales, settings, tables):
    out, corr, dropped = derive_features(sales, settings, tables)

    for col in ['year_sold', 'month_sold', 'region', 'renovation_group', 'distance_to_downtown']:
        assert col in out.columns
    assert 'sqft_above' not in out.columns and 'sqft_basement' not in out.columns
    assert set(dropped) == {'sqft_above', 'sqft_basement'}
    assert out['region'].notna().all()
    assert np.isfinite(out['distance_to_downtown']).all()
    # input untouched
    assert 'region' not in sales.columns
