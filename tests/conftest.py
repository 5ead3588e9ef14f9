#
# SPDX-License-Identifier: GPL-3.0-or-later
#

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest

from housing_report.config import Settings, StaticTables

CITY = [98101, 98102, 98103]
SUBURB = [98004, 98005]
RURAL = [98010, 98014]
DOWNTOWN = (47.6062, -122.3321)


def _make_sales(n=1000, seed=0, noise_sd=5000.0, quality_premium=0.0):
    '''
    Synthetic sales with price = 100000 + 150 * sqft_living + noise
    (+ quality_premium for good quality houses).
    '''
    rng = np.random.default_rng(seed)
    sqft_living = rng.integers(600, 5000, n)
    has_basement = rng.random(n) < 0.4
    sqft_basement = np.where(
        has_basement, np.round(sqft_living * rng.uniform(0.1, 0.4, n)), 0
    ).astype(int)
    yr_built = rng.integers(1900, 2014, n)
    renovated = rng.random(n) < 0.3
    yr_renovated = np.where(
        renovated, yr_built + (rng.random(n) * (2015 - yr_built)).astype(int), 0
    )
    condition = rng.integers(1, 6, n)
    grade = rng.integers(4, 13, n)
    good = (condition > 3) & (grade > 7)
    dates = pd.date_range('2014-05-01', '2015-05-31', freq='D').strftime('%Y%m%dT000000').to_numpy()

    return pd.DataFrame({
        'id': np.arange(1_000_000_000, 1_000_000_000 + n, dtype=np.int64),
        'date': rng.choice(dates, n),
        'price': (100000 + 150 * sqft_living + rng.normal(0, noise_sd, n)
                  + quality_premium * good),
        'bedrooms': rng.integers(1, 6, n),
        'bathrooms': rng.choice([0.75, 1.0, 1.5, 2.0, 2.5, 3.0], n),
        'sqft_living': sqft_living,
        'sqft_lot': rng.integers(2000, 20000, n),
        'floors': rng.choice([1.0, 1.5, 2.0, 3.0], n),
        'waterfront': (rng.random(n) < 0.1).astype(int),
        'view': rng.integers(0, 5, n),
        'condition': condition,
        'grade': grade,
        'sqft_above': sqft_living - sqft_basement,
        'sqft_basement': sqft_basement,
        'yr_built': yr_built,
        'yr_renovated': yr_renovated,
        'zipcode': rng.choice(CITY + SUBURB + RURAL, n),
        'lat': DOWNTOWN[0] + rng.normal(0, 0.15, n),
        'long': DOWNTOWN[1] + rng.normal(0, 0.15, n),
        'sqft_living15': np.round(sqft_living + rng.normal(0, 300, n)).clip(400),
        'sqft_lot15': rng.integers(2000, 20000, n),
    })


@pytest.fixture
def make_sales():
    return _make_sales


@pytest.fixture
def sales():
    return _make_sales()


@pytest.fixture
def tables():
    return StaticTables(
        city_zipcodes=frozenset(CITY),
        suburb_zipcodes=frozenset(SUBURB),
    )


@pytest.fixture
def settings():
    return Settings(analysis_year=2024)
