#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Configuration

Run settings for the report and the static tables it consumes:
- corrections.json: bedroom/bathroom corrections by id, ids to remove and the
  verified studios (0 bedrooms is legal for them)
- regions.json: City and Suburb zipcodes, any other zipcode is Rural

Both tables ship with the package under `data/` and can be replaced by a
directory with files of the same names.
'''

import dataclasses
import json
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

from .errors import RegionOverlapError

DATA_DIR = Path(__file__).parent / 'data'

TARGET = 'price'
ID_COL = 'id'
DATE_COL = 'date'

REGIONS = ('City', 'Suburb', 'Rural')
RENOVATION_GROUPS = ('Never Renovated', 'Recently Renovated', 'Renovated Long Ago')
AREA_FIELDS = ('sqft_living', 'sqft_lot', 'sqft_above', 'sqft_basement')


@dataclass(frozen=True)
class Settings:
    seed: int = 42
    train_frac: float = 0.8
    analysis_year: int = field(default_factory=lambda: date.today().year)

    # feature engineering
    renovation_cutoff: int = 2000
    downtown: tuple = (47.6062, -122.3321)  # (lat, long)
    area_anchor: str = 'sqft_living'
    n_area_drop: int = 2

    # linear model
    regression_exclude: tuple = ('lat', 'long', 'zipcode', 'yr_renovated')
    nvmax: int = 8
    search_method: str = 'exhaustive'
    selected_predictors: Optional[tuple] = None  # manual resolution
    n_remove: Optional[int] = None  # defaults to the standardized residual count

    # logistic model
    logit_full_predictors: tuple = (
        'price', 'sqft_living', 'yr_built', 'distance_to_downtown',
        'waterfront', 'region', 'renovation_group'
    )
    logit_reduced_predictors: Optional[tuple] = None
    vif_threshold: float = 5.0
    alpha: float = 0.05
    lrt_level: float = 0.95
    threshold: float = 0.5

    def replace(self, **changes) -> 'Settings':
        '''Returns a copy of the settings with the given fields changed.'''
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class StaticTables:
    '''
    Static lookup data.

    corrections: id -> {'bedrooms': value, 'bathrooms': value}, either key
    may be missing.
    '''
    corrections: dict = field(default_factory=dict)
    removals: frozenset = frozenset()
    studio_ids: frozenset = frozenset()
    city_zipcodes: frozenset = frozenset()
    suburb_zipcodes: frozenset = frozenset()

    def __post_init__(self):
        overlap = self.city_zipcodes & self.suburb_zipcodes
        if overlap:
            raise RegionOverlapError(list(overlap))


def _read_json(path:Path) -> dict:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_tables(directory:Path=None) -> StaticTables:
    '''
    Loads `corrections.json` and `regions.json` from the given directory
    (defaults to the tables shipped with the package).

    :param Path directory: folder with both JSON files
    :return: parsed tables with integer ids and zipcodes
    :rtype: StaticTables
    '''
    directory = Path(directory) if directory is not None else DATA_DIR
    corr = _read_json(directory / 'corrections.json')
    regions = _read_json(directory / 'regions.json')

    corrections = {}
    for record_id, values in corr.get('corrections', {}).items():
        unknown = set(values) - {'bedrooms', 'bathrooms'}
        if unknown:
            raise ValueError(f'unknown correction fields for id {record_id}: {sorted(unknown)}')
        corrections[int(record_id)] = dict(values)

    return StaticTables(
        corrections=corrections,
        removals=frozenset(int(i) for i in corr.get('removals', [])),
        studio_ids=frozenset(int(i) for i in corr.get('studio_ids', [])),
        city_zipcodes=frozenset(int(z) for z in regions.get('city', [])),
        suburb_zipcodes=frozenset(int(z) for z in regions.get('suburb', [])),
    )
