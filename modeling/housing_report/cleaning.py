#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Data cleaning

Loads the sales table and fixes the manual entry errors:
1. Overwrite bedrooms/bathrooms of the ids in the correction table
2. Drop the ids with anomalies that couldn't be verified
3. Check the domain invariants of every remaining record
'''

import logging

import numpy as np
import pandas as pd

from .config import ID_COL, DATE_COL, StaticTables
from .errors import StaleReferenceError, PreconditionError

REQUIRED_COLS = [
    'id', 'date', 'price', 'bedrooms', 'bathrooms', 'sqft_living', 'sqft_lot',
    'floors', 'waterfront', 'view', 'condition', 'grade', 'sqft_above',
    'sqft_basement', 'yr_built', 'yr_renovated', 'zipcode', 'lat', 'long',
    'sqft_living15', 'sqft_lot15',
]


def load_records(path, sep:str=',') -> pd.DataFrame:
    '''
    Reads the sales file (header row, one sale per line).

    :param path: delimited text file
    :param str sep: field delimiter
    :return: raw records
    :rtype: pd.DataFrame
    '''
    df = pd.read_csv(path, sep=sep, dtype={DATE_COL: str})
    missing = [c for c in REQUIRED_COLS if c not in df.columns]
    if missing:
        raise PreconditionError(f'missing columns in {path}: {missing}')
    df[ID_COL] = df[ID_COL].astype(np.int64)
    df['zipcode'] = df['zipcode'].astype(np.int64)
    logging.info(f'Loaded {len(df)} records from {path}')
    return df


def _check_ids(df:pd.DataFrame, ids, table:str) -> None:
    stale = set(ids) - set(df[ID_COL])
    if stale:
        raise StaleReferenceError(table, list(stale))


def apply_corrections(df:pd.DataFrame, corrections:dict) -> pd.DataFrame:
    '''
    Overwrites the bedrooms and/or bathrooms of the corrected ids. A partial
    correction leaves the other field as it is.

    :param pd.DataFrame df: records
    :param dict corrections: id -> {'bedrooms': value, 'bathrooms': value}
    :return: corrected copy of the records
    :rtype: pd.DataFrame
    '''
    _check_ids(df, corrections.keys(), 'correction')
    df = df.copy()
    for field in ['bedrooms', 'bathrooms']:
        values = {i: c[field] for i, c in corrections.items() if field in c}
        if not values:
            continue
        mask = df[ID_COL].isin(values.keys())
        new = df.loc[mask, ID_COL].map(values)
        # an integer column takes a fractional correction as float
        dtype = np.result_type(df[field].dtype, new.dtype)
        df[field] = df[field].astype(dtype)
        df.loc[mask, field] = new.astype(dtype)
        logging.info(f'Corrected {field} for {mask.sum()} records')
    return df


def remove_records(df:pd.DataFrame, removals) -> pd.DataFrame:
    '''Drops the records whose id is in `removals`.'''
    _check_ids(df, removals, 'removal')
    mask = df[ID_COL].isin(list(removals))
    logging.info(f'Removed {mask.sum()} unverifiable records')
    return df[~mask].reset_index(drop=True)


def validate_records(df:pd.DataFrame, studio_ids=frozenset(), analysis_year:int=None) -> None:
    '''
    Checks the invariants that every cleaned record must hold and raises
    PreconditionError on the first broken one.

    :param pd.DataFrame df: cleaned records
    :param studio_ids: verified studios, the only ids allowed 0 bedrooms
    :param int analysis_year: no renovation can be later than this year
    '''
    ids = df[ID_COL]
    studio = ids.isin(list(studio_ids))
    checks = [
        ('bedrooms must be > 0 (or 0 for a verified studio)',
         ~((df['bedrooms'] > 0) | ((df['bedrooms'] == 0) & studio))),
        ('bathrooms must be > 0', ~(df['bathrooms'] > 0)),
        ('sqft_living must be > 0', ~(df['sqft_living'] > 0)),
        ('price must be > 0', ~(df['price'] > 0)),
        ('yr_renovated must be 0 or not earlier than yr_built',
         df['yr_renovated'].isna() | df['yr_built'].isna()
         | ((df['yr_renovated'] != 0) & (df['yr_renovated'] < df['yr_built']))),
    ]
    if analysis_year is not None:
        checks.append((
            f'yr_renovated must not be later than {analysis_year}',
            df['yr_renovated'] > analysis_year
        ))

    for reason, failed in checks:
        if failed.any():
            raise PreconditionError(reason, ids[failed].tolist())


def clean_records(df:pd.DataFrame, tables:StaticTables, analysis_year:int=None) -> pd.DataFrame:
    '''
    Applies the correction table and the removals, then validates the
    result.

    :param pd.DataFrame df: raw records
    :param StaticTables tables: static correction data
    :param int analysis_year: latest valid renovation year
    :return: cleaned records
    :rtype: pd.DataFrame
    '''
    df = apply_corrections(df, tables.corrections)
    df = remove_records(df, tables.removals)
    validate_records(df, tables.studio_ids, analysis_year)
    return df
