#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Train/test split
'''

import math

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split


def split_indices(n:int, seed:int, train_frac:float=0.8) -> tuple:
    '''
    Samples floor(train_frac * n) positions for training without
    replacement; the rest are the test set. The same seed and n always give
    the same partition.

    :param int n: number of records
    :param int seed: random state
    :param float train_frac: share of records used for training
    :return: (train positions, test positions), both sorted
    :rtype: tuple
    '''
    n_train = math.floor(train_frac * n)
    if n < 2 or n_train < 1 or n_train >= n:
        raise ValueError(f'cannot split {n} records with train_frac={train_frac}')

    train_idx, test_idx = train_test_split(
        np.arange(n), train_size=n_train, random_state=seed, shuffle=True
    )
    return np.sort(train_idx), np.sort(test_idx)


def split_records(df:pd.DataFrame, seed:int, train_frac:float=0.8) -> tuple:
    '''Returns (train, test) copies of the records.'''
    train_idx, test_idx = split_indices(len(df), seed, train_frac)
    train = df.iloc[train_idx].reset_index(drop=True)
    test = df.iloc[test_idx].reset_index(drop=True)
    return train, test
