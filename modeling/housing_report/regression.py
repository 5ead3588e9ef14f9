#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Linear price model

OLS fitting, best-subset selection, residual diagnostics and the outlier
refinement of the final price model.
'''

import itertools
import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd
from spreg import OLS

from .config import ID_COL, DATE_COL, TARGET
from .errors import AmbiguousSelectionError

CONSTANT = 'CONSTANT'

# --- Design matrix ---------------------------------------------------------- #

def candidate_predictors(
        df:pd.DataFrame,
        target:str=TARGET,
        exclude=()
    ) -> List[str]:
    '''
    Every column that can explain the target: drops the id, the raw date,
    the target itself, the binary label and the `exclude` columns (fields
    made redundant by derived ones).
    '''
    skip = {target, ID_COL, DATE_COL, 'good_quality', *exclude}
    return [c for c in df.columns if c not in skip]


def build_design(df:pd.DataFrame, predictors:list) -> pd.DataFrame:
    '''
    Numeric design matrix (no constant) for the given predictors.

    Categorical columns are dummy coded against their first level and named
    `field[level]`; booleans become 0/1.

    Parameters
    ----------
    df : pd.DataFrame
        Records
    predictors : list
        Record columns to include

    Returns
    -------
    pd.DataFrame
        Float design matrix with the same index as `df`
    '''
    cols = []
    for name in predictors:
        s = df[name]
        if not isinstance(s.dtype, pd.CategoricalDtype) and s.dtype == object:
            s = s.astype('category')
        if isinstance(s.dtype, pd.CategoricalDtype):
            for level in s.cat.categories[1:]:
                cols.append((s == level).astype(float).rename(f'{name}[{level}]'))
        else:
            cols.append(s.astype(float).rename(name))
    return pd.concat(cols, axis=1)


def source_predictor(column:str) -> str:
    '''Record column a design column comes from ("region[Rural]" -> "region").'''
    return column.split('[', 1)[0]


def drop_constant_columns(X:pd.DataFrame) -> pd.DataFrame:
    constant = X.columns[X.nunique() <= 1].tolist()
    if constant:
        logging.warning(f'Dropping constant design columns: {constant}')
        X = X.drop(columns=constant)
    return X

# --- OLS -------------------------------------------------------------------- #

@dataclass
class OLSFit:
    '''Fitted spreg OLS together with the data it was fitted on.'''
    model: OLS
    y: pd.Series
    X: pd.DataFrame

    @property
    def columns(self) -> list:
        return list(self.X.columns)

    @property
    def coefficients(self) -> pd.Series:
        return pd.Series(
            np.asarray(self.model.betas).flatten(),
            index=[CONSTANT] + self.columns
        )

    @property
    def residuals(self) -> pd.Series:
        return pd.Series(np.asarray(self.model.u).flatten(), index=self.X.index)

    @property
    def fitted(self) -> pd.Series:
        return pd.Series(np.asarray(self.model.predy).flatten(), index=self.X.index)

    @property
    def n(self) -> int:
        return len(self.y)

    @property
    def k(self) -> int:
        '''Number of parameters, constant included.'''
        return len(self.columns) + 1

    @property
    def r2(self) -> float:
        return float(self.model.r2)

    @property
    def adj_r2(self) -> float:
        return float(self.model.ar2)

    @property
    def summary(self) -> str:
        return self.model.summary

    def predict(self, X:pd.DataFrame) -> np.ndarray:
        X = X[self.columns].to_numpy(dtype=float)
        X_const = np.hstack([np.ones((len(X), 1)), X])
        return (X_const @ np.asarray(self.model.betas)).flatten()


def fit_ols(y:pd.Series, X:pd.DataFrame) -> OLSFit:
    '''
    Fits price ~ X by ordinary least squares with spreg. Constant columns
    are dropped first since spreg adds its own constant.

    :param pd.Series y: target, aligned with X
    :param pd.DataFrame X: design matrix without constant
    :return: the fitted model
    :rtype: OLSFit
    '''
    X = drop_constant_columns(X)
    model = OLS(
        y=y.to_numpy(dtype=float).reshape(-1, 1),
        x=X.to_numpy(dtype=float),
        name_y=y.name if y.name else TARGET,
        name_x=list(X.columns)
    )
    return OLSFit(model=model, y=y, X=X)

# --- Best subsets ----------------------------------------------------------- #

@dataclass(frozen=True)
class AgreedSelection:
    predictors: tuple


@dataclass(frozen=True)
class DisagreedSelection:
    by_adjr2: tuple
    by_cp: tuple
    by_bic: tuple


def best_subsets(
        y:pd.Series,
        X:pd.DataFrame,
        nvmax:int=8,
        method:str='exhaustive'
    ) -> pd.DataFrame:
    '''
    Finds, for every subset size up to `nvmax`, the predictor subset with the
    smallest residual sum of squares and scores it with adjusted R², Mallows'
    Cp and BIC.

    The search runs on the cross-product matrix of the standardized design
    so each subset costs one small linear solve.

    Parameters
    ----------
    y : pd.Series
        Target
    X : pd.DataFrame
        Design matrix with every candidate column
    nvmax : int, default=8
        Largest subset size
    method : str, default='exhaustive'
        'exhaustive', 'forward' or 'backward'

    Returns
    -------
    pd.DataFrame
        One row per size with the columns
        ['predictors', 'rss', 'r2', 'adj_r2', 'cp', 'bic']
    '''
    X = drop_constant_columns(X)
    names = list(X.columns)
    Z = X.to_numpy(dtype=float)
    yv = y.to_numpy(dtype=float)
    n, P = Z.shape
    if n <= P + 1:
        raise ValueError(f'{n} observations are not enough for {P} predictors')
    nvmax = min(nvmax, P)

    Zc = (Z - Z.mean(axis=0)) / Z.std(axis=0)
    yc = yv - yv.mean()
    G = Zc.T @ Zc
    c = Zc.T @ yc
    tss = float(yc @ yc)

    def rss(cols):
        idx = list(cols)
        b = np.linalg.lstsq(G[np.ix_(idx, idx)], c[idx], rcond=None)[0]
        return max(tss - float(c[idx] @ b), 0.0)

    best = {}
    if method == 'exhaustive':
        for size in range(1, nvmax + 1):
            subset = min(itertools.combinations(range(P), size), key=rss)
            best[size] = subset
    elif method == 'forward':
        chosen = []
        for size in range(1, nvmax + 1):
            rest = [j for j in range(P) if j not in chosen]
            chosen.append(min(rest, key=lambda j: rss(chosen + [j])))
            best[size] = tuple(sorted(chosen))
    elif method == 'backward':
        chosen = list(range(P))
        if P <= nvmax:
            best[P] = tuple(chosen)
        while len(chosen) > 1:
            drop = min(chosen, key=lambda j: rss([i for i in chosen if i != j]))
            chosen.remove(drop)
            if len(chosen) <= nvmax:
                best[len(chosen)] = tuple(chosen)
    else:
        raise ValueError(f'unknown search method: {method}')

    sigma2_full = rss(range(P)) / (n - P - 1)
    rows = []
    for size, subset in sorted(best.items()):
        r = rss(subset)
        rows.append({
            'size': size,
            'predictors': tuple(names[j] for j in subset),
            'rss': r,
            'r2': 1 - r / tss,
            'adj_r2': 1 - (r / (n - size - 1)) / (tss / (n - 1)),
            'cp': r / sigma2_full - n + 2 * (size + 1),
            'bic': n * np.log(r / n) + (size + 1) * np.log(n),
        })
    return pd.DataFrame(rows).set_index('size')


def select_subset(table:pd.DataFrame):
    '''
    Picks the best subset by each criterion (max adjusted R², min Cp, min
    BIC). Returns AgreedSelection when the three coincide and
    DisagreedSelection otherwise.
    '''
    by_adjr2 = table.loc[table['adj_r2'].idxmax(), 'predictors']
    by_cp = table.loc[table['cp'].idxmin(), 'predictors']
    by_bic = table.loc[table['bic'].idxmin(), 'predictors']
    if by_adjr2 == by_cp == by_bic:
        return AgreedSelection(by_adjr2)
    return DisagreedSelection(by_adjr2, by_cp, by_bic)


def resolve_selection(outcome, override:Optional[tuple]=None) -> tuple:
    '''
    Predictors of the candidate model. A disagreement is only resolved by
    an explicit `override`; without one AmbiguousSelectionError is raised.
    '''
    if override is not None:
        logging.info(f'Using manually selected predictors: {list(override)}')
        return tuple(override)
    if isinstance(outcome, AgreedSelection):
        return outcome.predictors
    raise AmbiguousSelectionError(outcome.by_adjr2, outcome.by_cp, outcome.by_bic)

# --- Diagnostics ------------------------------------------------------------ #

def ols_diagnostics(fit:OLSFit) -> pd.DataFrame:
    '''
    Per-observation residual and influence statistics of an OLS fit.

    Columns: fitted, residual, standardized (internally studentized),
    studentized (externally studentized), leverage, dffits, cooks
    '''
    X_const = np.column_stack([np.ones(fit.n), fit.X.to_numpy(dtype=float)])
    q, _ = np.linalg.qr(X_const)
    h = np.clip((q ** 2).sum(axis=1), 0, 1 - 1e-12)

    e = fit.residuals.to_numpy()
    n, k = fit.n, fit.k
    s2 = float(e @ e) / (n - k)

    standardized = e / np.sqrt(s2 * (1 - h))
    studentized = standardized * np.sqrt(
        (n - k - 1) / np.maximum(n - k - standardized ** 2, 1e-12)
    )
    dffits = studentized * np.sqrt(h / (1 - h))
    cooks = standardized ** 2 * h / (k * (1 - h))

    return pd.DataFrame({
        'fitted': fit.fitted.to_numpy(),
        'residual': e,
        'standardized': standardized,
        'studentized': studentized,
        'leverage': h,
        'dffits': dffits,
        'cooks': cooks,
    }, index=fit.X.index)


def count_flags(diag:pd.DataFrame, n_predictors:int) -> dict:
    '''
    Number of observations beyond the usual thresholds. Only reported, the
    refinement step uses the standardized count by default.
    '''
    n = len(diag)
    p = n_predictors + 1
    return {
        'studentized': int((diag['studentized'].abs() > 2).sum()),
        'standardized': int((diag['standardized'].abs() > 2).sum()),
        'leverage': int((diag['leverage'] > 2 * p / n).sum()),
        'dffits': int((diag['dffits'].abs() > 2 * np.sqrt(p / n)).sum()),
        'cooks': int((diag['cooks'] > 1).sum()),
    }

# --- Outlier refinement ----------------------------------------------------- #

@dataclass
class Refinement:
    fit: OLSFit
    removed: pd.Index
    n_before: int

    @property
    def n_removed(self) -> int:
        return len(self.removed)

    @property
    def n_after(self) -> int:
        return self.fit.n


def refine_outliers(fit:OLSFit, n_remove:Optional[int]=None) -> Refinement:
    '''
    Removes the observations with the largest absolute standardized residual
    and refits the same predictors.

    Parameters
    ----------
    fit : OLSFit
        Candidate model
    n_remove : int, optional
        How many observations to remove. Defaults to the number of
        |standardized residual| > 2 of the candidate model.

    Returns
    -------
    Refinement
        Final fit and the removed training index
    '''
    diag = ols_diagnostics(fit)
    if n_remove is None:
        n_remove = count_flags(diag, len(fit.columns))['standardized']
    if n_remove < 0 or fit.n - n_remove <= fit.k:
        raise ValueError(f'cannot remove {n_remove} of {fit.n} observations')

    ranked = diag['standardized'].abs().sort_values(ascending=False, kind='mergesort')
    removed = ranked.index[:n_remove]
    logging.info(f'Removing {n_remove} outliers from {fit.n} training records')

    refit = fit_ols(fit.y.drop(index=removed), fit.X.drop(index=removed))
    return Refinement(fit=refit, removed=removed, n_before=fit.n)


def removal_sensitivity(fit:OLSFit, counts) -> pd.DataFrame:
    '''Coefficients of the refined model for each outlier removal count.'''
    rows = {n: refine_outliers(fit, n).fit.coefficients for n in counts}
    return pd.DataFrame(rows).T.rename_axis('n_removed')
