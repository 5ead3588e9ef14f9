#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Quality classification

Logistic models of the "good quality" label: full and reduced fits,
multicollinearity diagnosis and the likelihood-ratio test between them.
'''

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy.stats import chi2
from statsmodels.stats.outliers_influence import variance_inflation_factor

from .regression import build_design, drop_constant_columns, source_predictor


def variance_inflation(X:pd.DataFrame) -> pd.Series:
    '''
    Variance inflation factor of every design column (the constant is added
    for the computation and left out of the result).
    '''
    X_const = sm.add_constant(X.astype(float), has_constant='add')
    values = X_const.to_numpy()
    vif = [variance_inflation_factor(values, i) for i in range(1, values.shape[1])]
    return pd.Series(vif, index=X.columns, name='VIF').sort_values(ascending=False)


@dataclass
class LogitFit:
    '''Binomial GLM (logit link) and the predictors it was built from.'''
    predictors: tuple
    results: object
    columns: list

    @property
    def params(self) -> pd.Series:
        return self.results.params

    @property
    def pvalues(self) -> pd.Series:
        return self.results.pvalues

    @property
    def deviance(self) -> float:
        return float(self.results.deviance)

    @property
    def n_params(self) -> int:
        return len(self.results.params)

    def summary(self):
        return self.results.summary()

    def predict_proba(self, df:pd.DataFrame) -> np.ndarray:
        X = build_design(df, list(self.predictors))[self.columns]
        X_const = sm.add_constant(X, has_constant='add')
        return np.asarray(self.results.predict(X_const))


def fit_logit(df:pd.DataFrame, predictors, label:str='good_quality') -> LogitFit:
    '''
    Fits label ~ predictors as a binomial GLM with logit link.

    :param pd.DataFrame df: training records with the label column
    :param predictors: record columns used as predictors
    :param str label: boolean column to model
    :return: the fitted model
    :rtype: LogitFit
    '''
    X = drop_constant_columns(build_design(df, list(predictors)))
    y = df[label].astype(float)
    results = sm.GLM(
        y, sm.add_constant(X, has_constant='add'),
        family=sm.families.Binomial()
    ).fit()
    return LogitFit(predictors=tuple(predictors), results=results, columns=list(X.columns))


def collinear_predictors(
        df:pd.DataFrame,
        predictors,
        vif_threshold:float=5.0
    ) -> List[str]:
    '''
    Drops, one at a time, the predictor with the largest VIF above the
    threshold and recomputes, until every VIF is below it. A categorical
    predictor takes the largest VIF of its dummy columns.

    :return: dropped predictors in the order they were removed
    :rtype: list
    '''
    remaining = list(predictors)
    dropped = []
    while len(remaining) > 1:
        X = drop_constant_columns(build_design(df, remaining))
        vif = variance_inflation(X)
        by_predictor = vif.groupby(vif.index.map(source_predictor)).max()
        worst = by_predictor.idxmax()
        if by_predictor[worst] <= vif_threshold:
            break
        logging.info(f'{worst} is collinear (VIF {by_predictor[worst]:.2f})')
        remaining.remove(worst)
        dropped.append(worst)
    return dropped


def insignificant_predictors(fit:LogitFit, alpha:float=0.05) -> List[str]:
    '''Predictors none of whose coefficients is significant at `alpha`.'''
    pvalues = fit.pvalues.drop(index='const')
    by_predictor = pvalues.groupby(pvalues.index.map(source_predictor)).min()
    return [p for p in fit.predictors if p in by_predictor and by_predictor[p] > alpha]


def reduce_predictors(
        df:pd.DataFrame,
        full:LogitFit,
        vif_threshold:float=5.0,
        alpha:float=0.05
    ) -> tuple:
    '''
    Predictors of the reduced model: the full set minus the collinear and
    the insignificant predictors. At least one predictor is kept.
    '''
    drop = set(collinear_predictors(df, full.predictors, vif_threshold))
    drop |= set(insignificant_predictors(full, alpha))
    reduced = tuple(p for p in full.predictors if p not in drop)
    if not reduced:
        keep = full.pvalues.drop(index='const').idxmin()
        reduced = (source_predictor(keep),)
    return reduced


@dataclass
class LikelihoodRatioTest:
    delta: float
    df: int
    critical: float
    p_value: float
    level: float

    @property
    def reject(self) -> bool:
        '''True when the dropped predictors are not jointly zero.'''
        return self.delta > self.critical

    @property
    def preferred(self) -> str:
        return 'full' if self.reject else 'reduced'


def likelihood_ratio_test(
        full:LogitFit,
        reduced:LogitFit,
        level:float=0.95
    ) -> LikelihoodRatioTest:
    '''
    Compares nested logistic models through their residual deviances.

    Δ = deviance(reduced) - deviance(full) is compared with the `level`
    quantile of a chi-squared distribution with as many degrees of freedom as
    parameters dropped.

    Parameters
    ----------
    full : LogitFit
        Model with every predictor
    reduced : LogitFit
        Model with a subset of the full predictors
    level : float, default=0.95
        Quantile used as critical value

    Returns
    -------
    LikelihoodRatioTest
    '''
    if not set(reduced.columns) <= set(full.columns):
        raise ValueError('the reduced model is not nested in the full model')
    df = full.n_params - reduced.n_params
    if df <= 0:
        raise ValueError('the reduced model must have fewer parameters than the full model')

    delta = reduced.deviance - full.deviance
    return LikelihoodRatioTest(
        delta=delta,
        df=df,
        critical=float(chi2.ppf(level, df)),
        p_value=float(chi2.sf(delta, df)),
        level=level,
    )
