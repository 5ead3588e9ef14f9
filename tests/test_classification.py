#
# SPDX-License-Identifier: GPL-3.0-or-later
#

import numpy as np
import pandas as pd
import pytest
from scipy.stats import chi2

from housing_report.classification import (
    LikelihoodRatioTest, collinear_predictors, fit_logit,
    insignificant_predictors, likelihood_ratio_test, reduce_predictors,
    variance_inflation
)
from housing_report.evaluation import evaluate_classifier
from housing_report.feature_engineering import derive_features, label_good_quality
from housing_report.splitting import split_records


@pytest.fixture
def logit_data():
    rng = np.random.default_rng(11)
    n = 2000
    df = pd.DataFrame({
        'x1': rng.normal(0, 1, n),
        'x2': rng.normal(0, 1, n),
        'noise': rng.normal(0, 1, n),
    })
    df['x1_copy'] = df['x1'] + rng.normal(0, 0.05, n)
    logit = -0.5 + 2.0 * df['x1'] - 1.0 * df['x2']
    df['good_quality'] = rng.random(n) < 1 / (1 + np.exp(-logit))
    return df


def test_variance_inflation(logit_data):
    vif = variance_inflation(logit_data[['x1', 'x2', 'x1_copy']])
    assert vif['x1'] > 100 and vif['x1_copy'] > 100
    assert vif['x2'] == pytest.approx(1.0, abs=0.1)


def test_collinear_predictors_drop_one_of_the_pair(logit_data):
    dropped = collinear_predictors(logit_data, ['x1', 'x2', 'x1_copy'], vif_threshold=5)
    assert len(dropped) == 1
    assert dropped[0] in {'x1', 'x1_copy'}
    assert collinear_predictors(logit_data, ['x1', 'x2'], vif_threshold=5) == []


def test_fit_logit_recovers_coefficients(logit_data):
    fit = fit_logit(logit_data, ['x1', 'x2'])
    assert fit.params['x1'] == pytest.approx(2.0, abs=0.3)
    assert fit.params['x2'] == pytest.approx(-1.0, abs=0.3)
    assert fit.deviance > 0
    proba = fit.predict_proba(logit_data)
    assert ((proba > 0) & (proba < 1)).all()


def test_insignificant_and_reduced_predictors(logit_data):
    full = fit_logit(logit_data, ['x1', 'x2', 'x1_copy', 'noise'])
    insignificant = insignificant_predictors(full, alpha=0.05)
    assert 'x2' not in insignificant

    reduced = reduce_predictors(logit_data, full, vif_threshold=5, alpha=0.05)
    assert 'x2' in reduced
    assert not {'x1', 'x1_copy'} <= set(reduced)
    assert set(reduced) < set(full.predictors)


def test_lrt_rejects_when_dropping_a_real_predictor(logit_data):
    full = fit_logit(logit_data, ['x1', 'x2'])
    reduced = fit_logit(logit_data, ['x2'])
    lrt = likelihood_ratio_test(full, reduced)

    assert lrt.df == 1
    assert lrt.delta == pytest.approx(reduced.deviance - full.deviance)
    assert lrt.critical == pytest.approx(chi2.ppf(0.95, 1))
    assert lrt.reject and lrt.preferred == 'full'
    assert lrt.p_value < 0.05


def test_lrt_verdict():
    lrt = LikelihoodRatioTest(delta=1.2, df=1, critical=chi2.ppf(0.95, 1), p_value=chi2.sf(1.2, 1), level=0.95)
    assert not lrt.reject
    assert lrt.preferred == 'reduced'


def test_lrt_needs_nested_models(logit_data):
    a = fit_logit(logit_data, ['x1', 'x2'])
    with pytest.raises(ValueError):
        likelihood_ratio_test(a, a)
    with pytest.raises(ValueError):
        likelihood_ratio_test(fit_logit(logit_data, ['x1']), fit_logit(logit_data, ['noise']))


def test_categorical_predictors_are_grouped():
    rng = np.random.default_rng(2)
    n = 600
    df = pd.DataFrame({
        'x': rng.normal(0, 1, n),
        'region': pd.Categorical(rng.choice(['City', 'Suburb', 'Rural'], n),
                                 categories=['City', 'Suburb', 'Rural']),
    })
    df['good_quality'] = rng.random(n) < 1 / (1 + np.exp(-2 * df['x']))
    fit = fit_logit(df, ['x', 'region'])
    assert fit.columns == ['x', 'region[Suburb]', 'region[Rural]']
    assert 'x' not in insignificant_predictors(fit)


@pytest.mark.filterwarnings('ignore')
def test_label_separated_by_price_is_classified_perfectly(make_sales, settings, tables):
    '''
    condition and grade are not full-model predictors, so a large premium
    on good quality houses makes price a stand-in for the label.
    '''
    df = make_sales(n=1000, seed=4, quality_premium=3_000_000)
    df, _, _ = derive_features(df, settings, tables)
    train, test = split_records(df, seed=settings.seed)
    train, test = label_good_quality(train), label_good_quality(test)

    full = fit_logit(train, settings.logit_full_predictors)
    scores = evaluate_classifier(test['good_quality'], full.predict_proba(test))
    assert scores.accuracy == 1.0
    assert scores.auc == 1.0
