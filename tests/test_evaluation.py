#
# SPDX-License-Identifier: GPL-3.0-or-later
#

import numpy as np
import pandas as pd
import pytest

from housing_report.evaluation import (
    evaluate_classifier, evaluate_regression, threshold_sweep
)
from housing_report.regression import fit_ols


def test_regression_scores(make_sales):
    df = make_sales(n=500, seed=1)
    train, test = df.iloc[:400], df.iloc[400:]
    fit = fit_ols(train['price'], train[['sqft_living']].astype(float))
    scores = evaluate_regression(fit, test[['sqft_living']].astype(float), test['price'])

    resid = test['price'].to_numpy() - scores.predictions
    assert scores.rmse == pytest.approx(np.sqrt(np.mean(resid ** 2)))
    tss = ((test['price'] - test['price'].mean()) ** 2).sum()
    assert scores.r2 == pytest.approx(1 - (resid ** 2).sum() / tss)
    assert scores.rmse >= 0 and scores.r2 <= 1


def test_r2_can_be_negative(make_sales):
    df = make_sales(n=200, seed=2)
    fit = fit_ols(df['price'], df[['sqft_living']].astype(float))
    # scoring against an unrelated target
    scores = evaluate_regression(fit, df[['sqft_living']].astype(float), -df['price'])
    assert scores.r2 < 0
    assert scores.rmse >= 0


def test_confusion_matrix_and_rates():
    y = np.array([1, 1, 0, 0, 1, 0])
    proba = np.array([0.9, 0.4, 0.6, 0.1, 0.5, 0.2])
    scores = evaluate_classifier(y, proba)

    # 0.5 is not above the threshold
    assert scores.confusion.loc['Yes', 'Yes'] == 1
    assert scores.confusion.loc['Yes', 'No'] == 2
    assert scores.confusion.loc['No', 'Yes'] == 1
    assert scores.confusion.loc['No', 'No'] == 2
    assert scores.accuracy == pytest.approx(0.5)
    assert scores.accuracy + scores.error_rate == pytest.approx(1.0)
    assert 0 <= scores.auc <= 1


@pytest.mark.parametrize('threshold', [0.1, 0.3, 0.5, 0.7, 0.9])
def test_accuracy_and_error_rate_add_up(threshold):
    rng = np.random.default_rng(int(threshold * 10))
    y = rng.random(300) < 0.3
    proba = np.clip(y * 0.3 + rng.random(300) * 0.7, 0, 1)
    scores = evaluate_classifier(y, proba, threshold=threshold)
    assert scores.accuracy + scores.error_rate == pytest.approx(1.0)
    assert scores.confusion.to_numpy().sum() == 300


def test_auc_of_uninformative_classifier():
    rng = np.random.default_rng(0)
    proba = rng.random(20000)
    y = rng.permutation(np.r_[np.ones(6000), np.zeros(14000)]).astype(bool)
    scores = evaluate_classifier(y, proba)
    assert scores.auc == pytest.approx(0.5, abs=0.03)


def test_roc_curve_ends():
    y = np.array([0, 0, 1, 1])
    scores = evaluate_classifier(y, np.array([0.1, 0.4, 0.35, 0.8]))
    assert scores.fpr[0] == 0 and scores.tpr[0] == 0
    assert scores.fpr[-1] == 1 and scores.tpr[-1] == 1
    assert scores.auc == pytest.approx(0.75)


def test_single_class_is_rejected():
    with pytest.raises(ValueError):
        evaluate_classifier(np.ones(5), np.linspace(0, 1, 5))


def test_threshold_sweep():
    y = np.array([True, True, False, False])
    proba = np.array([0.9, 0.6, 0.4, 0.2])
    sweep = threshold_sweep(y, proba, thresholds=[0.1, 0.5, 0.95])

    assert sweep.loc[0.5, 'accuracy'] == 1.0
    assert sweep.loc[0.1, 'tpr'] == 1.0 and sweep.loc[0.1, 'fpr'] == 1.0
    assert sweep.loc[0.95, 'tpr'] == 0.0 and sweep.loc[0.95, 'fpr'] == 0.0
    assert isinstance(threshold_sweep(y, proba), pd.DataFrame)
