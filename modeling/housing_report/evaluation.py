#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Model evaluation

Out-of-sample scores for the price model and the quality classifiers. The
test set is only read here, nothing is refitted.
'''

from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.metrics import (
    confusion_matrix, r2_score, roc_auc_score, roc_curve,
    root_mean_squared_error
)


@dataclass
class RegressionScores:
    rmse: float
    r2: float
    predictions: np.ndarray


def evaluate_regression(fit, X_test:pd.DataFrame, y_test:pd.Series) -> RegressionScores:
    '''
    Predicts the test prices and scores them.

    R² is 1 - RSS/TSS with the TSS taken around the test mean, so it can be
    negative for a model worse than that mean.

    :param OLSFit fit: final price model
    :param pd.DataFrame X_test: test design matrix
    :param pd.Series y_test: test prices
    :return: RMSE, R² and the predictions
    :rtype: RegressionScores
    '''
    y_pred = fit.predict(X_test)
    return RegressionScores(
        rmse=float(root_mean_squared_error(y_test, y_pred)),
        r2=float(r2_score(y_test, y_pred)),
        predictions=y_pred,
    )


@dataclass
class ClassifierScores:
    confusion: pd.DataFrame
    accuracy: float
    error_rate: float
    fpr: np.ndarray
    tpr: np.ndarray
    auc: float
    threshold: float


def _check_binary(y_true) -> np.ndarray:
    y_true = np.asarray(y_true).astype(bool)
    if y_true.all() or not y_true.any():
        raise ValueError('ROC curve needs both classes in the true labels')
    return y_true


def evaluate_classifier(y_true, proba, threshold:float=0.5) -> ClassifierScores:
    '''
    Confusion matrix, accuracy and error rate at a fixed threshold plus the
    ROC curve and its area.

    A record is classified "yes" when its probability exceeds `threshold`.
    0.5 is the default; with unbalanced classes it favours the majority
    class, `threshold_sweep` shows the alternatives.

    Parameters
    ----------
    y_true : array-like
        Actual labels (bool or 0/1)
    proba : array-like
        Predicted probability of "yes"
    threshold : float, default=0.5
        Decision threshold

    Returns
    -------
    ClassifierScores
        Rows of the confusion matrix are the actual class, columns the
        predicted class.
    '''
    y_true = _check_binary(y_true)
    proba = np.asarray(proba, dtype=float)
    y_pred = proba > threshold

    cm = confusion_matrix(y_true, y_pred, labels=[False, True])
    confusion = pd.DataFrame(
        cm,
        index=pd.Index(['No', 'Yes'], name='actual'),
        columns=pd.Index(['No', 'Yes'], name='predicted')
    )
    accuracy = np.trace(cm) / cm.sum()
    fpr, tpr, _ = roc_curve(y_true, proba)

    return ClassifierScores(
        confusion=confusion,
        accuracy=float(accuracy),
        error_rate=float(1 - accuracy),
        fpr=fpr,
        tpr=tpr,
        auc=float(roc_auc_score(y_true, proba)),
        threshold=threshold,
    )


def threshold_sweep(y_true, proba, thresholds=None) -> pd.DataFrame:
    '''Accuracy, true-positive rate and false-positive rate per threshold.'''
    y_true = _check_binary(y_true)
    proba = np.asarray(proba, dtype=float)
    if thresholds is None:
        thresholds = np.round(np.arange(0.1, 1.0, 0.1), 2)

    rows = []
    for t in thresholds:
        y_pred = proba > t
        rows.append({
            'threshold': t,
            'accuracy': float((y_pred == y_true).mean()),
            'tpr': float((y_pred & y_true).sum() / y_true.sum()),
            'fpr': float((y_pred & ~y_true).sum() / (~y_true).sum()),
        })
    return pd.DataFrame(rows).set_index('threshold')
