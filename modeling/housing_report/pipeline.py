#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Report pipeline

Runs every stage once, in order, over the sales file and prints the
results:
1. Load and clean
2. Derive features
3. Split 80/20
4. Select, diagnose and refine the price model
5. Score it on the test set
6. Label good quality houses on each split
7. Fit the full and reduced logistic models and compare them
8. Score both classifiers on the test set
'''

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pandas as pd

from . import plot
from .classification import (
    LikelihoodRatioTest, LogitFit, fit_logit, likelihood_ratio_test,
    reduce_predictors, variance_inflation
)
from .cleaning import clean_records, load_records
from .config import TARGET, Settings, StaticTables, load_tables
from .errors import AnalysisError
from .evaluation import (
    RegressionScores, evaluate_classifier, evaluate_regression, threshold_sweep
)
from .feature_engineering import derive_features, label_good_quality
from .regression import (
    OLSFit, Refinement, best_subsets, build_design, candidate_predictors,
    count_flags, fit_ols, ols_diagnostics, refine_outliers, removal_sensitivity,
    resolve_selection, select_subset, source_predictor
)
from .splitting import split_records


@dataclass
class AnalysisReport:
    n_loaded: int
    n_clean: int
    n_train: int
    n_test: int
    area_correlations: pd.DataFrame
    dropped_areas: list
    # price model
    subsets: pd.DataFrame
    selection: object
    predictors: tuple
    candidate: OLSFit
    flags: dict
    refinement: Refinement
    sensitivity: pd.DataFrame  # coefficients per outlier removal count
    regression_scores: RegressionScores
    # quality classifiers
    logit_full: LogitFit
    vif: pd.Series
    logit_reduced: Optional[LogitFit] = None
    lrt: Optional[LikelihoodRatioTest] = None
    classifier_scores: dict = field(default_factory=dict)
    sweep: Optional[pd.DataFrame] = None
    plots: list = field(default_factory=list)


def expand_columns(X:pd.DataFrame, names) -> list:
    '''
    Design columns for the given names; a record column name ("region")
    stands for all of its dummy columns.
    '''
    columns = []
    for name in names:
        if name in X.columns:
            columns.append(name)
            continue
        dummies = [c for c in X.columns if source_predictor(c) == name]
        if not dummies:
            raise KeyError(f'{name} is not a candidate predictor')
        columns.extend(dummies)
    return columns


def run_pipeline(
        data_path,
        settings:Settings=None,
        tables:StaticTables=None,
        plots_dir=None
    ) -> AnalysisReport:
    '''
    Runs the whole analysis.

    :param data_path: sales csv
    :param Settings settings: run settings (defaults if None)
    :param StaticTables tables: correction and region tables (shipped ones if None)
    :param plots_dir: folder for the charts, no charts if None
    :return: every intermediate result of the run
    :rtype: AnalysisReport
    '''
    settings = settings if settings is not None else Settings()
    tables = tables if tables is not None else load_tables()

    # 1-3. data
    raw = load_records(data_path)
    clean = clean_records(raw, tables, settings.analysis_year)
    df, corr, dropped = derive_features(clean, settings, tables)
    train, test = split_records(df, settings.seed, settings.train_frac)
    logging.info(f'Split: {len(train)} training and {len(test)} test records')

    # 4. price model
    predictors = candidate_predictors(train, exclude=settings.regression_exclude)
    X_train = build_design(train, predictors)
    y_train = train[TARGET]
    subsets = best_subsets(y_train, X_train, settings.nvmax, settings.search_method)
    selection = select_subset(subsets)
    selected = resolve_selection(selection, settings.selected_predictors)
    columns = expand_columns(X_train, selected)

    candidate = fit_ols(y_train, X_train[columns])
    diag = ols_diagnostics(candidate)
    flags = count_flags(diag, len(candidate.columns))
    refinement = refine_outliers(candidate, settings.n_remove)
    counts = sorted({0, refinement.n_removed, 2 * refinement.n_removed})
    sensitivity = removal_sensitivity(
        candidate, [c for c in counts if candidate.n - c > candidate.k]
    )

    # 5. test scores
    X_test = build_design(test, predictors)
    regression_scores = evaluate_regression(refinement.fit, X_test, test[TARGET])

    # 6. labels
    train = label_good_quality(train)
    test = label_good_quality(test)

    # 7. quality classifiers
    full = fit_logit(train, settings.logit_full_predictors)
    vif = variance_inflation(build_design(train, full.predictors)[full.columns])
    if settings.logit_reduced_predictors is not None:
        reduced_predictors = tuple(settings.logit_reduced_predictors)
    else:
        reduced_predictors = reduce_predictors(
            train, full, settings.vif_threshold, settings.alpha
        )

    reduced = lrt = None
    if set(reduced_predictors) == set(full.predictors):
        logging.warning('No predictor was dropped, the reduced model is not fitted')
    else:
        reduced = fit_logit(train, reduced_predictors)
        lrt = likelihood_ratio_test(full, reduced, settings.lrt_level)

    # 8. classifier scores
    classifier_scores = {}
    for name, model in [('full', full), ('reduced', reduced)]:
        if model is None:
            continue
        classifier_scores[name] = evaluate_classifier(
            test['good_quality'], model.predict_proba(test), settings.threshold
        )
    sweep = threshold_sweep(test['good_quality'], full.predict_proba(test))

    report = AnalysisReport(
        n_loaded=len(raw),
        n_clean=len(clean),
        n_train=len(train),
        n_test=len(test),
        area_correlations=corr,
        dropped_areas=dropped,
        subsets=subsets,
        selection=selection,
        predictors=tuple(columns),
        candidate=candidate,
        flags=flags,
        refinement=refinement,
        sensitivity=sensitivity,
        regression_scores=regression_scores,
        logit_full=full,
        vif=vif,
        logit_reduced=reduced,
        lrt=lrt,
        classifier_scores=classifier_scores,
        sweep=sweep,
    )

    if plots_dir is not None:
        report.plots = [
            plot.plot_price_distribution(df, plots_dir),
            plot.plot_price_by_region(df, plots_dir),
            plot.plot_area_correlations(corr, plots_dir),
            plot.plot_region_map(df, plots_dir),
            plot.plot_residual_diagnostics(diag, len(candidate.columns), plots_dir),
            plot.plot_roc_curves(classifier_scores, plots_dir),
        ]
    return report


def _header(title:str) -> None:
    print(f'\n# --- {title} ' + '-' * max(0, 70 - len(title)) + ' #')


def print_report(report:AnalysisReport) -> None:
    _header('Data')
    print(f'Records loaded: {report.n_loaded}, after cleaning: {report.n_clean}')
    print(f'Training: {report.n_train}, test: {report.n_test}')
    print(f'Collinear area fields dropped: {report.dropped_areas}')
    print(report.area_correlations.round(3).to_string())

    _header('Best subsets')
    print(report.subsets.drop(columns='predictors').round(4).to_string())
    print(f'Selection: {report.selection}')
    print(f'Candidate predictors: {list(report.predictors)}')

    _header('Candidate model')
    print(report.candidate.summary)
    print('Observations beyond the thresholds:')
    for name, count in report.flags.items():
        print(f'  {name:<13}{count}')

    _header('Final model')
    ref = report.refinement
    print(f'Removed {ref.n_removed} outliers: {ref.n_before} -> {ref.n_after} records')
    print(ref.fit.summary)
    print('Coefficients by number of outliers removed:')
    print(report.sensitivity.round(4).to_string())
    print(f'Test RMSE: {report.regression_scores.rmse:,.2f}')
    print(f'Test R²:   {report.regression_scores.r2:.4f}')

    _header('Logistic models')
    print(report.logit_full.summary())
    print('VIF:')
    print(report.vif.round(3).to_string())
    if report.logit_reduced is not None:
        print(report.logit_reduced.summary())
    if report.lrt is not None:
        lrt = report.lrt
        print(
            f'LRT: delta={lrt.delta:.3f}, df={lrt.df}, '
            f'critical={lrt.critical:.3f}, p={lrt.p_value:.4g} -> '
            f'{lrt.preferred} model preferred'
        )

    for name, s in report.classifier_scores.items():
        _header(f'Classifier: {name}')
        print(f'Threshold: {s.threshold}')
        print(s.confusion.to_string())
        print(f'Accuracy: {s.accuracy:.4f}, error rate: {s.error_rate:.4f}, AUC: {s.auc:.4f}')

    if report.sweep is not None:
        _header('Threshold sweep (full model)')
        print(report.sweep.round(4).to_string())

    if report.plots:
        _header('Plots')
        for p in report.plots:
            print(p)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Housing price report')
    parser.add_argument('--data', required=True, help='Sales csv file')
    parser.add_argument('--tables', default=None,
                        help='Folder with corrections.json and regions.json')
    parser.add_argument('--plots', default=None, help='Folder for the charts')
    parser.add_argument('--seed', type=int, default=Settings.seed)
    parser.add_argument('--threshold', type=float, default=Settings.threshold,
                        help='Decision threshold of the classifiers')
    parser.add_argument('--select', nargs='+', default=None,
                        help='Predictors of the price model, skips automatic selection')
    parser.add_argument('--n-remove', type=int, default=None,
                        help='Number of outliers to remove before the final fit')
    parser.add_argument('--verbose', action='store_true')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        format='%(levelname)s: %(message)s',
        level=logging.INFO if args.verbose else logging.WARNING
    )
    settings = Settings(
        seed=args.seed,
        threshold=args.threshold,
        selected_predictors=tuple(args.select) if args.select else None,
        n_remove=args.n_remove,
    )
    try:
        tables = load_tables(Path(args.tables) if args.tables else None)
        report = run_pipeline(args.data, settings, tables, args.plots)
    except AnalysisError as e:
        logging.error(f'{type(e).__name__}: {e}')
        return 1
    print_report(report)
    return 0


if __name__ == '__main__':
    sys.exit(main())
