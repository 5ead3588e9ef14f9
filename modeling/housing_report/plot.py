#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Report plots

Exploratory charts of the sales and diagnostic charts of the fitted models.
Every function saves a png named after the title in `outdir` and closes the
figure.
'''

from pathlib import Path

import geopandas as gpd
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.lines import Line2D

from .config import REGIONS

REGION_COLORS = {'City': 'red', 'Suburb': 'orange', 'Rural': 'green'}


def _save(fig, title:str, outdir) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    filename = outdir / ('_'.join(title.lower().split()) + '.png')
    fig.tight_layout()
    fig.savefig(filename, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return filename


# --- Exploratory ------------------------------------------------------------ #
def plot_price_distribution(df:pd.DataFrame, outdir, title:str='Price distribution') -> Path:
    fig, axes = plt.subplots(1, 2, figsize=(12, 4))
    axes[0].hist(df['price'], bins=50, color='steelblue')
    axes[0].set_xlabel('Price')
    axes[1].hist(np.log(df['price']), bins=50, color='steelblue')
    axes[1].set_xlabel('log(Price)')
    for ax in axes:
        ax.set_ylabel('Count')
    fig.suptitle(title, fontsize=14)
    return _save(fig, title, outdir)


def plot_price_by_region(df:pd.DataFrame, outdir, title:str='Price by region') -> Path:
    fig, ax = plt.subplots(figsize=(8, 5))
    data = [df.loc[df['region'] == r, 'price'] for r in REGIONS]
    ax.boxplot(data)
    ax.set_xticks(range(1, len(REGIONS) + 1))
    ax.set_xticklabels(REGIONS)
    ax.set_ylabel('Price')
    ax.set_title(title, fontsize=14)
    return _save(fig, title, outdir)


def plot_area_correlations(
        corr:pd.DataFrame,
        outdir,
        title:str='Area field correlations'
    ) -> Path:
    fig, ax = plt.subplots(figsize=(6, 5))
    im = ax.imshow(corr.to_numpy(), vmin=-1, vmax=1, cmap='coolwarm')
    ax.set_xticks(range(len(corr.columns)))
    ax.set_xticklabels(corr.columns, rotation=45, ha='right')
    ax.set_yticks(range(len(corr.index)))
    ax.set_yticklabels(corr.index)
    for i in range(len(corr.index)):
        for j in range(len(corr.columns)):
            ax.text(j, i, f'{corr.iat[i, j]:.2f}', ha='center', va='center')
    fig.colorbar(im, ax=ax)
    ax.set_title(title, fontsize=14)
    return _save(fig, title, outdir)


def plot_region_map(df:pd.DataFrame, outdir, title:str='Sales by region') -> Path:
    '''
    Plots every sale as a point coloured by its region.

    :param pd.DataFrame df: records with "lat", "long" and "region" columns
    :param outdir: folder for the png
    :param str title: title for the graph
    '''
    gdf_sales = gpd.GeoDataFrame(
        df[['region', 'price']],
        geometry=gpd.points_from_xy(df['long'], df['lat']),
        crs="EPSG:4326"  # WGS84 coordinate reference system
        )
    fig, ax = plt.subplots(figsize=(10, 10))
    for region in REGIONS:
        layer = gdf_sales[gdf_sales['region'] == region]
        if len(layer) > 0:
            layer.plot(
                ax=ax,
                color=REGION_COLORS[region],
                markersize=4,
                alpha=0.5
                )

    ax.set_title(title, fontsize=16)
    ax.set_xlabel('Longitude')
    ax.set_ylabel('Latitude')

    legend_elements = [
        Line2D([0], [0], marker='o', color='w', label=region,
            markerfacecolor=REGION_COLORS[region], markersize=10, markeredgecolor='black')
        for region in REGIONS
        ]
    ax.legend(handles=legend_elements, loc='upper right')
    return _save(fig, title, outdir)


# --- Models ----------------------------------------------------------------- #
def plot_residual_diagnostics(
        diag:pd.DataFrame,
        n_predictors:int,
        outdir,
        title:str='Residual diagnostics'
    ) -> Path:
    '''Standardized residuals against fitted values and against leverage.'''
    n = len(diag)
    p = n_predictors + 1
    fig, axes = plt.subplots(1, 2, figsize=(12, 5))

    axes[0].scatter(diag['fitted'], diag['standardized'], s=5, alpha=0.5)
    axes[0].set_xlabel('Fitted values')

    axes[1].scatter(diag['leverage'], diag['standardized'], s=5, alpha=0.5)
    axes[1].axvline(2 * p / n, color='red', linestyle='--')
    axes[1].set_xlabel('Leverage')

    for ax in axes:
        ax.axhline(2, color='red', linestyle='--')
        ax.axhline(-2, color='red', linestyle='--')
        ax.set_ylabel('Standardized residuals')
    fig.suptitle(title, fontsize=14)
    return _save(fig, title, outdir)


def plot_roc_curves(scores:dict, outdir, title:str='ROC curves') -> Path:
    '''
    :param dict scores: model name -> ClassifierScores
    '''
    fig, ax = plt.subplots(figsize=(6, 6))
    for name, s in scores.items():
        ax.plot(s.fpr, s.tpr, label=f'{name} (AUC = {s.auc:.3f})')
    ax.plot([0, 1], [0, 1], color='gray', linestyle='--')
    ax.set_xlabel('False positive rate')
    ax.set_ylabel('True positive rate')
    ax.set_title(title, fontsize=14)
    ax.legend(loc='lower right')
    return _save(fig, title, outdir)
