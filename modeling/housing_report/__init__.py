#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Housing Price Report

This library has all the needed functions to analyse a housing-sale dataset
and model its prices:
- Data cleaning (correction table, removals, invariants)
- Creating new columns
- Train/test split
- Linear price modelling (best subsets, diagnostics, outlier refinement)
- Logistic "good quality" modelling (VIF, likelihood-ratio test)
- Model evaluation and plots
'''

__version__ = '0.1.0'
